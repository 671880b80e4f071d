import base64
from types import SimpleNamespace

import pytest
from google.genai import types

from helpers import PNG_B64, FakeStream, collect
from modelmux.errors import ConversionError
from modelmux.models import gemini_models
from modelmux.transform.gemini_format import (
    from_gemini_messages,
    from_gemini_response,
    map_gemini_stop_reason,
    normalize_gemini_stream,
    to_gemini_messages,
    to_gemini_tools,
)
from modelmux.transform.stream import collect_stream
from modelmux.types import (
    Done,
    ImageBlock,
    Message,
    ReasoningDelta,
    StopReason,
    TextBlock,
    TextDelta,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)


def _chunk(parts=(), finish_reason=None, usage_metadata=None):
    candidate = SimpleNamespace(content=SimpleNamespace(parts=list(parts)), finish_reason=finish_reason)
    return SimpleNamespace(candidates=[candidate], usage_metadata=usage_metadata)


def _text_part(text, thought=None):
    return SimpleNamespace(text=text, thought=thought, function_call=None)


def _call_part(name, args, id=None):
    return SimpleNamespace(
        text=None,
        thought=None,
        function_call=SimpleNamespace(id=id, name=name, args=args),
    )


class TestToGemini:

    def test_roles(self):
        contents = to_gemini_messages([
            Message(role="assistant", content="im helper"),
            Message(role="user", content="hi"),
        ])

        # Gemini maps 'assistant' -> 'model'
        assert contents[0].role == "model"
        assert contents[0].parts[0].text == "im helper"
        assert contents[1].role == "user"

    def test_tool_conversation(self, tool_conversation):
        contents = to_gemini_messages(tool_conversation)

        call = contents[1].parts[1].function_call
        assert call.name == "get_weather"
        assert call.args == {"city": "Paris"}

        response = contents[2].parts[0].function_response
        assert response.name == "get_weather"
        assert response.response == {"name": "get_weather", "content": "18C and sunny"}

    def test_error_tool_result(self, tool_conversation):
        failed = Message(role="user", content=(ToolResultBlock(tool_use_id="toolu_1", content="timeout", is_error=True),))
        contents = to_gemini_messages(tool_conversation[:2] + (failed,))

        assert contents[2].parts[0].function_response.response == {"name": "get_weather", "error": "timeout"}

    def test_empty_tool_result_is_empty_array(self, tool_conversation):
        empty = Message(role="user", content=(ToolResultBlock(tool_use_id="toolu_1", content=()),))
        contents = to_gemini_messages(tool_conversation[:2] + (empty,))

        assert contents[2].parts[0].function_response.response == {"name": "get_weather", "content": []}

    def test_tool_result_for_unknown_call(self):
        orphan = Message(role="user", content=(ToolResultBlock(tool_use_id="nope", content="x"),))
        with pytest.raises(ConversionError):
            to_gemini_messages([orphan])

    def test_image_inline_data(self, image_message):
        contents = to_gemini_messages([image_message])
        inline = contents[0].parts[1].inline_data

        assert inline.mime_type == "image/png"
        assert inline.data == base64.b64decode(PNG_B64)

    def test_tools(self):
        tools = to_gemini_tools([ToolDeclaration(
            name="lookup",
            description="Look something up",
            input_schema={"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"]},
        )])

        declaration = tools[0].function_declarations[0]
        assert declaration.name == "lookup"
        assert declaration.description == "Look something up"
        assert to_gemini_tools([]) == []


class TestFromGemini:

    def test_round_trip(self, tool_conversation, image_message):
        conversation = tuple(tool_conversation) + (image_message,)
        system, messages = from_gemini_messages(to_gemini_messages(conversation), "be brief")

        assert system == "be brief"
        assert messages == conversation

    def test_response(self):
        response = SimpleNamespace(
            model_version="gemini-2.0-flash-001",
            candidates=[SimpleNamespace(
                finish_reason=types.FinishReason.STOP,
                content=SimpleNamespace(parts=[
                    _text_part("Let me think", thought=True),
                    _text_part("Answer"),
                ]),
            )],
            usage_metadata=SimpleNamespace(
                prompt_token_count=1_000_000,
                candidates_token_count=1_000_000,
                cached_content_token_count=None,
            ),
        )
        message = from_gemini_response(response, gemini_models["gemini-2.0-flash-001"])

        assert message.content == (TextBlock("Answer"),)
        assert message.stop_reason is StopReason.END_TURN
        assert message.usage.total_cost == pytest.approx(0.5)

    @pytest.mark.parametrize("reason, has_tool_calls, expected", [
        (types.FinishReason.STOP, False, StopReason.END_TURN),
        (types.FinishReason.STOP, True, StopReason.TOOL_USE),
        (types.FinishReason.MAX_TOKENS, False, StopReason.MAX_TOKENS),
        (types.FinishReason.SAFETY, False, StopReason.UNKNOWN),
        ("STOP", False, StopReason.END_TURN),
        (None, False, StopReason.UNKNOWN),
    ])
    def test_finish_reasons(self, reason, has_tool_calls, expected):
        assert map_gemini_stop_reason(reason, has_tool_calls=has_tool_calls) is expected


class TestGeminiStream:

    @pytest.mark.asyncio
    async def test_chunk_sequence(self):
        stream = FakeStream([
            _chunk([_text_part("Hmm", thought=True)]),
            _chunk([_text_part("Hello")]),
            _chunk(
                [_call_part("lookup", {"q": "x"}, id="call_a")],
                finish_reason=types.FinishReason.STOP,
                usage_metadata=SimpleNamespace(
                    prompt_token_count=20,
                    candidates_token_count=8,
                    cached_content_token_count=5,
                ),
            ),
        ])
        chunks = await collect(normalize_gemini_stream(stream))

        assert chunks[:2] == [ReasoningDelta("Hmm"), TextDelta("Hello")]
        assert chunks[2].id == "call_a"
        assert chunks[2].name == "lookup"
        assert chunks[2].input_json == '{"q": "x"}'
        assert chunks[3:] == [
            Usage(input_tokens=15, output_tokens=8, cache_read_tokens=5),
            Done(StopReason.TOOL_USE),
        ]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_generated_tool_ids_are_distinct(self):
        stream = FakeStream([
            _chunk([_call_part("a", {}), _call_part("b", {})], finish_reason="STOP"),
        ])
        message = await collect_stream(normalize_gemini_stream(stream))

        first, second = message.tool_uses
        assert (first.name, second.name) == ("a", "b")
        assert first.id != second.id
        assert message.stop_reason is StopReason.TOOL_USE

    @pytest.mark.asyncio
    async def test_usage_defaults_when_missing(self):
        chunks = await collect(normalize_gemini_stream(FakeStream([_chunk([_text_part("hi")])])))
        assert chunks[-2:] == [Usage(), Done(StopReason.UNKNOWN)]


def test_image_block_equality_survives_inline_round_trip():
    block = ImageBlock(data=PNG_B64, media_type="image/png")
    _, messages = from_gemini_messages(to_gemini_messages([Message(role="user", content=(block,))]))
    assert messages[0].content == (block,)
