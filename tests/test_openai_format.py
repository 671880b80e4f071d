from types import SimpleNamespace

import pytest

from helpers import PNG_B64, FakeStream, collect
from modelmux.errors import ConversionError
from modelmux.transform.openai_format import (
    IMAGE_PLACEHOLDER,
    from_openai_messages,
    from_openai_response,
    map_openai_stop_reason,
    normalize_openai_stream,
    to_openai_messages,
    to_openai_tools,
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
    ToolUseDelta,
    Usage,
)


def _chunk(delta=None, finish_reason=None, usage=None):
    choices = [] if delta is None and finish_reason is None else [
        SimpleNamespace(delta=SimpleNamespace(**(delta or {})), finish_reason=finish_reason)
    ]
    return SimpleNamespace(choices=choices, usage=usage)


class TestToOpenAI:

    def test_system_prompt_leads(self):
        converted = to_openai_messages("be brief", [Message(role="user", content="hi")])
        assert converted[0] == {"role": "system", "content": "be brief"}
        assert converted[1] == {"role": "user", "content": [{"type": "text", "text": "hi"}]}

    def test_empty_system_prompt_omitted(self):
        converted = to_openai_messages("", [Message(role="user", content="hi")])
        assert converted[0]["role"] == "user"

    def test_tool_conversation(self, tool_conversation):
        converted = to_openai_messages("", tool_conversation)

        assistant = converted[1]
        assert assistant["content"] == "Let me check."
        assert assistant["tool_calls"] == [{
            "id": "toolu_1",
            "type": "function",
            "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
        }]
        assert converted[2] == {"role": "tool", "tool_call_id": "toolu_1", "content": "18C and sunny"}
        assert len(converted) == 3

    def test_tool_messages_precede_user_text(self, tool_conversation):
        follow_up = Message(role="user", content=(
            ToolResultBlock(tool_use_id="toolu_1", content="18C"),
            TextBlock("Thanks, and tomorrow?"),
        ))
        converted = to_openai_messages("", tool_conversation[:2] + (follow_up,))

        assert [m["role"] for m in converted] == ["user", "assistant", "tool", "user"]
        assert converted[3]["content"] == [{"type": "text", "text": "Thanks, and tomorrow?"}]

    def test_tool_result_images_move_to_user_message(self, tool_conversation):
        screenshot = Message(role="user", content=(
            ToolResultBlock(
                tool_use_id="toolu_1",
                content=(TextBlock("done"), ImageBlock(data=PNG_B64, media_type="image/png")),
            ),
        ))
        converted = to_openai_messages("", tool_conversation[:2] + (screenshot,))

        tool_message, user_message = converted[2], converted[3]
        assert tool_message["content"] == [
            {"type": "text", "text": "done"},
            {"type": "text", "text": IMAGE_PLACEHOLDER},
        ]
        assert user_message["content"] == [
            {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{PNG_B64}"}},
        ]

    def test_empty_tool_result_is_empty_array(self, tool_conversation):
        empty = Message(role="user", content=(ToolResultBlock(tool_use_id="toolu_1", content=()),))
        converted = to_openai_messages("", tool_conversation[:2] + (empty,))

        assert converted[2] == {"role": "tool", "tool_call_id": "toolu_1", "content": []}
        assert len(converted) == 3

    def test_image_as_data_url(self, image_message):
        converted = to_openai_messages("", [image_message])
        assert converted[0]["content"][1]["image_url"]["url"] == f"data:image/png;base64,{PNG_B64}"

    def test_tool_use_in_user_message_rejected(self):
        message = Message(role="user", content=(ToolUseBlock(id="t", name="x", input={}),))
        with pytest.raises(ConversionError):
            to_openai_messages("", [message])

    def test_image_in_assistant_message_rejected(self):
        message = Message(role="assistant", content=(ImageBlock(data=PNG_B64, media_type="image/png"),))
        with pytest.raises(ConversionError):
            to_openai_messages("", [message])

    def test_merge_same_role(self):
        converted = to_openai_messages(
            "",
            [
                Message(role="user", content="one"),
                Message(role="user", content="two"),
                Message(role="assistant", content="three"),
                Message(role="assistant", content="four"),
            ],
            merge_same_role=True,
        )
        assert [m["role"] for m in converted] == ["user", "assistant"]
        assert converted[0]["content"] == [{"type": "text", "text": "one"}, {"type": "text", "text": "two"}]
        assert converted[1]["content"] == "three\nfour"

    def test_tools(self):
        tools = to_openai_tools([ToolDeclaration(name="noop", description="Nothing")])
        assert tools == [{
            "type": "function",
            "function": {
                "name": "noop",
                "description": "Nothing",
                "parameters": {"type": "object", "properties": {}, "required": []},
            },
        }]


class TestFromOpenAI:

    def test_round_trip(self, tool_conversation, image_message):
        conversation = tuple(tool_conversation) + (Message(role="assistant", content="Sunny."), image_message)
        system, messages = from_openai_messages(to_openai_messages("be brief", conversation))

        assert system == "be brief"
        assert messages == conversation

    def test_round_trip_tool_result_with_text(self, tool_conversation):
        follow_up = Message(role="user", content=(
            ToolResultBlock(tool_use_id="toolu_1", content="18C"),
            TextBlock("And tomorrow?"),
        ))
        conversation = tool_conversation[:2] + (follow_up,)

        _, messages = from_openai_messages(to_openai_messages("", conversation))

        assert messages == conversation

    def test_assistant_content_parts(self):
        _, messages = from_openai_messages([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": [
                {"type": "text", "text": "Hello"},
                {"type": "refusal", "refusal": "but not that"},
            ]},
        ])

        assert messages[1] == Message(role="assistant", content=(TextBlock("Hello"), TextBlock("but not that")))

    def test_response(self):
        completion = SimpleNamespace(
            model="gpt-4o",
            choices=[SimpleNamespace(
                finish_reason="tool_calls",
                message=SimpleNamespace(
                    content=None,
                    tool_calls=[SimpleNamespace(
                        id="call_1",
                        function=SimpleNamespace(name="lookup", arguments='{"q": "x"}'),
                    )],
                ),
            )],
            usage=SimpleNamespace(
                prompt_tokens=100,
                completion_tokens=7,
                prompt_tokens_details=SimpleNamespace(cached_tokens=40),
            ),
        )
        message = from_openai_response(completion)

        assert message.tool_uses == (ToolUseBlock(id="call_1", name="lookup", input={"q": "x"}),)
        assert message.stop_reason is StopReason.TOOL_USE
        assert message.usage == Usage(input_tokens=60, output_tokens=7, cache_read_tokens=40)

    @pytest.mark.parametrize("reason, expected", [
        ("stop", StopReason.END_TURN),
        ("length", StopReason.MAX_TOKENS),
        ("tool_calls", StopReason.TOOL_USE),
        ("content_filter", StopReason.UNKNOWN),
        (None, StopReason.UNKNOWN),
    ])
    def test_finish_reasons(self, reason, expected):
        assert map_openai_stop_reason(reason) is expected


class TestOpenAIStream:

    @pytest.mark.asyncio
    async def test_chunk_sequence(self):
        stream = FakeStream([
            _chunk({"reasoning_content": "Thinking", "content": None}),
            _chunk({"content": "Hel"}),
            _chunk({"content": "lo"}),
            _chunk({"content": None, "tool_calls": [SimpleNamespace(
                index=0, id="call_1", function=SimpleNamespace(name="lookup", arguments='{"q"'),
            )]}),
            _chunk({"content": None, "tool_calls": [SimpleNamespace(
                index=0, id=None, function=SimpleNamespace(name=None, arguments=': "x"}'),
            )]}),
            _chunk({"content": None}, finish_reason="tool_calls"),
            _chunk(usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, prompt_tokens_details=None)),
        ])
        chunks = await collect(normalize_openai_stream(stream))

        assert chunks == [
            ReasoningDelta("Thinking"),
            TextDelta("Hel"),
            TextDelta("lo"),
            ToolUseDelta(index=0, id="call_1", name="lookup", input_json='{"q"'),
            ToolUseDelta(index=0, id="call_1", input_json=': "x"}'),
            Usage(input_tokens=10, output_tokens=5),
            Done(StopReason.TOOL_USE),
        ]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_usage_defaults_when_missing(self):
        stream = FakeStream([_chunk({"content": "hi"}, finish_reason="stop")])
        chunks = await collect(normalize_openai_stream(stream))

        assert chunks[-2:] == [Usage(), Done(StopReason.END_TURN)]

    @pytest.mark.asyncio
    async def test_collect_stream(self):
        stream = FakeStream([
            _chunk({"content": "Hi"}),
            _chunk({"content": None, "tool_calls": [SimpleNamespace(
                index=0, id="call_1", function=SimpleNamespace(name="lookup", arguments='{"q": "x"}'),
            )]}, finish_reason="tool_calls"),
        ])
        message = await collect_stream(normalize_openai_stream(stream))

        assert message.content == (TextBlock("Hi"), ToolUseBlock(id="call_1", name="lookup", input={"q": "x"}))
        assert message.stop_reason is StopReason.TOOL_USE
