import pytest

from helpers import collect
from modelmux.transform.stream import close_stream, collect_stream, single_response_stream
from modelmux.types import (
    AssistantMessage,
    Done,
    ReasoningDelta,
    StopReason,
    TextBlock,
    TextDelta,
    ToolUseBlock,
    ToolUseDelta,
    Usage,
)


async def _chunks(*chunks):
    for chunk in chunks:
        yield chunk


class TestSingleResponseStream:

    @pytest.mark.asyncio
    async def test_order(self):
        message = AssistantMessage(
            content=(TextBlock("Hi"), ToolUseBlock(id="t1", name="lookup", input={"q": "x"})),
            stop_reason=StopReason.TOOL_USE,
            usage=Usage(input_tokens=3, output_tokens=4),
        )
        chunks = await collect(single_response_stream(message))

        assert chunks == [
            TextDelta("Hi"),
            ToolUseDelta(index=0, id="t1", name="lookup", input_json='{"q": "x"}'),
            Usage(input_tokens=3, output_tokens=4),
            Done(StopReason.TOOL_USE),
        ]

    @pytest.mark.asyncio
    async def test_usage_always_emitted(self):
        chunks = await collect(single_response_stream(AssistantMessage(stop_reason=StopReason.END_TURN)))
        assert chunks == [Usage(), Done(StopReason.END_TURN)]


class TestCollectStream:

    @pytest.mark.asyncio
    async def test_reasoning_excluded_and_order_kept(self):
        message = await collect_stream(_chunks(
            ReasoningDelta("hmm"),
            TextDelta("A"),
            ToolUseDelta(index=0, id="t1", name="first", input_json='{"a": 1}'),
            TextDelta("B"),
            ToolUseDelta(index=1, id="t2", name="second", input_json="{"),
            ToolUseDelta(index=1, id="t2", input_json="}"),
            Usage(input_tokens=1),
            Done(StopReason.TOOL_USE),
        ))

        assert message.content == (
            TextBlock("A"),
            ToolUseBlock(id="t1", name="first", input={"a": 1}),
            TextBlock("B"),
            ToolUseBlock(id="t2", name="second", input={}),
        )
        assert message.usage == Usage(input_tokens=1)
        assert message.stop_reason is StopReason.TOOL_USE

    @pytest.mark.asyncio
    async def test_invalid_tool_json_kept_raw(self):
        message = await collect_stream(_chunks(ToolUseDelta(index=0, id="t1", name="x", input_json="{oops")))
        assert message.tool_uses[0].input == {"_raw": "{oops"}


class TestCloseStream:

    @pytest.mark.asyncio
    async def test_sync_close(self):
        class SyncStream:
            closed = False

            def close(self):
                self.closed = True

        stream = SyncStream()
        await close_stream(stream)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_object_without_close(self):
        await close_stream(object())
