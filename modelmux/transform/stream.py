import inspect
import json
from typing import Any, AsyncIterable, Dict, List, Optional

from ..types import (
    ApiStream,
    AssistantMessage,
    ContentBlock,
    Done,
    ReasoningDelta,
    StopReason,
    TextBlock,
    TextDelta,
    ToolUseBlock,
    ToolUseDelta,
    Usage,
)


async def close_stream(resource: Any) -> None:
    """
    Release a native stream: ``aclose()`` for async generators, ``close()``
    for SDK stream objects. Objects with neither are left alone.
    """
    closer = getattr(resource, "aclose", None) or getattr(resource, "close", None)
    if closer is None:
        return
    result = closer()
    if inspect.isawaitable(result):
        await result


async def single_response_stream(message: AssistantMessage) -> ApiStream:
    """
    Present a complete (non-streamed) reply as a canonical chunk sequence:
    its text and tool uses, then usage, then the stop reason.
    """
    tool_index = 0
    for block in message.content:
        if isinstance(block, TextBlock):
            if block.text:
                yield TextDelta(block.text)
        elif isinstance(block, ToolUseBlock):
            yield ToolUseDelta(
                index=tool_index,
                id=block.id,
                name=block.name,
                input_json=json.dumps(dict(block.input)),
            )
            tool_index += 1
    yield message.usage or Usage()
    yield Done(message.stop_reason)


async def collect_stream(stream: AsyncIterable) -> AssistantMessage:
    """
    Fold a chunk sequence back into one AssistantMessage.

    Text deltas are joined (reasoning is not part of the final content) and
    tool-use fragments are reassembled per index.
    """
    content: List[ContentBlock] = []
    text_parts: List[str] = []
    tools: Dict[int, Dict[str, Any]] = {}
    usage: Optional[Usage] = None
    stop_reason = StopReason.UNKNOWN

    def flush_text():
        if text_parts:
            content.append(TextBlock("".join(text_parts)))
            text_parts.clear()

    async for chunk in stream:
        if isinstance(chunk, TextDelta):
            text_parts.append(chunk.text)
        elif isinstance(chunk, ReasoningDelta):
            continue
        elif isinstance(chunk, ToolUseDelta):
            if chunk.index not in tools:
                flush_text()
                tools[chunk.index] = {"id": chunk.id, "name": chunk.name, "json": []}
                content.append(None)
                tools[chunk.index]["slot"] = len(content) - 1
            entry = tools[chunk.index]
            entry["name"] = entry["name"] or chunk.name
            entry["json"].append(chunk.input_json)
        elif isinstance(chunk, Usage):
            usage = chunk
        elif isinstance(chunk, Done):
            stop_reason = chunk.stop_reason
    flush_text()

    for entry in tools.values():
        raw = "".join(entry["json"])
        try:
            arguments = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            arguments = {"_raw": raw}
        content[entry["slot"]] = ToolUseBlock(id=entry["id"], name=entry["name"] or "", input=arguments)

    return AssistantMessage(content=tuple(content), stop_reason=stop_reason, usage=usage)
