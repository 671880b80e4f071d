"""
Conversion between the canonical conversation and the Anthropic Messages API.

The canonical model is close to Anthropic's own shape, so most of the work
here is validation (image encodings, unknown blocks) and the prompt-cache
breakpoints that only this family understands.
"""
from typing import Any, AsyncIterable, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import UnsupportedContentType
from ..models import ModelInfo, with_cost
from ..types import (
    ApiStream,
    AssistantMessage,
    ContentBlock,
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
from ..utils import ensure_base64_image, generate_tool_use_id, get_field, parse_message
from .stream import close_stream


ANTHROPIC_STOP_REASONS = {
    "end_turn": StopReason.END_TURN,
    "max_tokens": StopReason.MAX_TOKENS,
    "stop_sequence": StopReason.STOP_SEQUENCE,
    "tool_use": StopReason.TOOL_USE,
}

EPHEMERAL_CACHE = {"type": "ephemeral"}


def map_anthropic_stop_reason(reason: Optional[str]) -> StopReason:
    return ANTHROPIC_STOP_REASONS.get(reason or "", StopReason.UNKNOWN)


# =============================================================================
# Canonical -> Anthropic
# =============================================================================

def _image_to_anthropic(block: ImageBlock) -> Dict[str, Any]:
    ensure_base64_image(block)
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": block.media_type,
            "data": block.data,
        },
    }


def _tool_result_to_anthropic(block: ToolResultBlock) -> Dict[str, Any]:
    if isinstance(block.content, str):
        content: Union[str, List[Dict[str, Any]]] = block.content
    else:
        content = []
        for part in block.content:
            match part:
                case TextBlock(text=text):
                    content.append({"type": "text", "text": text})
                case ImageBlock():
                    content.append(_image_to_anthropic(part))
                case _:
                    raise UnsupportedContentType(
                        f"Unsupported tool result content type: {getattr(part, 'type', type(part).__name__)}"
                    )
    result = {"type": "tool_result", "tool_use_id": block.tool_use_id, "content": content}
    if block.is_error:
        result["is_error"] = True
    return result


def content_block_to_anthropic(block: ContentBlock) -> Dict[str, Any]:
    match block:
        case TextBlock(text=text):
            return {"type": "text", "text": text}
        case ImageBlock():
            return _image_to_anthropic(block)
        case ToolUseBlock(id=tool_id, name=name, input=arguments):
            return {"type": "tool_use", "id": tool_id, "name": name, "input": dict(arguments)}
        case ToolResultBlock():
            return _tool_result_to_anthropic(block)
        case _:
            raise UnsupportedContentType(
                f"Unsupported content block type: {getattr(block, 'type', type(block).__name__)}"
            )


def to_anthropic_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """
    Convert canonical messages to Anthropic ``MessageParam`` dicts.
    """
    return [
        {
            "role": message.role,
            "content": [content_block_to_anthropic(block) for block in message.content],
        }
        for message in messages
    ]


def to_anthropic_system(system_prompt: str, *, cache: bool = False) -> Union[str, List[Dict[str, Any]], None]:
    if not system_prompt:
        return None
    if not cache:
        return system_prompt
    return [{"type": "text", "text": system_prompt, "cache_control": EPHEMERAL_CACHE}]


def add_cache_breakpoints(native_messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Mark the last block of the last two user messages as cacheable, so the
    conversation prefix is reused on the next turn.
    """
    user_indices = [i for i, message in enumerate(native_messages) if message["role"] == "user"]
    for index in user_indices[-2:]:
        content = native_messages[index]["content"]
        if content:
            content[-1] = {**content[-1], "cache_control": EPHEMERAL_CACHE}
    return native_messages


def to_anthropic_tools(tools: Optional[Sequence[ToolDeclaration]]) -> List[Dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.object_schema(),
        }
        for tool in tools or ()
    ]


# =============================================================================
# Anthropic -> Canonical
# =============================================================================

def from_anthropic_messages(native_messages: Sequence[Any]) -> Tuple[Message, ...]:
    """
    Rebuild canonical messages from Anthropic ``MessageParam`` dicts.
    ``cache_control`` markers are dropped.
    """
    return tuple(parse_message(message) for message in native_messages)


def from_anthropic_response(response: Any, model_info: Optional[ModelInfo] = None) -> AssistantMessage:
    """
    Convert a complete Anthropic ``Message`` (SDK object or dict).
    """
    content: List[ContentBlock] = []
    for block in get_field(response, "content") or []:
        block_type = get_field(block, "type")
        if block_type == "text":
            content.append(TextBlock(get_field(block, "text", "")))
        elif block_type == "tool_use":
            content.append(
                ToolUseBlock(
                    id=get_field(block, "id") or generate_tool_use_id(),
                    name=get_field(block, "name", ""),
                    input=dict(get_field(block, "input") or {}),
                )
            )

    usage = None
    raw_usage = get_field(response, "usage")
    if raw_usage is not None:
        usage = Usage(
            input_tokens=get_field(raw_usage, "input_tokens") or 0,
            output_tokens=get_field(raw_usage, "output_tokens") or 0,
            cache_write_tokens=get_field(raw_usage, "cache_creation_input_tokens"),
            cache_read_tokens=get_field(raw_usage, "cache_read_input_tokens"),
        )
        if model_info is not None:
            usage = with_cost(model_info, usage)

    return AssistantMessage(
        content=tuple(content),
        stop_reason=map_anthropic_stop_reason(get_field(response, "stop_reason")),
        usage=usage,
        model=get_field(response, "model"),
    )


async def normalize_anthropic_stream(
    stream: AsyncIterable,
    model_info: Optional[ModelInfo] = None,
) -> ApiStream:
    """
    Turn raw Anthropic stream events into canonical chunks.

    Usage arrives split across ``message_start`` and ``message_delta``; it is
    accumulated and emitted once, just before ``Done``. The native stream is
    closed on every exit path.
    """
    input_tokens = output_tokens = 0
    cache_write_tokens = cache_read_tokens = None
    stop_reason: Optional[str] = None
    tool_blocks: Dict[int, Tuple[int, str]] = {}

    try:
        async for event in stream:
            event_type = get_field(event, "type")

            if event_type == "message_start":
                usage = get_field(get_field(event, "message"), "usage")
                input_tokens = get_field(usage, "input_tokens") or 0
                output_tokens = get_field(usage, "output_tokens") or 0
                cache_write_tokens = get_field(usage, "cache_creation_input_tokens")
                cache_read_tokens = get_field(usage, "cache_read_input_tokens")

            elif event_type == "content_block_start":
                block = get_field(event, "content_block")
                block_type = get_field(block, "type")
                if block_type == "text":
                    text = get_field(block, "text")
                    if text:
                        yield TextDelta(text)
                elif block_type == "thinking":
                    thinking = get_field(block, "thinking")
                    if thinking:
                        yield ReasoningDelta(thinking)
                elif block_type == "tool_use":
                    tool_id = get_field(block, "id") or generate_tool_use_id()
                    tool_blocks[get_field(event, "index")] = (len(tool_blocks), tool_id)
                    yield ToolUseDelta(
                        index=tool_blocks[get_field(event, "index")][0],
                        id=tool_id,
                        name=get_field(block, "name"),
                    )

            elif event_type == "content_block_delta":
                delta = get_field(event, "delta")
                delta_type = get_field(delta, "type")
                if delta_type == "text_delta":
                    yield TextDelta(get_field(delta, "text", ""))
                elif delta_type == "thinking_delta":
                    yield ReasoningDelta(get_field(delta, "thinking", ""))
                elif delta_type == "input_json_delta":
                    tool_index, tool_id = tool_blocks[get_field(event, "index")]
                    yield ToolUseDelta(
                        index=tool_index,
                        id=tool_id,
                        input_json=get_field(delta, "partial_json", ""),
                    )

            elif event_type == "message_delta":
                stop_reason = get_field(get_field(event, "delta"), "stop_reason") or stop_reason
                delta_usage = get_field(event, "usage")
                if delta_usage is not None:
                    output_tokens = get_field(delta_usage, "output_tokens") or output_tokens

            elif event_type == "message_stop":
                break

        usage = Usage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cache_write_tokens=cache_write_tokens,
            cache_read_tokens=cache_read_tokens,
        )
        if model_info is not None:
            usage = with_cost(model_info, usage)
        yield usage
        yield Done(map_anthropic_stop_reason(stop_reason))
    finally:
        await close_stream(stream)
