"""
Conversion between the canonical conversation and OpenAI Chat Completions.

Used by every OpenAI-compatible backend (OpenAI, DeepSeek, OpenRouter,
Ollama, LM Studio, xAI, ...).

Tool results become separate ``tool`` role messages placed before the rest of
the user turn. Tool messages cannot carry images, so images returned by a
tool are moved into the user message that follows.
"""
import json
from typing import Any, AsyncIterable, Dict, List, Optional, Sequence, Tuple

from ..errors import ConversionError, UnsupportedContentType
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
from ..utils import create_image_content, ensure_base64_image, generate_tool_use_id, get_field
from .stream import close_stream

OPENAI_FINISH_REASONS = {
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
}

IMAGE_PLACEHOLDER = "(see following user message for image)"


def map_openai_stop_reason(reason: Optional[str]) -> StopReason:
    return OPENAI_FINISH_REASONS.get(reason or "", StopReason.UNKNOWN)


# =============================================================================
# Canonical -> OpenAI
# =============================================================================

def _image_to_openai(block: ImageBlock) -> Dict[str, Any]:
    ensure_base64_image(block)
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{block.media_type};base64,{block.data}"},
    }


def _block_type(block: Any) -> str:
    return getattr(block, "type", type(block).__name__)


def _tool_message(block: ToolResultBlock, moved_images: List[Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(block.content, str):
        return {"role": "tool", "tool_call_id": block.tool_use_id, "content": block.content}

    parts: List[Dict[str, Any]] = []
    for part in block.content:
        match part:
            case TextBlock(text=text):
                parts.append({"type": "text", "text": text})
            case ImageBlock():
                moved_images.append(_image_to_openai(part))
                parts.append({"type": "text", "text": IMAGE_PLACEHOLDER})
            case _:
                raise UnsupportedContentType(f"Unsupported tool result content type: {_block_type(part)}")
    return {"role": "tool", "tool_call_id": block.tool_use_id, "content": parts}


def _user_messages(message: Message) -> List[Dict[str, Any]]:
    tool_messages: List[Dict[str, Any]] = []
    moved_images: List[Dict[str, Any]] = []
    parts: List[Dict[str, Any]] = []

    for block in message.content:
        match block:
            case ToolResultBlock():
                tool_messages.append(_tool_message(block, moved_images))
            case TextBlock(text=text):
                parts.append({"type": "text", "text": text})
            case ImageBlock():
                parts.append(_image_to_openai(block))
            case ToolUseBlock():
                raise ConversionError("tool_use blocks may only appear in assistant messages")
            case _:
                raise UnsupportedContentType(f"Unsupported content block type: {_block_type(block)}")

    parts.extend(moved_images)
    if parts:
        return tool_messages + [{"role": "user", "content": parts}]
    return tool_messages


def _assistant_message(message: Message) -> Dict[str, Any]:
    texts: List[str] = []
    tool_calls: List[Dict[str, Any]] = []

    for block in message.content:
        match block:
            case TextBlock(text=text):
                texts.append(text)
            case ToolUseBlock(id=tool_id, name=name, input=arguments):
                tool_calls.append({
                    "id": tool_id,
                    "type": "function",
                    "function": {"name": name, "arguments": json.dumps(dict(arguments))},
                })
            case ImageBlock() | ToolResultBlock():
                raise ConversionError(f"{block.type} blocks cannot appear in assistant messages")
            case _:
                raise UnsupportedContentType(f"Unsupported content block type: {_block_type(block)}")

    converted: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) if texts else None}
    if tool_calls:
        converted["tool_calls"] = tool_calls
    return converted


def _as_parts(content: Any) -> List[Dict[str, Any]]:
    if isinstance(content, list):
        return content
    return [{"type": "text", "text": content}] if content else []


def _merge_same_role(native_messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge consecutive user/assistant messages (required by deepseek-reasoner).
    """
    merged: List[Dict[str, Any]] = []
    for message in native_messages:
        previous = merged[-1] if merged else None
        if previous is None or previous["role"] != message["role"] or message["role"] not in ("user", "assistant"):
            merged.append(dict(message))
            continue

        before, after = previous.get("content"), message.get("content")
        if isinstance(before, list) or isinstance(after, list):
            previous["content"] = _as_parts(before) + _as_parts(after)
        else:
            previous["content"] = "\n".join(c for c in (before, after) if c) or None
        if message.get("tool_calls"):
            previous["tool_calls"] = previous.get("tool_calls", []) + message["tool_calls"]
    return merged


def to_openai_messages(
    system_prompt: str,
    messages: Sequence[Message],
    *,
    merge_same_role: bool = False,
) -> List[Dict[str, Any]]:
    """
    Convert a canonical conversation to Chat Completions messages.

    Args:
        system_prompt (str): Sent as a leading ``system`` message when not empty.
        messages (Sequence[Message]): The conversation.
        merge_same_role (bool): Merge consecutive messages of the same role.

    Raises:
        ConversionError: For content that cannot be represented.
    """
    converted: List[Dict[str, Any]] = []
    if system_prompt:
        converted.append({"role": "system", "content": system_prompt})

    for message in messages:
        if message.role == "user":
            converted.extend(_user_messages(message))
        else:
            converted.append(_assistant_message(message))

    if merge_same_role:
        converted = _merge_same_role(converted)
    return converted


def to_openai_tools(tools: Optional[Sequence[ToolDeclaration]]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.object_schema(),
            },
        }
        for tool in tools or ()
    ]


# =============================================================================
# OpenAI -> Canonical
# =============================================================================

def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {"_raw": raw}


def _parse_user_parts(content: Any) -> List[ContentBlock]:
    if isinstance(content, str):
        return [TextBlock(content)] if content else []
    blocks: List[ContentBlock] = []
    for part in content or []:
        part_type = get_field(part, "type")
        if part_type == "text":
            blocks.append(TextBlock(get_field(part, "text", "")))
        elif part_type == "image_url":
            blocks.append(create_image_content(get_field(get_field(part, "image_url"), "url", "")))
        else:
            raise UnsupportedContentType(f"Unsupported content part type: {part_type}")
    return blocks


def _parse_assistant_content(content: Any) -> List[ContentBlock]:
    # Assistant content is a string or a list of text (or refusal) parts
    if isinstance(content, str):
        return [TextBlock(content)] if content else []
    blocks: List[ContentBlock] = []
    for part in content or []:
        part_type = get_field(part, "type")
        if part_type == "text":
            blocks.append(TextBlock(get_field(part, "text", "")))
        elif part_type == "refusal":
            blocks.append(TextBlock(get_field(part, "refusal", "")))
        else:
            raise UnsupportedContentType(f"Unsupported assistant content part type: {part_type}")
    return blocks


def _parse_tool_content(content: Any):
    if isinstance(content, str):
        return content
    return tuple(
        TextBlock(get_field(part, "text", ""))
        for part in content or []
        if get_field(part, "text") != IMAGE_PLACEHOLDER
    )


def from_openai_messages(native_messages: Sequence[Any]) -> Tuple[str, Tuple[Message, ...]]:
    """
    Rebuild the system prompt and canonical messages from Chat Completions
    messages. Consecutive ``tool`` messages fold into the next user turn.
    """
    system_parts: List[str] = []
    messages: List[Message] = []
    pending: List[ContentBlock] = []

    def flush_pending():
        if pending:
            messages.append(Message(role="user", content=tuple(pending)))
            pending.clear()

    for native in native_messages:
        role = get_field(native, "role")
        content = get_field(native, "content")
        if role in ("system", "developer"):
            system_parts.append(content if isinstance(content, str) else "".join(
                get_field(part, "text", "") for part in content or []
            ))
        elif role == "tool":
            pending.append(ToolResultBlock(
                tool_use_id=get_field(native, "tool_call_id"),
                content=_parse_tool_content(content),
            ))
        elif role == "user":
            blocks = pending + _parse_user_parts(content)
            pending.clear()
            messages.append(Message(role="user", content=tuple(blocks)))
        elif role == "assistant":
            flush_pending()
            blocks = _parse_assistant_content(content)
            for call in get_field(native, "tool_calls") or []:
                function = get_field(call, "function")
                blocks.append(ToolUseBlock(
                    id=get_field(call, "id") or generate_tool_use_id("call"),
                    name=get_field(function, "name", ""),
                    input=_parse_arguments(get_field(function, "arguments")),
                ))
            messages.append(Message(role="assistant", content=tuple(blocks)))
        else:
            raise ConversionError(f"Unsupported message role: {role}")
    flush_pending()

    return "\n\n".join(system_parts), tuple(messages)


def _usage_from_openai(raw_usage: Any, model_info: Optional[ModelInfo]) -> Usage:
    prompt_tokens = get_field(raw_usage, "prompt_tokens") or 0
    details = get_field(raw_usage, "prompt_tokens_details")
    # DeepSeek reports cache hits at the top level
    cached = get_field(details, "cached_tokens") if details is not None else None
    if cached is None:
        cached = get_field(raw_usage, "prompt_cache_hit_tokens")

    usage = Usage(
        input_tokens=prompt_tokens - (cached or 0),
        output_tokens=get_field(raw_usage, "completion_tokens") or 0,
        cache_read_tokens=cached,
    )
    if model_info is not None:
        usage = with_cost(model_info, usage)
    return usage


def from_openai_response(completion: Any, model_info: Optional[ModelInfo] = None) -> AssistantMessage:
    """
    Convert a complete ``ChatCompletion`` (SDK object or dict).
    """
    choices = get_field(completion, "choices") or []
    choice = choices[0] if choices else None
    message = get_field(choice, "message") if choice is not None else None

    content: List[ContentBlock] = []
    text = get_field(message, "content") if message is not None else None
    if text:
        content.append(TextBlock(text))
    for index, call in enumerate((get_field(message, "tool_calls") if message is not None else None) or []):
        function = get_field(call, "function")
        content.append(ToolUseBlock(
            id=get_field(call, "id") or generate_tool_use_id(f"call_{index}"),
            name=get_field(function, "name", ""),
            input=_parse_arguments(get_field(function, "arguments")),
        ))

    raw_usage = get_field(completion, "usage")
    return AssistantMessage(
        content=tuple(content),
        stop_reason=map_openai_stop_reason(get_field(choice, "finish_reason") if choice is not None else None),
        usage=_usage_from_openai(raw_usage, model_info) if raw_usage is not None else None,
        model=get_field(completion, "model"),
    )


async def normalize_openai_stream(
    stream: AsyncIterable,
    model_info: Optional[ModelInfo] = None,
) -> ApiStream:
    """
    Turn ``ChatCompletionChunk``s into canonical chunks.

    The finish reason arrives before the usage-only trailing chunk, so both
    are held back and emitted as ``Usage`` then ``Done`` once the native
    stream is exhausted.
    """
    finish_reason: Optional[str] = None
    raw_usage = None
    tool_ids: Dict[int, str] = {}

    try:
        async for chunk in stream:
            if get_field(chunk, "usage") is not None:
                raw_usage = get_field(chunk, "usage")

            choices = get_field(chunk, "choices") or []
            if not choices:
                continue
            choice = choices[0]
            delta = get_field(choice, "delta")

            if delta is not None:
                # deepseek-reasoner uses reasoning_content, OpenRouter uses reasoning
                reasoning = get_field(delta, "reasoning_content") or get_field(delta, "reasoning")
                if reasoning:
                    yield ReasoningDelta(reasoning)

                text = get_field(delta, "content")
                if text:
                    yield TextDelta(text)

                for call in get_field(delta, "tool_calls") or []:
                    index = get_field(call, "index") or 0
                    if index not in tool_ids:
                        tool_ids[index] = get_field(call, "id") or generate_tool_use_id(f"call_{index}")
                    function = get_field(call, "function")
                    yield ToolUseDelta(
                        index=index,
                        id=tool_ids[index],
                        name=get_field(function, "name") if function is not None else None,
                        input_json=(get_field(function, "arguments") if function is not None else None) or "",
                    )

            finish_reason = get_field(choice, "finish_reason") or finish_reason

        yield _usage_from_openai(raw_usage, model_info) if raw_usage is not None else Usage()
        yield Done(map_openai_stop_reason(finish_reason))
    finally:
        await close_stream(stream)
