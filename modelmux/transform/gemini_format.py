"""
Conversion between the canonical conversation and Gemini ``generateContent``
(google-genai SDK).

Gemini addresses function responses by function name, so tool results are
resolved against the tool uses seen earlier in the conversation. Tool result
text goes into the function response payload (``content``, or ``error`` for
failed calls); tool result images follow it as inline data parts.
"""
import base64
import json
from typing import Any, AsyncIterable, Dict, List, Optional, Sequence, Tuple

from google.genai import types

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
from ..utils import decode_image_data, generate_tool_use_id, get_field
from .stream import close_stream

GEMINI_FINISH_REASONS = {
    "STOP": StopReason.END_TURN,
    "MAX_TOKENS": StopReason.MAX_TOKENS,
}


def map_gemini_stop_reason(reason: Any, *, has_tool_calls: bool = False) -> StopReason:
    """
    Map a ``FinishReason`` (enum or string). Gemini reports ``STOP`` after a
    function call, so that case becomes ``tool_use``.
    """
    name = str(getattr(reason, "value", reason) or "").upper()
    stop_reason = GEMINI_FINISH_REASONS.get(name, StopReason.UNKNOWN)
    if stop_reason is StopReason.END_TURN and has_tool_calls:
        return StopReason.TOOL_USE
    return stop_reason


# =============================================================================
# Canonical -> Gemini
# =============================================================================

def _image_part(block: ImageBlock) -> Dict[str, Any]:
    return {"inline_data": {"mime_type": block.media_type, "data": decode_image_data(block)}}


def _tool_result_parts(block: ToolResultBlock, tool_names: Dict[str, str]) -> List[Dict[str, Any]]:
    name = tool_names.get(block.tool_use_id)
    if name is None:
        raise ConversionError(f"Tool result references unknown tool use id: {block.tool_use_id}")

    images: List[Dict[str, Any]] = []
    if isinstance(block.content, str):
        payload: Any = block.content
    else:
        payload = []
        for part in block.content:
            match part:
                case TextBlock(text=text):
                    payload.append(text)
                case ImageBlock():
                    images.append(_image_part(part))
                case _:
                    raise UnsupportedContentType(
                        f"Unsupported tool result content type: {getattr(part, 'type', type(part).__name__)}"
                    )

    key = "error" if block.is_error else "content"
    response = {
        "function_response": {
            "id": block.tool_use_id,
            "name": name,
            "response": {"name": name, key: payload},
        }
    }
    return [response] + images


def to_gemini_messages(messages: Sequence[Message]) -> List[types.Content]:
    """
    Convert canonical messages to ``types.Content`` (assistant -> "model").
    """
    tool_names: Dict[str, str] = {}
    contents: List[types.Content] = []

    for message in messages:
        parts: List[Dict[str, Any]] = []
        for block in message.content:
            match block:
                case TextBlock(text=text):
                    parts.append({"text": text})
                case ImageBlock():
                    parts.append(_image_part(block))
                case ToolUseBlock(id=tool_id, name=name, input=arguments):
                    tool_names[tool_id] = name
                    parts.append({"function_call": {"id": tool_id, "name": name, "args": dict(arguments)}})
                case ToolResultBlock():
                    parts.extend(_tool_result_parts(block, tool_names))
                case _:
                    raise UnsupportedContentType(
                        f"Unsupported content block type: {getattr(block, 'type', type(block).__name__)}"
                    )
        role = "model" if message.role == "assistant" else "user"
        contents.append(types.Content(role=role, parts=parts))

    return contents


def to_gemini_tools(tools: Optional[Sequence[ToolDeclaration]]) -> List[types.Tool]:
    if not tools:
        return []
    return [
        types.Tool(function_declarations=[
            types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=tool.object_schema(),
            )
            for tool in tools
        ])
    ]


# =============================================================================
# Gemini -> Canonical
# =============================================================================

def _image_from_inline(inline: Any) -> ImageBlock:
    data = get_field(inline, "data") or b""
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("utf-8")
    return ImageBlock(data=data, media_type=get_field(inline, "mime_type", ""))


def _tool_result_from_response(function_response: Any) -> ToolResultBlock:
    response = get_field(function_response, "response") or {}
    is_error = "error" in response and "content" not in response
    payload = response.get("error" if is_error else "content", "")
    if isinstance(payload, str):
        content: Any = payload
    else:
        content = tuple(TextBlock(str(item)) for item in payload)
    return ToolResultBlock(
        tool_use_id=get_field(function_response, "id") or "",
        content=content,
        is_error=is_error,
    )


def from_gemini_messages(
    contents: Sequence[Any],
    system_instruction: Optional[str] = None,
) -> Tuple[str, Tuple[Message, ...]]:
    """
    Rebuild the system prompt and canonical messages from ``Content``s.
    """
    messages: List[Message] = []
    for content in contents:
        blocks: List[ContentBlock] = []
        for index, part in enumerate(get_field(content, "parts") or []):
            if get_field(part, "text") is not None:
                blocks.append(TextBlock(get_field(part, "text")))
            elif get_field(part, "inline_data") is not None:
                blocks.append(_image_from_inline(get_field(part, "inline_data")))
            elif get_field(part, "function_call") is not None:
                call = get_field(part, "function_call")
                blocks.append(ToolUseBlock(
                    id=get_field(call, "id") or generate_tool_use_id(f"gemini_{index}"),
                    name=get_field(call, "name", ""),
                    input=dict(get_field(call, "args") or {}),
                ))
            elif get_field(part, "function_response") is not None:
                blocks.append(_tool_result_from_response(get_field(part, "function_response")))
            else:
                raise UnsupportedContentType("Unsupported Gemini part")
        role = "assistant" if get_field(content, "role") == "model" else "user"
        messages.append(Message(role=role, content=tuple(blocks)))

    return system_instruction or "", tuple(messages)


def _usage_from_gemini(metadata: Any, model_info: Optional[ModelInfo]) -> Usage:
    cached = get_field(metadata, "cached_content_token_count")
    usage = Usage(
        input_tokens=(get_field(metadata, "prompt_token_count") or 0) - (cached or 0),
        output_tokens=get_field(metadata, "candidates_token_count") or 0,
        cache_read_tokens=cached,
    )
    if model_info is not None:
        usage = with_cost(model_info, usage)
    return usage


def from_gemini_response(response: Any, model_info: Optional[ModelInfo] = None) -> AssistantMessage:
    """
    Convert a complete ``GenerateContentResponse``.
    """
    candidates = get_field(response, "candidates") or []
    candidate = candidates[0] if candidates else None
    parts = get_field(get_field(candidate, "content"), "parts") if candidate is not None else None

    content: List[ContentBlock] = []
    for index, part in enumerate(parts or []):
        if get_field(part, "thought"):
            continue
        if get_field(part, "text"):
            content.append(TextBlock(get_field(part, "text")))
        elif get_field(part, "function_call") is not None:
            call = get_field(part, "function_call")
            content.append(ToolUseBlock(
                id=get_field(call, "id") or generate_tool_use_id(f"gemini_{index}"),
                name=get_field(call, "name", ""),
                input=dict(get_field(call, "args") or {}),
            ))

    metadata = get_field(response, "usage_metadata")
    has_tool_calls = any(isinstance(block, ToolUseBlock) for block in content)
    return AssistantMessage(
        content=tuple(content),
        stop_reason=map_gemini_stop_reason(
            get_field(candidate, "finish_reason") if candidate is not None else None,
            has_tool_calls=has_tool_calls,
        ),
        usage=_usage_from_gemini(metadata, model_info) if metadata is not None else None,
        model=get_field(response, "model_version"),
    )


async def normalize_gemini_stream(
    stream: AsyncIterable,
    model_info: Optional[ModelInfo] = None,
) -> ApiStream:
    """
    Turn streamed ``GenerateContentResponse`` chunks into canonical chunks.

    Gemini repeats cumulative usage metadata on chunks; the last one seen is
    emitted once the stream is exhausted.
    """
    finish_reason = None
    metadata = None
    tool_index = 0

    try:
        async for chunk in stream:
            if get_field(chunk, "usage_metadata") is not None:
                metadata = get_field(chunk, "usage_metadata")

            candidates = get_field(chunk, "candidates") or []
            if not candidates:
                continue
            candidate = candidates[0]
            content = get_field(candidate, "content")

            for part in (get_field(content, "parts") if content is not None else None) or []:
                text = get_field(part, "text")
                if text and get_field(part, "thought"):
                    yield ReasoningDelta(text)
                elif text:
                    yield TextDelta(text)
                elif get_field(part, "function_call") is not None:
                    call = get_field(part, "function_call")
                    yield ToolUseDelta(
                        index=tool_index,
                        id=get_field(call, "id") or generate_tool_use_id(f"gemini_{tool_index}"),
                        name=get_field(call, "name"),
                        input_json=json.dumps(dict(get_field(call, "args") or {})),
                    )
                    tool_index += 1

            finish_reason = get_field(candidate, "finish_reason") or finish_reason

        yield _usage_from_gemini(metadata, model_info) if metadata is not None else Usage()
        yield Done(map_gemini_stop_reason(finish_reason, has_tool_calls=tool_index > 0))
    finally:
        await close_stream(stream)
