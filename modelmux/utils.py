import base64
import binascii
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .errors import ConversionError, UnsupportedContentType
from .types import (
    ContentBlock,
    ImageBlock,
    Message,
    TextBlock,
    ToolDeclaration,
    ToolResultBlock,
    ToolResultPart,
    ToolUseBlock,
)

# =============================================================================
# Image Helpers
# =============================================================================

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def encode_image_file(image_path: Union[str, Path]) -> Tuple[str, str]:
    """
    Encode a local image file to base64.

    Args:
        image_path (Union[str, Path]): Path to the image file.

    Returns:
        Tuple[str, str]: The base64-encoded data and the MIME type
        (e.g. 'image/png'), guessed from the file extension.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    mime_type = MIME_TYPES.get(path.suffix.lower(), "image/jpeg")
    with open(path, "rb") as f:
        b64_data = base64.b64encode(f.read()).decode("utf-8")

    return b64_data, mime_type


async def encode_image_url(url: str) -> Tuple[str, str]:
    """
    Fetch an image from a URL and encode it to base64.

    Returns:
        Tuple[str, str]: The base64-encoded body and the MIME type taken from
        the Content-Type header.

    Raises:
        httpx.HTTPError: If the download fails (timeout, 404, etc.).
    """
    headers = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    }

    async with httpx.AsyncClient(timeout=30.0, headers=headers, follow_redirects=True) as http_client:
        response = await http_client.get(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "image/jpeg")
        mime_type = content_type.split(";")[0].strip()
        b64_data = base64.b64encode(response.content).decode("utf-8")

    return b64_data, mime_type


def create_image_content(source: str, *, media_type: Optional[str] = None) -> ImageBlock:
    """
    Create an image block from one of:
        - a data URI ("data:image/png;base64,...")
        - raw base64 data (requires ``media_type``)
        - a local file path
        - an HTTP(S) URL

    URL images are kept as ``source_type="url"``; no backend accepts them
    until they are fetched with ``resolve_image``.

    Raises:
        ValueError: If the source type cannot be determined.
    """
    if source.startswith("data:"):
        header, data = source.split(",", 1)
        mime = header.split(":")[1].split(";")[0]
        if ";base64" not in header:
            return ImageBlock(data=data, media_type=mime, source_type="data-uri")
        return ImageBlock(data=data, media_type=mime)

    if source.startswith(("http://", "https://")):
        return ImageBlock(data=source, media_type=media_type or "", source_type="url")

    if media_type:
        return ImageBlock(data=source, media_type=media_type)

    if len(source) < 260 and Path(source).exists():
        b64_data, detected = encode_image_file(source)
        return ImageBlock(data=b64_data, media_type=detected)

    raise ValueError(
        f"Cannot determine image source type for: {source[:50]}... "
        "Provide media_type for raw base64 data."
    )


async def resolve_image(block: ImageBlock) -> ImageBlock:
    """
    Download a URL image block and return it as a base64 block. Base64 blocks
    are returned unchanged.
    """
    if block.source_type != "url":
        return block
    b64_data, mime_type = await encode_image_url(block.data)
    return ImageBlock(data=b64_data, media_type=block.media_type or mime_type)


def decode_image_data(block: ImageBlock) -> bytes:
    """
    Return the raw bytes of a base64 image block.

    Raises:
        ConversionError: If the block is not base64 encoded.
    """
    ensure_base64_image(block)
    try:
        return base64.b64decode(block.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConversionError("Image data is not valid base64") from exc


def ensure_base64_image(block: ImageBlock) -> None:
    if block.source_type != "base64":
        raise ConversionError(f"Unsupported image source type: {block.source_type}")


# =============================================================================
# Message Helpers
# =============================================================================

def create_text_content(text: str) -> TextBlock:
    return TextBlock(text)


def create_message(
    role: Literal["user", "assistant"],
    content: Union[str, Sequence[Union[str, ContentBlock]]],
) -> Message:
    """
    Create a Message, turning bare strings inside a content list into text blocks.
    """
    if isinstance(content, str):
        return Message(role=role, content=content)
    return Message(
        role=role,
        content=tuple(TextBlock(item) if isinstance(item, str) else item for item in content),
    )


def generate_tool_use_id(prefix: str = "toolu") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:24]}"


def create_tool_use(name: str, arguments: Mapping[str, Any], id: Optional[str] = None) -> ToolUseBlock:
    return ToolUseBlock(id=id or generate_tool_use_id(), name=name, input=dict(arguments))


def create_tool_result(
    tool_use_id: str,
    content: Union[str, Sequence[ToolResultPart]],
    *,
    is_error: bool = False,
) -> ToolResultBlock:
    """
    Create the result block for a tool call, to be placed in a user message.
    """
    return ToolResultBlock(tool_use_id=tool_use_id, content=content, is_error=is_error)


def create_tool(
    name: str,
    description: str,
    parameters: Dict[str, Any],
    required: Optional[List[str]] = None,
) -> ToolDeclaration:
    """
    Create a tool declaration from a ``properties`` mapping.

    Args:
        name (str): The tool name.
        description (str): What the tool does.
        parameters (Dict): JSON-schema properties of the tool input.
        required (List[str], optional): Required property names.
    """
    return ToolDeclaration(
        name=name,
        description=description,
        input_schema={
            "type": "object",
            "properties": parameters,
            "required": required or [],
        },
    )


# =============================================================================
# Parsing (Anthropic-shaped dicts -> canonical)
# =============================================================================

def get_field(obj: Any, name: str, default: Any = None) -> Any:
    """
    Read ``name`` from a mapping or an SDK object alike.
    """
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _parse_image(block: Any) -> ImageBlock:
    source = get_field(block, "source") or {}
    source_type = get_field(source, "type", "base64")
    if source_type == "url":
        return ImageBlock(data=get_field(source, "url", ""), media_type=get_field(source, "media_type", ""), source_type="url")
    return ImageBlock(
        data=get_field(source, "data", ""),
        media_type=get_field(source, "media_type", ""),
        source_type=source_type,
    )


def _parse_tool_result_part(part: Any) -> ToolResultPart:
    block_type = get_field(part, "type")
    if block_type == "text":
        return TextBlock(get_field(part, "text", ""))
    if block_type == "image":
        return _parse_image(part)
    raise UnsupportedContentType(f"Unsupported tool result content type: {block_type}")


def parse_content_block(block: Any) -> ContentBlock:
    """
    Parse one Anthropic-shaped content block (dict or SDK object).

    Raises:
        UnsupportedContentType: For any block type outside text, image,
            tool_use and tool_result.
    """
    if isinstance(block, (TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock)):
        return block

    block_type = get_field(block, "type")
    match block_type:
        case "text":
            return TextBlock(get_field(block, "text", ""))
        case "image":
            return _parse_image(block)
        case "tool_use":
            if not get_field(block, "id") or not get_field(block, "name"):
                raise ConversionError("tool_use blocks require an id and a name")
            return ToolUseBlock(
                id=get_field(block, "id"),
                name=get_field(block, "name"),
                input=dict(get_field(block, "input") or {}),
            )
        case "tool_result":
            if not get_field(block, "tool_use_id"):
                raise ConversionError("tool_result blocks require a tool_use_id")
            content = get_field(block, "content")
            if content is None:
                content = ()
            elif not isinstance(content, str):
                content = tuple(_parse_tool_result_part(part) for part in content)
            return ToolResultBlock(
                tool_use_id=get_field(block, "tool_use_id"),
                content=content,
                is_error=bool(get_field(block, "is_error", False)),
            )
        case _:
            raise UnsupportedContentType(f"Unsupported content block type: {block_type}")


def parse_message(message: Union[Message, Mapping[str, Any]]) -> Message:
    """
    Parse an Anthropic-shaped message dict into a Message.

    Raises:
        ConversionError: For a role other than user or assistant, or a
            malformed content block.
    """
    if isinstance(message, Message):
        return message
    role = message.get("role", "user")
    if role not in ("user", "assistant"):
        raise ConversionError(f"Unsupported message role: {role!r}")
    content = message.get("content", "")
    if isinstance(content, str):
        return Message(role=role, content=content)
    return Message(
        role=role,
        content=tuple(parse_content_block(block) for block in content),
    )


def parse_messages(messages: Iterable[Union[Message, Mapping[str, Any]]]) -> Tuple[Message, ...]:
    return tuple(parse_message(message) for message in messages)


# =============================================================================
# Validation
# =============================================================================

def _iter_images(message: Message) -> Iterable[ImageBlock]:
    for block in message.content:
        if isinstance(block, ImageBlock):
            yield block
        elif isinstance(block, ToolResultBlock) and not isinstance(block.content, str):
            for part in block.content:
                if isinstance(part, ImageBlock):
                    yield part


def validate_conversation(messages: Sequence[Message], *, supports_images: bool = True) -> None:
    """
    Check the conversation invariants before it is converted.

    - every tool use id is unique;
    - every tool result references an earlier tool use;
    - images only go to models that accept them.

    Raises:
        ConversionError: If an invariant does not hold.
    """
    seen_tool_ids = set()
    for message in messages:
        if not supports_images and any(True for _ in _iter_images(message)):
            raise ConversionError("The selected model does not support image content")
        for block in message.content:
            if isinstance(block, ToolUseBlock):
                if block.id in seen_tool_ids:
                    raise ConversionError(f"Duplicate tool use id: {block.id}")
                seen_tool_ids.add(block.id)
            elif isinstance(block, ToolResultBlock):
                if block.tool_use_id not in seen_tool_ids:
                    raise ConversionError(
                        f"Tool result references unknown tool use id: {block.tool_use_id}"
                    )
