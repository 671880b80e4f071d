from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Literal, Mapping, Optional, Tuple, Union

# =============================================================================
# Type Definitions
# =============================================================================

Role = Literal["user", "assistant"]

# Supported provider identifiers (see modelmux.factory)
Provider = Literal[
    "anthropic",
    "bedrock",
    "vertex",
    "openai",
    "openai-native",
    "deepseek",
    "openrouter",
    "requesty",
    "together",
    "qwen",
    "mistral",
    "litellm",
    "ollama",
    "lmstudio",
    "gemini",
    "grok",
]


# =============================================================================
# Content Blocks
# =============================================================================

@dataclass(frozen=True)
class TextBlock:
    """
    Plain text content.
    """
    text: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True)
class ImageBlock:
    """
    Inline image content. Only ``source_type == "base64"`` can be sent to a backend.
    """
    data: str
    media_type: str
    source_type: str = "base64"
    type: Literal["image"] = field(default="image", init=False)


@dataclass(frozen=True)
class ToolUseBlock:
    """
    A tool invocation requested by the assistant.
    """
    id: str
    name: str
    input: Mapping[str, Any] = field(default_factory=dict)
    type: Literal["tool_use"] = field(default="tool_use", init=False)


ToolResultPart = Union[TextBlock, ImageBlock]


@dataclass(frozen=True)
class ToolResultBlock:
    """
    The result of a tool invocation, sent back by the user turn.

    ``content`` is either a plain string or a sequence of text/image parts.
    """
    tool_use_id: str
    content: Union[str, Tuple[ToolResultPart, ...]] = ()
    is_error: bool = False
    type: Literal["tool_result"] = field(default="tool_result", init=False)

    def __post_init__(self):
        if not isinstance(self.content, str):
            object.__setattr__(self, "content", tuple(self.content))


ContentBlock = Union[TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock]


@dataclass(frozen=True)
class Message:
    """
    One conversation turn.

    A string ``content`` is stored as a single ``TextBlock`` so that every
    converter sees the same shape.
    """
    role: Role
    content: Tuple[ContentBlock, ...] = ()

    def __post_init__(self):
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Invalid message role: {self.role!r}")
        if isinstance(self.content, str):
            object.__setattr__(self, "content", (TextBlock(self.content),))
        else:
            object.__setattr__(self, "content", tuple(self.content))


# =============================================================================
# Tool Declarations
# =============================================================================

@dataclass(frozen=True)
class ToolDeclaration:
    """
    A tool the model may call. ``input_schema`` is a JSON-schema object.
    """
    name: str
    description: str = ""
    input_schema: Mapping[str, Any] = field(default_factory=dict)

    def object_schema(self) -> dict:
        """
        Return the input schema as an object schema with ``properties`` and
        ``required`` always present.
        """
        schema = dict(self.input_schema)
        schema["type"] = "object"
        schema["properties"] = dict(schema.get("properties") or {})
        schema["required"] = list(schema.get("required") or [])
        return schema


# =============================================================================
# Stream Chunks
# =============================================================================

class StopReason(str, Enum):
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TextDelta:
    text: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True)
class ReasoningDelta:
    text: str
    type: Literal["reasoning"] = field(default="reasoning", init=False)


@dataclass(frozen=True)
class ToolUseDelta:
    """
    Incremental tool invocation. ``input_json`` is a fragment of the JSON
    arguments; fragments sharing an ``index`` concatenate to the full input.
    """
    index: int
    id: str
    name: Optional[str] = None
    input_json: str = ""
    type: Literal["tool_use"] = field(default="tool_use", init=False)


@dataclass(frozen=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: Optional[int] = None
    cache_read_tokens: Optional[int] = None
    total_cost: Optional[float] = None
    type: Literal["usage"] = field(default="usage", init=False)


@dataclass(frozen=True)
class Done:
    stop_reason: StopReason = StopReason.END_TURN
    type: Literal["done"] = field(default="done", init=False)


ApiStreamChunk = Union[TextDelta, ReasoningDelta, ToolUseDelta, Usage, Done]
ApiStream = AsyncIterator[ApiStreamChunk]


@dataclass(frozen=True)
class AssistantMessage:
    """
    A complete assistant reply rebuilt from a native response.
    """
    content: Tuple[ContentBlock, ...] = ()
    stop_reason: StopReason = StopReason.UNKNOWN
    usage: Optional[Usage] = None
    model: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> Tuple[ToolUseBlock, ...]:
        return tuple(block for block in self.content if isinstance(block, ToolUseBlock))

    def to_message(self) -> Message:
        return Message(role="assistant", content=self.content)
