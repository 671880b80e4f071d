from .config import ApiConfiguration, HandlerOptions
from .errors import (
    BackendError,
    ConfigurationError,
    ConversionError,
    ModelMuxError,
    PermanentBackendError,
    StreamTerminationError,
    TransientBackendError,
    UnsupportedContentType,
)
from .factory import build_handler
from .models import ModelDescriptor, ModelInfo
from .providers import BaseHandler, SingleCompletionHandler
from .retry import RetryPolicy, with_retry
from .transform import collect_stream, single_response_stream
from .types import (
    ApiStream,
    ApiStreamChunk,
    AssistantMessage,
    ContentBlock,
    Done,
    ImageBlock,
    Message,
    Provider,
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
from .utils import (
    create_image_content,
    create_message,
    create_text_content,
    create_tool,
    create_tool_result,
    create_tool_use,
    parse_messages,
)

__all__ = [
    "build_handler",
    "ApiConfiguration",
    "HandlerOptions",
    "BaseHandler",
    "SingleCompletionHandler",
    "ModelDescriptor",
    "ModelInfo",
    "RetryPolicy",
    "with_retry",
    "collect_stream",
    "single_response_stream",
    "Message",
    "ContentBlock",
    "TextBlock",
    "ImageBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ToolDeclaration",
    "ApiStream",
    "ApiStreamChunk",
    "TextDelta",
    "ReasoningDelta",
    "ToolUseDelta",
    "Usage",
    "Done",
    "StopReason",
    "AssistantMessage",
    "Provider",
    "create_message",
    "create_text_content",
    "create_image_content",
    "create_tool",
    "create_tool_use",
    "create_tool_result",
    "parse_messages",
    "ModelMuxError",
    "ConfigurationError",
    "ConversionError",
    "UnsupportedContentType",
    "BackendError",
    "TransientBackendError",
    "PermanentBackendError",
    "StreamTerminationError",
]
