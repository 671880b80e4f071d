from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from ..config import HandlerOptions
from ..models import ModelDescriptor
from ..types import ApiStream, Message, ToolDeclaration
from ..utils import parse_messages, validate_conversation


class BaseHandler(ABC):
    """
    Abstract base class for backend handlers.

    A handler binds one backend's SDK client, its format converter, its stream
    normalizer and the retry policy behind a uniform interface. Handlers keep
    no per-request state; concurrent calls are independent.
    """

    provider_name = "base"

    def __init__(self, options: Optional[HandlerOptions] = None):
        self.options = options or HandlerOptions()
        self.retry_policy = self.options.retry_policy()

    @abstractmethod
    def create_message(
        self,
        system_prompt: str,
        messages: Sequence[Union[Message, Mapping[str, Any]]],
        tools: Optional[Sequence[ToolDeclaration]] = None,
    ) -> ApiStream:
        """
        Send a conversation and stream the reply.

        Args:
            system_prompt (str): System instructions (may be empty).
            messages (Sequence[Message]): Conversation history. Anthropic-shaped
                dicts are accepted as well.
            tools (Sequence[ToolDeclaration], optional): Tools the model may call.

        Yields:
            Canonical chunks: text, reasoning and tool-use deltas, then one
            ``Usage`` and one ``Done``.
        """

    @abstractmethod
    def get_model(self) -> ModelDescriptor:
        """
        Return the configured model id and its static info.
        """

    def prepare_messages(self, messages: Sequence[Union[Message, Mapping[str, Any]]]) -> Tuple[Message, ...]:
        """
        Parse and validate a conversation for this handler's model.

        Raises:
            ConversionError: If the conversation breaks an invariant or holds
                images the model cannot accept.
        """
        parsed = parse_messages(messages)
        validate_conversation(parsed, supports_images=self.get_model().info.supports_images)
        return parsed


@runtime_checkable
class SingleCompletionHandler(Protocol):
    """
    Handlers that can answer a single prompt without a conversation.
    """

    async def complete_prompt(self, prompt: str) -> str:
        ...
