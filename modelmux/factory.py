import logging
from typing import Any, Dict, Mapping, Type, Union

from .config import ApiConfiguration
from .providers import (
    AnthropicHandler,
    AwsBedrockHandler,
    BaseHandler,
    DeepSeekHandler,
    GeminiHandler,
    GrokHandler,
    LiteLlmHandler,
    LmStudioHandler,
    MistralHandler,
    OllamaHandler,
    OpenAiHandler,
    OpenAiNativeHandler,
    OpenRouterHandler,
    QwenHandler,
    RequestyHandler,
    TogetherHandler,
    VertexHandler,
)
from .types import Provider

logger = logging.getLogger(__name__)

HANDLERS: Dict[Provider, Type[BaseHandler]] = {
    "anthropic": AnthropicHandler,
    "openrouter": OpenRouterHandler,
    "bedrock": AwsBedrockHandler,
    "vertex": VertexHandler,
    "openai": OpenAiHandler,
    "ollama": OllamaHandler,
    "lmstudio": LmStudioHandler,
    "gemini": GeminiHandler,
    "openai-native": OpenAiNativeHandler,
    "deepseek": DeepSeekHandler,
    "requesty": RequestyHandler,
    "together": TogetherHandler,
    "qwen": QwenHandler,
    "mistral": MistralHandler,
    "litellm": LiteLlmHandler,
    "grok": GrokHandler,
}

DEFAULT_HANDLER: Type[BaseHandler] = AnthropicHandler


def build_handler(configuration: Union[ApiConfiguration, Mapping[str, Any]]) -> BaseHandler:
    """
    Build the handler for the configured provider.

    An unknown or missing ``api_provider`` falls back to the Anthropic
    handler instead of failing.

    Args:
        configuration: An ``ApiConfiguration`` or a flat mapping accepted by
            ``ApiConfiguration.from_dict``.

    Returns:
        BaseHandler: The handler, bound to the configuration's options.

    Raises:
        ConfigurationError: If the selected handler's credentials are missing
            or the mapping holds unknown options.
    """
    if not isinstance(configuration, ApiConfiguration):
        configuration = ApiConfiguration.from_dict(configuration)

    provider = (configuration.api_provider or "").lower()
    handler_cls = HANDLERS.get(provider)
    if handler_cls is None:
        logger.debug("Unknown provider %r, using %s", configuration.api_provider, DEFAULT_HANDLER.__name__)
        handler_cls = DEFAULT_HANDLER

    return handler_cls(configuration.options)
