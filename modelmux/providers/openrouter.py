from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL_ID = "anthropic/claude-3.7-sonnet"


class OpenRouterHandler(OpenAiHandler):
    """
    OpenRouter. Reasoning tokens arrive in ``delta.reasoning`` and are
    surfaced as reasoning deltas by the shared normalizer.
    """

    provider_name = "openrouter"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.openrouter_api_key:
            raise ConfigurationError("API key is required for OpenRouter")
        return {
            "api_key": self.options.openrouter_api_key,
            "base_url": OPENROUTER_BASE_URL,
            "default_headers": {
                "HTTP-Referer": "https://github.com/modelmux/modelmux",
                "X-Title": "modelmux",
            },
        }

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(
            id=self.options.openrouter_model_id or OPENROUTER_DEFAULT_MODEL_ID,
            info=openai_model_info_sane_defaults,
        )
