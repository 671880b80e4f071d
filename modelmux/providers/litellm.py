from typing import Any, Dict

from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

LITELLM_BASE_URL = "http://localhost:4000"
LITELLM_DEFAULT_MODEL_ID = "gpt-3.5-turbo"


class LiteLlmHandler(OpenAiHandler):
    """
    A LiteLLM proxy. The proxy may run without a key; the SDK still needs one.
    """

    provider_name = "litellm"

    def _client_kwargs(self) -> Dict[str, Any]:
        return {
            "api_key": self.options.litellm_api_key or "noop",
            "base_url": self.options.litellm_base_url or LITELLM_BASE_URL,
        }

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(
            id=self.options.litellm_model_id or LITELLM_DEFAULT_MODEL_ID,
            info=openai_model_info_sane_defaults,
        )
