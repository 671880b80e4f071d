from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

REQUESTY_BASE_URL = "https://router.requesty.ai/v1"
REQUESTY_DEFAULT_MODEL_ID = "anthropic/claude-3-7-sonnet-latest"


class RequestyHandler(OpenAiHandler):
    provider_name = "requesty"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.requesty_api_key:
            raise ConfigurationError("API key is required for Requesty")
        return {"api_key": self.options.requesty_api_key, "base_url": REQUESTY_BASE_URL}

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(
            id=self.options.requesty_model_id or REQUESTY_DEFAULT_MODEL_ID,
            info=openai_model_info_sane_defaults,
        )
