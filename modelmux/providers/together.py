from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

TOGETHER_BASE_URL = "https://api.together.xyz/v1"


class TogetherHandler(OpenAiHandler):
    provider_name = "together"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.together_model_id:
            raise ConfigurationError("A model id is required for Together")
        if not self.options.together_api_key:
            raise ConfigurationError("API key is required for Together")
        return {"api_key": self.options.together_api_key, "base_url": TOGETHER_BASE_URL}

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(id=self.options.together_model_id, info=openai_model_info_sane_defaults)
