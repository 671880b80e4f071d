from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, lookup_model, mistral_default_model_id, mistral_models
from .openai import OpenAiHandler

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"


class MistralHandler(OpenAiHandler):
    provider_name = "mistral"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.mistral_api_key:
            raise ConfigurationError("API key is required for Mistral")
        return {"api_key": self.options.mistral_api_key, "base_url": MISTRAL_BASE_URL}

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, mistral_models, mistral_default_model_id)
