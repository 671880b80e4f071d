from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, grok_default_model_id, grok_models, lookup_model
from .openai import OpenAiHandler

XAI_BASE_URL = "https://api.x.ai/v1"


class GrokHandler(OpenAiHandler):
    """
    xAI Grok through its documented OpenAI-compatible Chat Completions API.
    """

    provider_name = "grok"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.grok_api_key:
            raise ConfigurationError("API key is required for xAI Grok")
        return {"api_key": self.options.grok_api_key, "base_url": XAI_BASE_URL}

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, grok_models, grok_default_model_id)
