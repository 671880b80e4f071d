from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

OLLAMA_BASE_URL = "http://localhost:11434"


class OllamaHandler(OpenAiHandler):
    """
    A local Ollama server through its OpenAI-compatible ``/v1`` endpoint.
    """

    provider_name = "ollama"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.ollama_model_id:
            raise ConfigurationError("A model id is required for Ollama")
        base_url = (self.options.ollama_base_url or OLLAMA_BASE_URL).rstrip("/")
        return {"api_key": "ollama", "base_url": f"{base_url}/v1"}

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(id=self.options.ollama_model_id, info=openai_model_info_sane_defaults)
