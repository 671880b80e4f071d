from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from .openai import OpenAiHandler

LMSTUDIO_BASE_URL = "http://localhost:1234"


class LmStudioHandler(OpenAiHandler):
    """
    A local LM Studio server through its OpenAI-compatible ``/v1`` endpoint.
    """

    provider_name = "lmstudio"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.lmstudio_model_id:
            raise ConfigurationError("A model id is required for LM Studio")
        base_url = (self.options.lmstudio_base_url or LMSTUDIO_BASE_URL).rstrip("/")
        return {"api_key": "noop", "base_url": f"{base_url}/v1"}

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(id=self.options.lmstudio_model_id, info=openai_model_info_sane_defaults)
