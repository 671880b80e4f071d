from typing import Any, Dict, List, Sequence

from ..errors import ConfigurationError
from ..models import ModelDescriptor, deepseek_default_model_id, deepseek_models, lookup_model
from ..transform.openai_format import to_openai_messages
from ..types import Message
from .openai import OpenAiHandler

DEEPSEEK_BASE_URL = "https://api.deepseek.com"


class DeepSeekHandler(OpenAiHandler):
    """
    DeepSeek (OpenAI-compatible). ``deepseek-reasoner`` requires strictly
    alternating roles and streams its chain of thought as reasoning deltas.
    """

    provider_name = "deepseek"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.deepseek_api_key:
            raise ConfigurationError("API key is required for DeepSeek")
        return {
            "api_key": self.options.deepseek_api_key,
            "base_url": self.options.deepseek_base_url or DEEPSEEK_BASE_URL,
        }

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, deepseek_models, deepseek_default_model_id)

    def _convert_messages(self, system_prompt: str, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        return to_openai_messages(
            system_prompt,
            messages,
            merge_same_role=self.get_model().id == "deepseek-reasoner",
        )
