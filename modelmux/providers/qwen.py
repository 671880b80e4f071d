from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import ModelDescriptor, lookup_model, qwen_default_model_id, qwen_models
from .openai import OpenAiHandler

QWEN_BASE_URLS = {
    "china": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    "international": "https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
}


class QwenHandler(OpenAiHandler):
    """
    Alibaba Qwen through DashScope's OpenAI-compatible mode. ``qwen_api_line``
    picks the China or international endpoint.
    """

    provider_name = "qwen"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.qwen_api_key:
            raise ConfigurationError("API key is required for Qwen")
        base_url = QWEN_BASE_URLS.get(self.options.qwen_api_line)
        if base_url is None:
            raise ConfigurationError(f"Unknown Qwen API line: {self.options.qwen_api_line}")
        return {"api_key": self.options.qwen_api_key, "base_url": base_url}

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, qwen_models, qwen_default_model_id)
