from typing import Any, Dict, List, Optional, Sequence

from ..errors import ConfigurationError
from ..models import ModelDescriptor, lookup_model, openai_native_default_model_id, openai_native_models
from ..transform.openai_format import to_openai_messages
from ..types import Message, ToolDeclaration
from .openai import OpenAiHandler

# o1 models neither stream nor accept a system role
NON_STREAMING_MODELS = frozenset({"o1", "o1-preview", "o1-mini"})


class OpenAiNativeHandler(OpenAiHandler):
    """
    Handler for the OpenAI platform with its own model table.
    """

    provider_name = "openai-native"

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.openai_native_api_key:
            raise ConfigurationError("API key is required for OpenAI")
        return {"api_key": self.options.openai_native_api_key}

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, openai_native_models, openai_native_default_model_id)

    def _is_reasoning_model(self) -> bool:
        return self.get_model().id.startswith(("o1", "o3"))

    def supports_streaming(self) -> bool:
        return self.get_model().id not in NON_STREAMING_MODELS

    def _convert_messages(self, system_prompt: str, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        if self.supports_streaming():
            return to_openai_messages(system_prompt, messages)
        converted = to_openai_messages("", messages)
        if system_prompt:
            converted.insert(0, {"role": "user", "content": system_prompt})
        return converted

    def _request_kwargs(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolDeclaration]],
    ) -> Dict[str, Any]:
        request_kwargs = super()._request_kwargs(system_prompt, messages, tools)
        if self._is_reasoning_model():
            # Reasoning models take max_completion_tokens and a fixed temperature
            request_kwargs.pop("temperature", None)
            max_tokens = request_kwargs.pop("max_tokens", None)
            if max_tokens is not None:
                request_kwargs["max_completion_tokens"] = max_tokens
        return request_kwargs
