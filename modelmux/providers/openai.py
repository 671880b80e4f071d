import logging
from contextlib import aclosing
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from ..config import HandlerOptions
from ..errors import ConfigurationError, ConversionError
from ..models import ModelDescriptor, openai_model_info_sane_defaults
from ..retry import with_retry
from ..transform.openai_format import (
    from_openai_response,
    normalize_openai_stream,
    to_openai_messages,
    to_openai_tools,
)
from ..transform.stream import single_response_stream
from ..types import Message, ToolDeclaration
from .base import BaseHandler

logger = logging.getLogger(__name__)


class OpenAiHandler(BaseHandler):
    """
    Handler for OpenAI-compatible Chat Completions APIs.

    Used directly for a user-supplied base URL, and as the base of every
    hosted or local backend that speaks the same protocol; those only override
    ``_client_kwargs`` and ``get_model`` (and, where the backend needs it, the
    message conversion).
    """

    provider_name = "openai"

    def __init__(self, options: Optional[HandlerOptions] = None):
        super().__init__(options)
        # with_retry is the only retry layer
        self.client = AsyncOpenAI(**self._client_kwargs(), max_retries=0)

    def _client_kwargs(self) -> Dict[str, Any]:
        if not self.options.openai_api_key:
            raise ConfigurationError("API key is required for OpenAI-compatible endpoints")
        return {"api_key": self.options.openai_api_key, "base_url": self.options.openai_base_url}

    def get_model(self) -> ModelDescriptor:
        return ModelDescriptor(
            id=self.options.openai_model_id or self.options.api_model_id or "gpt-4o",
            info=openai_model_info_sane_defaults,
        )

    def supports_streaming(self) -> bool:
        return True

    def _convert_messages(self, system_prompt: str, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        return to_openai_messages(system_prompt, messages)

    def _request_kwargs(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolDeclaration]],
    ) -> Dict[str, Any]:
        model = self.get_model()
        request_kwargs: Dict[str, Any] = {
            "model": model.id,
            "messages": self._convert_messages(system_prompt, messages),
            "temperature": 0,
        }
        if model.info.max_tokens > 0:
            request_kwargs["max_tokens"] = model.info.max_tokens
        if tools:
            if not model.info.supports_tools:
                raise ConversionError(f"Model {model.id} does not support tool use")
            request_kwargs["tools"] = to_openai_tools(tools)
        return request_kwargs

    @with_retry()
    async def create_message(self, system_prompt, messages, tools=None):
        """
        Stream a Chat Completions reply as canonical chunks.

        Models that cannot stream are served with one blocking call whose
        result is replayed through ``single_response_stream``.
        """
        parsed = self.prepare_messages(messages)
        request_kwargs = self._request_kwargs(system_prompt, parsed, tools)
        info = self.get_model().info

        logger.debug("%s request: model=%s messages=%d", self.provider_name, request_kwargs["model"], len(parsed))

        if not self.supports_streaming():
            response = await self.client.chat.completions.create(**request_kwargs)
            chunks = single_response_stream(from_openai_response(response, info))
        else:
            stream = await self.client.chat.completions.create(
                **request_kwargs,
                stream=True,
                stream_options={"include_usage": True},
            )
            chunks = normalize_openai_stream(stream, info)

        async with aclosing(chunks):
            async for chunk in chunks:
                yield chunk

    @with_retry()
    async def complete_prompt(self, prompt: str) -> str:
        model = self.get_model()
        response = await self.client.chat.completions.create(
            model=model.id,
            messages=[{"role": "user", "content": prompt}],
        )
        return from_openai_response(response, model.info).text
