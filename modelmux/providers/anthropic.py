import logging
from contextlib import aclosing
from typing import Any, Dict, Optional, Sequence

from anthropic import AsyncAnthropic

from ..config import HandlerOptions
from ..errors import ConfigurationError
from ..models import ModelDescriptor, anthropic_default_model_id, anthropic_models, lookup_model
from ..retry import with_retry
from ..transform.anthropic_format import (
    add_cache_breakpoints,
    from_anthropic_response,
    normalize_anthropic_stream,
    to_anthropic_messages,
    to_anthropic_system,
    to_anthropic_tools,
)
from ..types import Message, ToolDeclaration
from .base import BaseHandler

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192


class AnthropicHandler(BaseHandler):
    """
    Handler for the Anthropic Messages API.

    Bedrock and Vertex serve the same API through their own clients; their
    handlers only swap ``_create_client`` and the model table.
    """

    provider_name = "anthropic"

    def __init__(self, options: Optional[HandlerOptions] = None):
        super().__init__(options)
        self.client = self._create_client()

    def _create_client(self):
        if not self.options.api_key:
            raise ConfigurationError("API key is required for Anthropic")
        return AsyncAnthropic(
            api_key=self.options.api_key,
            base_url=self.options.anthropic_base_url,
            max_retries=0,
        )

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, anthropic_models, anthropic_default_model_id)

    def _request_model_id(self) -> str:
        return self.get_model().id

    def _request_kwargs(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolDeclaration]],
    ) -> Dict[str, Any]:
        """
        Build the ``messages.create`` arguments.

        Prompt caching is applied only for models that support it; extended
        thinking replaces the fixed temperature.
        """
        model = self.get_model()
        cache = model.info.supports_prompt_cache

        native_messages = to_anthropic_messages(messages)
        if cache:
            add_cache_breakpoints(native_messages)

        request_kwargs: Dict[str, Any] = {
            "model": self._request_model_id(),
            "max_tokens": model.info.max_tokens if model.info.max_tokens > 0 else DEFAULT_MAX_TOKENS,
            "messages": native_messages,
        }

        system = to_anthropic_system(system_prompt, cache=cache)
        if system:
            request_kwargs["system"] = system
        if tools:
            request_kwargs["tools"] = to_anthropic_tools(tools)

        if self.options.thinking_budget_tokens:
            request_kwargs["thinking"] = {
                "type": "enabled",
                "budget_tokens": self.options.thinking_budget_tokens,
            }
        else:
            request_kwargs["temperature"] = 0

        return request_kwargs

    @with_retry()
    async def create_message(self, system_prompt, messages, tools=None):
        """
        Stream a reply from Claude as canonical chunks.
        """
        parsed = self.prepare_messages(messages)
        request_kwargs = self._request_kwargs(system_prompt, parsed, tools)

        logger.debug("%s request: model=%s messages=%d", self.provider_name, request_kwargs["model"], len(parsed))
        stream = await self.client.messages.create(**request_kwargs, stream=True)

        async with aclosing(normalize_anthropic_stream(stream, self.get_model().info)) as chunks:
            async for chunk in chunks:
                yield chunk

    @with_retry()
    async def complete_prompt(self, prompt: str) -> str:
        model = self.get_model()
        response = await self.client.messages.create(
            model=self._request_model_id(),
            max_tokens=model.info.max_tokens if model.info.max_tokens > 0 else DEFAULT_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )
        return from_anthropic_response(response, model.info).text
