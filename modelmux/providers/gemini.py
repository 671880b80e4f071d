import logging
from contextlib import aclosing
from typing import Optional, Sequence

from google import genai
from google.genai import types

from ..config import HandlerOptions
from ..errors import ConfigurationError
from ..models import ModelDescriptor, gemini_default_model_id, gemini_models, lookup_model
from ..retry import with_retry
from ..transform.gemini_format import (
    from_gemini_response,
    normalize_gemini_stream,
    to_gemini_messages,
    to_gemini_tools,
)
from ..types import ToolDeclaration
from .base import BaseHandler

logger = logging.getLogger(__name__)


class GeminiHandler(BaseHandler):
    """
    Handler for the Google Gemini API (google-genai SDK).
    """

    provider_name = "gemini"

    def __init__(self, options: Optional[HandlerOptions] = None):
        super().__init__(options)
        if not self.options.gemini_api_key:
            raise ConfigurationError("API key is required for Google Gemini")
        self.client = genai.Client(api_key=self.options.gemini_api_key)

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, gemini_models, gemini_default_model_id)

    def _config(
        self,
        system_prompt: str,
        tools: Optional[Sequence[ToolDeclaration]] = None,
    ) -> types.GenerateContentConfig:
        config_kwargs = {
            "temperature": 0,
            "max_output_tokens": self.get_model().info.max_tokens,
        }
        if system_prompt:
            config_kwargs["system_instruction"] = system_prompt
        if tools:
            config_kwargs["tools"] = to_gemini_tools(tools)
        return types.GenerateContentConfig(**config_kwargs)

    @with_retry()
    async def create_message(self, system_prompt, messages, tools=None):
        """
        Stream a Gemini reply as canonical chunks.
        """
        parsed = self.prepare_messages(messages)
        model = self.get_model()
        contents = to_gemini_messages(parsed)
        config = self._config(system_prompt, tools)

        logger.debug("%s request: model=%s messages=%d", self.provider_name, model.id, len(parsed))
        stream = await self.client.aio.models.generate_content_stream(
            model=model.id,
            contents=contents,
            config=config,
        )

        async with aclosing(normalize_gemini_stream(stream, model.info)) as chunks:
            async for chunk in chunks:
                yield chunk

    @with_retry()
    async def complete_prompt(self, prompt: str) -> str:
        model = self.get_model()
        response = await self.client.aio.models.generate_content(
            model=model.id,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=0),
        )
        return from_gemini_response(response, model.info).text
