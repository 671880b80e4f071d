from typing import get_args

import pytest
from unittest.mock import patch

from modelmux import build_handler
from modelmux.config import ApiConfiguration, HandlerOptions
from modelmux.errors import ConfigurationError
from modelmux.factory import HANDLERS
from modelmux.providers import (
    AnthropicHandler,
    DeepSeekHandler,
    GeminiHandler,
    LiteLlmHandler,
    OpenRouterHandler,
)
from modelmux.types import Provider


class TestBuildHandler:

    @patch("modelmux.providers.anthropic.AsyncAnthropic")
    def test_unknown_provider_defaults_to_anthropic(self, mock_anthropic_cls):
        handler = build_handler({"api_provider": "unknown-xyz", "api_key": "fake-key"})
        assert type(handler) is AnthropicHandler

    @patch("modelmux.providers.anthropic.AsyncAnthropic")
    def test_missing_provider_defaults_to_anthropic(self, mock_anthropic_cls):
        handler = build_handler(ApiConfiguration(options=HandlerOptions(api_key="fake-key")))
        assert type(handler) is AnthropicHandler

    @patch("modelmux.providers.openai.AsyncOpenAI")
    def test_selects_handler(self, mock_openai_cls):
        handler = build_handler({"provider": "deepseek", "deepseek_api_key": "fake-key"})
        assert isinstance(handler, DeepSeekHandler)
        assert handler.get_model().id == "deepseek-chat"

    @patch("modelmux.providers.openai.AsyncOpenAI")
    def test_openrouter_model(self, mock_openai_cls):
        handler = build_handler({
            "api_provider": "openrouter",
            "openrouter_api_key": "fake-key",
            "openrouter_model_id": "google/gemini-2.0-flash-001",
        })
        assert isinstance(handler, OpenRouterHandler)
        assert handler.get_model().id == "google/gemini-2.0-flash-001"
        assert "X-Title" in mock_openai_cls.call_args.kwargs["default_headers"]

    @patch("modelmux.providers.gemini.genai")
    def test_gemini(self, mock_genai):
        assert isinstance(build_handler({"api_provider": "gemini", "gemini_api_key": "fake-key"}), GeminiHandler)

    @patch("modelmux.providers.openai.AsyncOpenAI")
    def test_litellm_needs_no_key(self, mock_openai_cls):
        handler = build_handler({"api_provider": "litellm"})
        assert isinstance(handler, LiteLlmHandler)
        assert mock_openai_cls.call_args.kwargs["base_url"] == "http://localhost:4000"

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError):
            build_handler({"api_provider": "mistral"})

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            build_handler({"api_provider": "openai", "openai_api_kee": "typo"})

    def test_retry_settings_reach_handler(self):
        with patch("modelmux.providers.openai.AsyncOpenAI"):
            handler = build_handler({"api_provider": "openai", "openai_api_key": "k", "max_attempts": 5})
        assert handler.retry_policy.max_attempts == 5

    def test_every_provider_registered(self):
        assert set(HANDLERS) == {
            "anthropic", "bedrock", "vertex", "openai", "openai-native", "deepseek",
            "openrouter", "requesty", "together", "qwen", "mistral", "litellm",
            "ollama", "lmstudio", "gemini", "grok",
        }

    def test_registry_matches_provider_literal(self):
        assert set(HANDLERS) == set(get_args(Provider))
