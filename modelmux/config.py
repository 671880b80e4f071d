import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import dotenv

from .errors import ConfigurationError
from .retry import RetryPolicy
from .types import Provider


@dataclass(frozen=True)
class HandlerOptions:
    """
    Provider-specific settings. Each handler reads only the fields it needs.
    """
    api_model_id: Optional[str] = None

    # Anthropic
    api_key: Optional[str] = None
    anthropic_base_url: Optional[str] = None
    thinking_budget_tokens: Optional[int] = None

    # AWS Bedrock
    aws_access_key: Optional[str] = None
    aws_secret_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    aws_region: Optional[str] = None
    aws_use_cross_region_inference: bool = False

    # GCP Vertex AI
    vertex_project_id: Optional[str] = None
    vertex_region: Optional[str] = None

    # OpenAI-compatible (generic)
    openai_base_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model_id: Optional[str] = None

    # Local servers
    ollama_base_url: Optional[str] = None
    ollama_model_id: Optional[str] = None
    lmstudio_base_url: Optional[str] = None
    lmstudio_model_id: Optional[str] = None

    # Hosted APIs
    gemini_api_key: Optional[str] = None
    openai_native_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    deepseek_base_url: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_model_id: Optional[str] = None
    requesty_api_key: Optional[str] = None
    requesty_model_id: Optional[str] = None
    together_api_key: Optional[str] = None
    together_model_id: Optional[str] = None
    qwen_api_key: Optional[str] = None
    qwen_api_line: str = "international"
    mistral_api_key: Optional[str] = None
    litellm_base_url: Optional[str] = None
    litellm_api_key: Optional[str] = None
    litellm_model_id: Optional[str] = None
    grok_api_key: Optional[str] = None

    # Retry
    max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )


OPTION_NAMES = frozenset(f.name for f in fields(HandlerOptions))

# Environment variables read by ApiConfiguration.from_env()
ENV_VARS = {
    "api_key": "ANTHROPIC_API_KEY",
    "anthropic_base_url": "ANTHROPIC_BASE_URL",
    "aws_access_key": "AWS_ACCESS_KEY_ID",
    "aws_secret_key": "AWS_SECRET_ACCESS_KEY",
    "aws_session_token": "AWS_SESSION_TOKEN",
    "aws_region": "AWS_REGION",
    "vertex_project_id": "VERTEX_PROJECT_ID",
    "vertex_region": "VERTEX_REGION",
    "openai_base_url": "OPENAI_BASE_URL",
    "openai_api_key": "OPENAI_API_KEY",
    "ollama_base_url": "OLLAMA_BASE_URL",
    "lmstudio_base_url": "LMSTUDIO_BASE_URL",
    "gemini_api_key": "GOOGLE_API_KEY",
    "openai_native_api_key": "OPENAI_API_KEY",
    "deepseek_api_key": "DEEPSEEK_API_KEY",
    "openrouter_api_key": "OPENROUTER_API_KEY",
    "requesty_api_key": "REQUESTY_API_KEY",
    "together_api_key": "TOGETHER_API_KEY",
    "qwen_api_key": "DASHSCOPE_API_KEY",
    "mistral_api_key": "MISTRAL_API_KEY",
    "litellm_base_url": "LITELLM_BASE_URL",
    "litellm_api_key": "LITELLM_API_KEY",
    "grok_api_key": "XAI_API_KEY",
}


@dataclass(frozen=True)
class ApiConfiguration:
    """
    Which provider to use, plus the options its handler is built with.
    Unrecognised provider names are kept; ``build_handler`` falls back to
    the Anthropic handler for them.
    """
    api_provider: Optional[Provider] = None
    options: HandlerOptions = field(default_factory=HandlerOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApiConfiguration":
        """
        Build a configuration from a flat mapping.

        ``api_provider`` (or ``provider``) selects the backend; every other key
        must be a ``HandlerOptions`` field.

        Raises:
            ConfigurationError: If the mapping contains unknown option keys.
        """
        values = dict(data)
        provider = values.pop("api_provider", None)
        alias = values.pop("provider", None)
        provider = provider or alias

        unknown = sorted(set(values) - OPTION_NAMES)
        if unknown:
            raise ConfigurationError(f"Unsupported provider option(s): {', '.join(unknown)}")

        return cls(api_provider=provider, options=HandlerOptions(**values))

    @classmethod
    def from_env(cls, dotenv_path: Optional[Union[str, Path]] = None) -> "ApiConfiguration":
        """
        Build a configuration from environment variables, loading a ``.env``
        file first when one is found.

        ``MODELMUX_PROVIDER`` selects the provider and ``MODELMUX_MODEL`` the
        model id; vendor keys use their customary variable names.
        """
        dotenv.load_dotenv(dotenv_path)

        values = {name: os.getenv(var) for name, var in ENV_VARS.items()}
        values = {name: value for name, value in values.items() if value}
        if os.getenv("GEMINI_API_KEY") and "gemini_api_key" not in values:
            values["gemini_api_key"] = os.getenv("GEMINI_API_KEY")
        if os.getenv("MODELMUX_MODEL"):
            values["api_model_id"] = os.getenv("MODELMUX_MODEL")

        return cls(api_provider=os.getenv("MODELMUX_PROVIDER"), options=HandlerOptions(**values))
