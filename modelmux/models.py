from dataclasses import dataclass, replace
from typing import Dict, Optional

from .types import Usage


@dataclass(frozen=True)
class ModelInfo:
    """
    Static capabilities and pricing of a model.

    Prices are USD per million tokens. ``max_tokens`` of -1 means the backend
    decides.
    """
    max_tokens: int = -1
    context_window: int = 128_000
    supports_images: bool = False
    supports_tools: bool = True
    supports_prompt_cache: bool = False
    input_price: Optional[float] = None
    output_price: Optional[float] = None
    cache_writes_price: Optional[float] = None
    cache_reads_price: Optional[float] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    info: ModelInfo


def lookup_model(
    model_id: Optional[str],
    table: Dict[str, ModelInfo],
    default_id: str,
) -> ModelDescriptor:
    """
    Resolve ``model_id`` in ``table``, falling back to ``default_id`` when it
    is absent or unknown.
    """
    if model_id and model_id in table:
        return ModelDescriptor(id=model_id, info=table[model_id])
    return ModelDescriptor(id=default_id, info=table[default_id])


def calculate_cost(info: ModelInfo, usage: Usage) -> Optional[float]:
    """
    Price a request from token counts. Returns None when the model has no
    known pricing.
    """
    if info.input_price is None or info.output_price is None:
        return None
    cost = (
        info.input_price * usage.input_tokens
        + info.output_price * usage.output_tokens
        + (info.cache_writes_price or 0.0) * (usage.cache_write_tokens or 0)
        + (info.cache_reads_price or 0.0) * (usage.cache_read_tokens or 0)
    )
    return cost / 1_000_000


def with_cost(info: ModelInfo, usage: Usage) -> Usage:
    return replace(usage, total_cost=calculate_cost(info, usage))


# =============================================================================
# Anthropic
# =============================================================================

anthropic_default_model_id = "claude-3-7-sonnet-20250219"
anthropic_models: Dict[str, ModelInfo] = {
    "claude-3-7-sonnet-20250219": ModelInfo(
        max_tokens=8192,
        context_window=200_000,
        supports_images=True,
        supports_prompt_cache=True,
        input_price=3.0,
        output_price=15.0,
        cache_writes_price=3.75,
        cache_reads_price=0.3,
    ),
    "claude-3-5-sonnet-20241022": ModelInfo(
        max_tokens=8192,
        context_window=200_000,
        supports_images=True,
        supports_prompt_cache=True,
        input_price=3.0,
        output_price=15.0,
        cache_writes_price=3.75,
        cache_reads_price=0.3,
    ),
    "claude-3-5-haiku-20241022": ModelInfo(
        max_tokens=8192,
        context_window=200_000,
        supports_images=False,
        supports_prompt_cache=True,
        input_price=0.8,
        output_price=4.0,
        cache_writes_price=1.0,
        cache_reads_price=0.08,
    ),
    "claude-3-opus-20240229": ModelInfo(
        max_tokens=4096,
        context_window=200_000,
        supports_images=True,
        supports_prompt_cache=True,
        input_price=15.0,
        output_price=75.0,
        cache_writes_price=18.75,
        cache_reads_price=1.5,
    ),
    "claude-3-haiku-20240307": ModelInfo(
        max_tokens=4096,
        context_window=200_000,
        supports_images=True,
        supports_prompt_cache=True,
        input_price=0.25,
        output_price=1.25,
        cache_writes_price=0.3,
        cache_reads_price=0.03,
    ),
}

# =============================================================================
# AWS Bedrock
# =============================================================================

bedrock_default_model_id = "anthropic.claude-3-7-sonnet-20250219-v1:0"
bedrock_models: Dict[str, ModelInfo] = {
    "anthropic.claude-3-7-sonnet-20250219-v1:0": replace(
        anthropic_models["claude-3-7-sonnet-20250219"], supports_prompt_cache=False
    ),
    "anthropic.claude-3-5-sonnet-20241022-v2:0": replace(
        anthropic_models["claude-3-5-sonnet-20241022"], supports_prompt_cache=False
    ),
    "anthropic.claude-3-5-haiku-20241022-v1:0": replace(
        anthropic_models["claude-3-5-haiku-20241022"], supports_prompt_cache=False
    ),
    "anthropic.claude-3-opus-20240229-v1:0": replace(
        anthropic_models["claude-3-opus-20240229"], supports_prompt_cache=False
    ),
    "anthropic.claude-3-haiku-20240307-v1:0": replace(
        anthropic_models["claude-3-haiku-20240307"], supports_prompt_cache=False
    ),
}

# =============================================================================
# GCP Vertex AI
# =============================================================================

vertex_default_model_id = "claude-3-7-sonnet@20250219"
vertex_models: Dict[str, ModelInfo] = {
    "claude-3-7-sonnet@20250219": anthropic_models["claude-3-7-sonnet-20250219"],
    "claude-3-5-sonnet-v2@20241022": anthropic_models["claude-3-5-sonnet-20241022"],
    "claude-3-5-haiku@20241022": anthropic_models["claude-3-5-haiku-20241022"],
    "claude-3-opus@20240229": anthropic_models["claude-3-opus-20240229"],
    "claude-3-haiku@20240307": anthropic_models["claude-3-haiku-20240307"],
}

# =============================================================================
# OpenAI-compatible endpoints with no model table of their own
# =============================================================================

openai_model_info_sane_defaults = ModelInfo(
    max_tokens=-1,
    context_window=128_000,
    supports_images=True,
    supports_prompt_cache=False,
    input_price=0.0,
    output_price=0.0,
)

# =============================================================================
# OpenAI (native)
# =============================================================================

openai_native_default_model_id = "gpt-4o"
openai_native_models: Dict[str, ModelInfo] = {
    "o3-mini": ModelInfo(
        max_tokens=100_000,
        context_window=200_000,
        supports_images=False,
        input_price=1.1,
        output_price=4.4,
    ),
    "o1": ModelInfo(
        max_tokens=100_000,
        context_window=200_000,
        supports_images=True,
        supports_tools=False,
        input_price=15.0,
        output_price=60.0,
    ),
    "o1-preview": ModelInfo(
        max_tokens=32_768,
        context_window=128_000,
        supports_images=True,
        supports_tools=False,
        input_price=15.0,
        output_price=60.0,
    ),
    "o1-mini": ModelInfo(
        max_tokens=65_536,
        context_window=128_000,
        supports_images=True,
        supports_tools=False,
        input_price=3.0,
        output_price=12.0,
    ),
    "gpt-4o": ModelInfo(
        max_tokens=4096,
        context_window=128_000,
        supports_images=True,
        input_price=2.5,
        output_price=10.0,
        cache_reads_price=1.25,
    ),
    "gpt-4o-mini": ModelInfo(
        max_tokens=16_384,
        context_window=128_000,
        supports_images=True,
        input_price=0.15,
        output_price=0.6,
        cache_reads_price=0.075,
    ),
}

# =============================================================================
# DeepSeek
# =============================================================================

deepseek_default_model_id = "deepseek-chat"
deepseek_models: Dict[str, ModelInfo] = {
    "deepseek-chat": ModelInfo(
        max_tokens=8000,
        context_window=64_000,
        supports_images=False,
        supports_prompt_cache=True,
        input_price=0.27,
        output_price=1.1,
        cache_writes_price=0.27,
        cache_reads_price=0.07,
    ),
    "deepseek-reasoner": ModelInfo(
        max_tokens=8000,
        context_window=64_000,
        supports_images=False,
        supports_tools=False,
        supports_prompt_cache=True,
        input_price=0.55,
        output_price=2.19,
        cache_writes_price=0.55,
        cache_reads_price=0.14,
    ),
}

# =============================================================================
# Qwen (DashScope)
# =============================================================================

qwen_default_model_id = "qwen-plus-latest"
qwen_models: Dict[str, ModelInfo] = {
    "qwen-max-latest": ModelInfo(
        max_tokens=8192,
        context_window=32_768,
        input_price=2.4,
        output_price=9.6,
    ),
    "qwen-plus-latest": ModelInfo(
        max_tokens=8192,
        context_window=131_072,
        input_price=0.8,
        output_price=2.0,
    ),
    "qwen-turbo-latest": ModelInfo(
        max_tokens=8192,
        context_window=1_000_000,
        input_price=0.3,
        output_price=0.6,
    ),
    "qwen-coder-plus-latest": ModelInfo(
        max_tokens=8192,
        context_window=131_072,
        input_price=3.5,
        output_price=7.0,
    ),
    "qwen-vl-max-latest": ModelInfo(
        max_tokens=8192,
        context_window=32_768,
        supports_images=True,
        input_price=3.0,
        output_price=9.0,
    ),
}

# =============================================================================
# Mistral
# =============================================================================

mistral_default_model_id = "codestral-latest"
mistral_models: Dict[str, ModelInfo] = {
    "mistral-large-latest": ModelInfo(
        max_tokens=131_000,
        context_window=131_000,
        input_price=2.0,
        output_price=6.0,
    ),
    "pixtral-large-latest": ModelInfo(
        max_tokens=131_000,
        context_window=131_000,
        supports_images=True,
        input_price=2.0,
        output_price=6.0,
    ),
    "codestral-latest": ModelInfo(
        max_tokens=256_000,
        context_window=256_000,
        input_price=0.3,
        output_price=0.9,
    ),
    "mistral-small-latest": ModelInfo(
        max_tokens=32_000,
        context_window=32_000,
        input_price=0.2,
        output_price=0.6,
    ),
}

# =============================================================================
# Gemini
# =============================================================================

gemini_default_model_id = "gemini-2.0-flash-001"
gemini_models: Dict[str, ModelInfo] = {
    "gemini-2.0-flash-001": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        input_price=0.1,
        output_price=0.4,
    ),
    "gemini-2.0-flash-lite-001": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        input_price=0.075,
        output_price=0.3,
    ),
    "gemini-1.5-pro-002": ModelInfo(
        max_tokens=8192,
        context_window=2_097_152,
        supports_images=True,
        input_price=1.25,
        output_price=5.0,
    ),
    "gemini-1.5-flash-002": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        input_price=0.075,
        output_price=0.3,
    ),
}

# =============================================================================
# xAI Grok
# =============================================================================

grok_default_model_id = "grok-2-latest"
grok_models: Dict[str, ModelInfo] = {
    "grok-2-latest": ModelInfo(
        max_tokens=8192,
        context_window=131_072,
        input_price=2.0,
        output_price=10.0,
    ),
    "grok-2-vision-latest": ModelInfo(
        max_tokens=8192,
        context_window=32_768,
        supports_images=True,
        input_price=2.0,
        output_price=10.0,
    ),
}
