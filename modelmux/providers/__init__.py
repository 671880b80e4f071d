from .base import BaseHandler, SingleCompletionHandler
from .anthropic import AnthropicHandler
from .bedrock import AwsBedrockHandler
from .vertex import VertexHandler
from .openai import OpenAiHandler
from .openai_native import OpenAiNativeHandler
from .deepseek import DeepSeekHandler
from .openrouter import OpenRouterHandler
from .requesty import RequestyHandler
from .together import TogetherHandler
from .qwen import QwenHandler
from .mistral import MistralHandler
from .litellm import LiteLlmHandler
from .ollama import OllamaHandler
from .lmstudio import LmStudioHandler
from .gemini import GeminiHandler
from .grok import GrokHandler

__all__ = [
    "BaseHandler",
    "SingleCompletionHandler",
    "AnthropicHandler",
    "AwsBedrockHandler",
    "VertexHandler",
    "OpenAiHandler",
    "OpenAiNativeHandler",
    "DeepSeekHandler",
    "OpenRouterHandler",
    "RequestyHandler",
    "TogetherHandler",
    "QwenHandler",
    "MistralHandler",
    "LiteLlmHandler",
    "OllamaHandler",
    "LmStudioHandler",
    "GeminiHandler",
    "GrokHandler",
]
