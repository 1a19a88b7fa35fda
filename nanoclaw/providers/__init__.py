"""LLM provider abstraction module."""

from nanoclaw.providers.base import LLMProvider, LLMResponse, ProviderError
from nanoclaw.providers.openai_compat import OpenAICompatProvider
from nanoclaw.providers.registry import PROVIDERS, ProviderManager, ProviderSpec

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "OpenAICompatProvider",
    "PROVIDERS",
    "ProviderError",
    "ProviderManager",
    "ProviderSpec",
]
