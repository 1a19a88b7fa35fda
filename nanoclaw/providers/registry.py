"""Provider table and selection by model name."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from nanoclaw.agent.messages import Message
from nanoclaw.config.schema import Config
from nanoclaw.providers.base import LLMProvider, LLMResponse, ProviderError
from nanoclaw.providers.openai_compat import OpenAICompatProvider


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one supported vendor."""

    name: str
    default_api_base: str | None
    keywords: tuple[str, ...] = ()
    is_gateway: bool = False
    strip_prefix: str | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)


PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec("openrouter", "https://openrouter.ai/api/v1", is_gateway=True),
    ProviderSpec(
        "anthropic",
        "https://api.anthropic.com/v1",
        keywords=("anthropic", "claude"),
        strip_prefix="anthropic",
        extra_headers={"anthropic-version": "2023-06-01"},
    ),
    ProviderSpec("openai", "https://api.openai.com/v1", keywords=("openai", "gpt"), strip_prefix="openai"),
    ProviderSpec("deepseek", "https://api.deepseek.com/v1", keywords=("deepseek",), strip_prefix="deepseek"),
    ProviderSpec("groq", "https://api.groq.com/openai/v1", keywords=("groq",), strip_prefix="groq"),
    ProviderSpec(
        "gemini",
        "https://generativelanguage.googleapis.com/v1beta/openai",
        keywords=("gemini",),
        strip_prefix="gemini",
    ),
    ProviderSpec("moonshot", "https://api.moonshot.cn/v1", keywords=("moonshot", "kimi"), strip_prefix="moonshot"),
    ProviderSpec("zhipu", "https://open.bigmodel.cn/api/paas/v4", keywords=("zhipu", "glm"), strip_prefix="zhipu"),
    ProviderSpec(
        "dashscope",
        "https://dashscope.aliyuncs.com/compatible-mode/v1",
        keywords=("dashscope", "qwen"),
        strip_prefix="dashscope",
    ),
    # vLLM has no public default endpoint; api_base must be configured
    ProviderSpec("vllm", None, keywords=("vllm",), strip_prefix="vllm"),
)


def find_spec(name: str) -> ProviderSpec | None:
    for spec in PROVIDERS:
        if spec.name == name:
            return spec
    return None


def find_spec_by_model(model: str) -> ProviderSpec | None:
    """Match a model id against provider keywords.

    An explicit ``vendor/`` prefix wins over keyword matches anywhere in the id.
    """
    lowered = model.lower()
    prefix = lowered.split("/", 1)[0] if "/" in lowered else ""
    if prefix:
        spec = find_spec(prefix)
        if spec and not spec.is_gateway:
            return spec
    for spec in PROVIDERS:
        if any(kw in lowered for kw in spec.keywords):
            return spec
    return None


class ProviderManager(LLMProvider):
    """Routes each completion to a configured provider.

    Selection order: keyword match on the model id (if that provider has
    credentials), then a configured gateway (OpenRouter), then the first
    configured provider.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self._cache: dict[str, LLMProvider] = {}

    def detect_provider(self, model: str) -> str:
        providers = self.config.providers

        spec = find_spec_by_model(model)
        if spec and providers.get(spec.name).is_configured:
            logger.debug(f"Provider detected from model name: {spec.name} ({model})")
            return spec.name

        for gateway in (s for s in PROVIDERS if s.is_gateway):
            if providers.get(gateway.name).is_configured:
                logger.debug(f"Using gateway provider {gateway.name} for {model}")
                return gateway.name

        configured = providers.configured()
        if configured:
            logger.debug(f"Using first configured provider {configured[0]} for {model}")
            return configured[0]

        raise ProviderError("No provider configured")

    def get_provider(self, name: str) -> LLMProvider:
        if name in self._cache:
            return self._cache[name]

        spec = find_spec(name)
        if spec is None:
            raise ProviderError(f"Unknown provider: {name}")

        cfg = self.config.providers.get(name)
        if cfg is None or not cfg.is_configured:
            raise ProviderError(f"Provider {name} is not configured")

        api_base = cfg.api_base or spec.default_api_base
        if not api_base:
            raise ProviderError(f"{name} provider requires api_base configuration")

        provider = OpenAICompatProvider(
            name=name,
            api_key=cfg.api_key,
            api_base=api_base,
            strip_prefix=spec.strip_prefix,
            extra_headers=dict(spec.extra_headers),
        )
        self._cache[name] = provider
        return provider

    async def complete(
        self,
        messages: list[Message],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        name = self.detect_provider(model)
        provider = self.get_provider(name)
        logger.info(f"Completing chat via {name}: model={model}, messages={len(messages)}")
        return await provider.complete(messages, model, temperature, max_tokens, tools)

    async def close(self) -> None:
        for provider in self._cache.values():
            await provider.close()
        self._cache.clear()
