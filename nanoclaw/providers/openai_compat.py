"""OpenAI-compatible chat completion provider.

Covers every vendor that speaks the ``/chat/completions`` dialect
(OpenAI, OpenRouter, DeepSeek, Groq, Gemini's and Anthropic's compatibility
endpoints, vLLM, ...). Features:
- Automatic retries with exponential backoff on 429/5xx/timeouts
- Tool-call parsing into ``ToolCall`` objects
- Per-provider request stats
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from nanoclaw.agent.messages import Message, ToolCall
from nanoclaw.providers.base import LLMProvider, LLMResponse, ProviderError

_USAGE_KEYS = ("prompt_tokens", "completion_tokens", "total_tokens")


@dataclass
class _UsageCounters:
    requests: int = 0
    errors: int = 0
    latency_ms: int = 0
    total_tokens: int = 0


class OpenAICompatProvider(LLMProvider):
    """Async client for one OpenAI-compatible endpoint.

    Usage::

        provider = OpenAICompatProvider(
            name="openrouter",
            api_key="sk-or-...",
            api_base="https://openrouter.ai/api/v1",
        )
        resp = await provider.complete([Message.user("Hi")], "anthropic/claude-opus-4-5")
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        api_base: str,
        *,
        strip_prefix: str | None = None,
        extra_headers: dict[str, str] | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ) -> None:
        self.name = name
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self._strip_prefix = strip_prefix
        self._extra_headers = extra_headers or {}
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._client: httpx.AsyncClient | None = None
        self._stats = _UsageCounters()

    # ── Core API ──────────────────────────────────────────────────

    async def complete(
        self,
        messages: list[Message],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        body: dict[str, Any] = {
            "model": self.format_model_name(model),
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            body["tools"] = tools

        t0 = time.monotonic()
        try:
            data = await self._post_with_retry("/chat/completions", body)
        except ProviderError:
            self._stats.errors += 1
            raise
        latency_ms = int((time.monotonic() - t0) * 1000)

        return self._parse_response(data, model, latency_ms)

    def format_model_name(self, model: str) -> str:
        """Drop the vendor prefix (e.g. ``openai/``) when this endpoint expects bare ids."""
        if self._strip_prefix and model.startswith(self._strip_prefix + "/"):
            return model[len(self._strip_prefix) + 1:]
        return model

    def get_stats(self) -> dict[str, int]:
        s = self._stats
        return {
            "requests": s.requests,
            "errors": s.errors,
            "avg_latency_ms": int(s.latency_ms / max(s.requests, 1)),
            "total_tokens": s.total_tokens,
        }

    # ── Lifecycle ─────────────────────────────────────────────────

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Internal helpers ──────────────────────────────────────────

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        headers.update(self._extra_headers)
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                follow_redirects=True,
            )
        return self._client

    def _backoff(self, attempt: int) -> float:
        return self._retry_base_delay * (2 ** attempt)

    def _retry_after(self, resp: httpx.Response, attempt: int) -> float:
        """Seconds from a numeric Retry-After header, else the backoff delay."""
        try:
            return float(resp.headers.get("Retry-After", "2"))
        except ValueError:
            return self._backoff(attempt)

    async def _post_with_retry(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST ``body``, retrying rate limits, 5xx and transport failures."""
        client = await self._get_client()
        url = f"{self.api_base}{path}"
        headers = self._build_headers()
        attempts = self._max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                resp = await client.post(url, json=body, headers=headers, timeout=self._timeout)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = e
                logger.warning(f"{self.name} transport error on attempt {attempt + 1}/{attempts}: {e}")
                if not is_last:
                    await asyncio.sleep(self._backoff(attempt))
                continue

            if resp.status_code == 429:
                delay = self._retry_after(resp, attempt)
                last_error = ProviderError(f"{self.name}: rate limited")
                logger.warning(f"Rate limited by {self.name}, retry in {delay}s")
                if not is_last:
                    await asyncio.sleep(delay)
                continue

            if resp.status_code >= 500:
                last_error = ProviderError(f"{self.name}: HTTP {resp.status_code}")
                logger.warning(f"Server error {resp.status_code} from {self.name}")
                if not is_last:
                    await asyncio.sleep(self._backoff(attempt))
                continue

            try:
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                # 4xx other than 429 will not succeed on retry
                status = e.response.status_code
                logger.error(f"{self.name} API error: HTTP {status}")
                raise ProviderError(f"{self.name} API error: HTTP {status}: {e.response.text[:500]}") from e

            try:
                return resp.json()
            except ValueError as e:
                raise ProviderError(f"{self.name} returned a non-JSON body: {e}") from e

        raise ProviderError(f"{self.name}: failed after {attempts} attempts. Last error: {last_error}")

    def _parse_response(self, data: dict[str, Any], model: str, latency_ms: int) -> LLMResponse:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderError(f"Empty response from {self.name}/{model}")

        choice = choices[0]
        message = choice.get("message") or {}
        raw_usage = data.get("usage") or {}
        usage = {key: int(raw_usage.get(key) or 0) for key in _USAGE_KEYS}

        self._stats.requests += 1
        self._stats.latency_ms += latency_ms
        self._stats.total_tokens += usage["total_tokens"]

        return LLMResponse(
            content=message.get("content") or "",
            tool_calls=[ToolCall.from_dict(tc) for tc in message.get("tool_calls") or []],
            finish_reason=choice.get("finish_reason"),
            usage=usage,
        )
