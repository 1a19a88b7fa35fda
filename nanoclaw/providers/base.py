"""Completion provider contract consumed by the agent loop."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from nanoclaw.agent.messages import Message, ToolCall


class ProviderError(Exception):
    """Raised on provider configuration, transport or response failures."""


@dataclass
class LLMResponse:
    """One completion returned by a provider."""

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class LLMProvider(ABC):
    """A backend that turns a message list into one completion.

    Implementations must raise (ideally ProviderError) on failure; the loop
    does not inspect error payloads or retry.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        ...

    async def close(self) -> None:
        """Release network resources, if any."""
