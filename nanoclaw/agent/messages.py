"""Conversation message shapes shared by memory, context building and providers.

The dict form produced by ``Message.to_dict()`` is both the on-disk shape
used by ``Memory`` and the OpenAI-style wire shape sent to providers, so
tool-call correlation fields survive a save/load round trip unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    """One invocation requested by the model."""

    id: str
    name: str
    arguments: str = "{}"
    type: str = "function"

    def parse_arguments(self) -> dict[str, Any]:
        """Decode the argument payload.

        Raises:
            ValueError if the payload is not JSON or not a JSON object.
        """
        if not self.arguments or not self.arguments.strip():
            return {}
        try:
            args = json.loads(self.arguments)
        except json.JSONDecodeError as e:
            raise ValueError(f"arguments are not valid JSON ({e.msg})") from e
        if not isinstance(args, dict):
            raise ValueError(f"arguments must be a JSON object, got {type(args).__name__}")
        return args

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        fn = data.get("function") or {}
        arguments = fn.get("arguments", "{}")
        if not isinstance(arguments, str):
            # Some providers hand back already-decoded arguments
            arguments = json.dumps(arguments, ensure_ascii=False)
        return cls(
            id=data.get("id", ""),
            name=fn.get("name", ""),
            arguments=arguments,
            type=data.get("type", "function"),
        )


@dataclass
class Message:
    """One conversation turn."""

    role: Role
    content: str = ""
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None

    def __post_init__(self) -> None:
        self.role = Role(self.role)
        if self.content is None:
            self.content = ""

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> Message:
        return cls(role=Role.ASSISTANT, content=content or "", tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, content: str, name: str, tool_call_id: str) -> Message:
        return cls(role=Role.TOOL, content=content, name=name, tool_call_id=tool_call_id)

    def copy(self) -> Message:
        return Message.from_dict(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        raw_calls = data.get("tool_calls")
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            name=data.get("name"),
            tool_call_id=data.get("tool_call_id"),
            tool_calls=[ToolCall.from_dict(tc) for tc in raw_calls] if raw_calls else None,
        )
