"""Tool registry: name -> tool directory plus a uniform execution boundary."""

import inspect
from typing import Any

from loguru import logger

from nanoclaw.agent.tools.base import Tool, ToolResult


class ToolRegistry:
    """
    Registry of agent tools.

    Registration order is preserved for ``get_definitions()``. Registering a
    tool under an existing name replaces the previous one.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.debug(f"Tool '{tool.name}' re-registered, replacing previous instance")
        self._tools[tool.name] = tool
        logger.debug(f"Tool registered: {tool.name}")

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Wire schema of every registered tool, in registration order."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult:
        """
        Execute a tool by name.

        Never raises: unknown tools, invalid parameters and exceptions thrown
        by the tool all come back as a failed ToolResult.
        """
        tool = self._tools.get(name)
        if not tool:
            return ToolResult.fail(f"Tool not found: {name}")

        try:
            errors = tool.validate_params(params)
            if errors:
                return ToolResult.fail(f"Invalid parameters for tool '{name}': " + "; ".join(errors))
            result = tool.execute(**params)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Tool '{name}' raised: {e!r}")
            return ToolResult.fail(f"Tool execution failed: {e}")

        if not isinstance(result, ToolResult):
            # Tolerate tools that hand back a bare string
            return ToolResult.ok(str(result))
        return result

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
