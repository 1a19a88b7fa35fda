"""Agent tools module."""

from nanoclaw.agent.tools.base import Tool, ToolResult
from nanoclaw.agent.tools.filesystem import ReadFileTool, WriteFileTool
from nanoclaw.agent.tools.registry import ToolRegistry
from nanoclaw.agent.tools.shell import ShellTool
from nanoclaw.agent.tools.spawn import SpawnTool

__all__ = [
    "ReadFileTool",
    "ShellTool",
    "SpawnTool",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "WriteFileTool",
]
