"""File read/write tools."""

from pathlib import Path
from typing import Any

from nanoclaw.agent.tools.base import Tool, ToolResult


def _resolve_path(path: str, allowed_dir: Path | None = None) -> Path:
    """Resolve a path, enforcing the allowed directory if one is set."""
    resolved = Path(path).expanduser().resolve()
    if allowed_dir is not None:
        root = allowed_dir.expanduser().resolve()
        if resolved != root and root not in resolved.parents:
            raise PermissionError(f"Path {path} is outside allowed directory {root}")
    return resolved


class ReadFileTool(Tool):
    """Read a text file."""

    name = "read_file"
    description = "Read contents of a file"
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file to read",
            },
        },
        "required": ["path"],
    }

    def __init__(self, allowed_dir: Path | None = None) -> None:
        self._allowed_dir = allowed_dir

    async def execute(self, path: str = "", **kwargs: Any) -> ToolResult:
        if not path:
            return ToolResult.fail("Path is required")
        try:
            file_path = _resolve_path(path, self._allowed_dir)
            if not file_path.exists():
                return ToolResult.fail(f"File not found: {path}")
            if not file_path.is_file():
                return ToolResult.fail(f"Not a file: {path}")
            return ToolResult.ok(file_path.read_text(encoding="utf-8"))
        except PermissionError as e:
            return ToolResult.fail(str(e))
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.fail(f"Failed to read file: {e}")


class WriteFileTool(Tool):
    """Write text to a file, creating parent directories as needed."""

    name = "write_file"
    description = "Write content to a file"
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file to write",
            },
            "content": {
                "type": "string",
                "description": "Content to write to the file",
            },
        },
        "required": ["path", "content"],
    }

    def __init__(self, allowed_dir: Path | None = None) -> None:
        self._allowed_dir = allowed_dir

    async def execute(self, path: str = "", content: str | None = None, **kwargs: Any) -> ToolResult:
        if not path:
            return ToolResult.fail("Path is required")
        if content is None:
            return ToolResult.fail("Content is required")
        try:
            file_path = _resolve_path(path, self._allowed_dir)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
            return ToolResult.ok(f"File written successfully: {path} ({len(content.encode('utf-8'))} bytes)")
        except PermissionError as e:
            return ToolResult.fail(str(e))
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")
