"""Shell command execution tool.

Policy is checked in a fixed order before anything is spawned:

1. denied keywords (plain substring match) reject the command;
2. a non-empty allow list requires the command to start with one of its prefixes;
3. otherwise the command runs unrestricted.

Execution is bounded by a wall-clock timeout and a cap on combined
stdout+stderr bytes; exceeding either kills the process group.
"""

import asyncio
import os
import signal
from typing import Any

from loguru import logger

from nanoclaw.agent.tools.base import Tool, ToolResult

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT = 1024 * 1024
NO_OUTPUT = "Command executed successfully (no output)"


class _OutputLimitExceeded(Exception):
    pass


class ShellTool(Tool):
    """Execute a shell command in a subprocess and return its output."""

    name = "shell"
    description = "Execute shell commands"
    parameters = {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The shell command to execute",
            },
        },
        "required": ["command"],
    }

    def __init__(
        self,
        restrict_to_workspace: bool = False,
        allowed_commands: list[str] | None = None,
        denied_commands: list[str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_output: int = DEFAULT_MAX_OUTPUT,
        semaphore: asyncio.Semaphore | None = None,
    ) -> None:
        self.restrict_to_workspace = restrict_to_workspace
        self.allowed_commands = list(allowed_commands or [])
        self.denied_commands = list(denied_commands or [])
        self.timeout = timeout
        self.max_output = max_output
        # Shared across tools/sessions to cap concurrent subprocesses
        self._semaphore = semaphore

    def check_policy(self, command: str) -> str | None:
        """Return the rejection reason, or None if the command may run."""
        for denied in self.denied_commands:
            if denied and denied in command:
                return f"Command contains denied keyword: {denied}"

        if self.allowed_commands:
            stripped = command.lstrip()
            if not any(stripped.startswith(allowed) for allowed in self.allowed_commands):
                return "Command is not in the allowed list"

        return None

    async def execute(self, command: str = "", **kwargs: Any) -> ToolResult:
        if not command or not command.strip():
            return ToolResult.fail("Command is required")

        reason = self.check_policy(command)
        if reason:
            logger.warning(f"Shell command blocked: {reason} ({command[:80]})")
            return ToolResult.fail(reason)

        if self._semaphore is None:
            return await self._run(command)
        async with self._semaphore:
            return await self._run(command)

    async def _run(self, command: str) -> ToolResult:
        cwd = os.getcwd() if self.restrict_to_workspace else None
        logger.info(f"Running shell command: {command[:200]}")

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            return ToolResult.fail(f"Command failed: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(self._communicate(process), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.warning(f"Shell command timed out after {self.timeout:g}s: {command[:80]}")
            return ToolResult.fail(f"Command timed out after {self.timeout:g} seconds")
        except _OutputLimitExceeded:
            await self._kill(process)
            logger.warning(f"Shell command exceeded {self.max_output} output bytes: {command[:80]}")
            return ToolResult.fail(f"Command output exceeded {self.max_output} bytes")

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            detail = out or err or f"exit code {process.returncode}"
            return ToolResult.fail(f"Command failed: {detail}")

        output = out + (f"\nSTDERR:\n{err}" if err else "")
        return ToolResult.ok(output or NO_OUTPUT)

    async def _communicate(self, process: asyncio.subprocess.Process) -> tuple[bytes, bytes]:
        """Read both pipes to EOF, enforcing the combined byte cap."""
        total = 0
        out, err = bytearray(), bytearray()

        async def drain(stream: asyncio.StreamReader, buf: bytearray) -> None:
            nonlocal total
            while True:
                chunk = await stream.read(65536)
                if not chunk:
                    return
                total += len(chunk)
                if total > self.max_output:
                    raise _OutputLimitExceeded()
                buf.extend(chunk)

        readers = [
            asyncio.create_task(drain(process.stdout, out)),
            asyncio.create_task(drain(process.stderr, err)),
        ]
        try:
            await asyncio.gather(*readers)
        except BaseException:
            for reader in readers:
                reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            raise
        await process.wait()
        return bytes(out), bytes(err)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
