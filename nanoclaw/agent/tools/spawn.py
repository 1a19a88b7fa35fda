"""Spawn tool: hand a task to a background subagent."""

from typing import Any

from nanoclaw.agent.subagent import SubagentManager
from nanoclaw.agent.tools.base import Tool, ToolResult


class SpawnTool(Tool):
    """Queue a self-contained task on the subagent manager."""

    name = "spawn"
    description = """Run a task in the background with a separate subagent.

Use this for long, self-contained work that does not need to block the
current reply. The subagent has its own conversation and the same tools.
Returns a task id; the result is not reported back into this conversation.
"""
    parameters = {
        "type": "object",
        "properties": {
            "task": {
                "type": "string",
                "description": "Complete description of the task, including all needed context",
                "minLength": 1,
            },
        },
        "required": ["task"],
    }

    def __init__(self, manager: SubagentManager):
        self._manager = manager

    async def execute(self, task: str = "", **kwargs: Any) -> ToolResult:
        task_id = await self._manager.spawn(task)
        status = self._manager.get_task(task_id).status.value
        return ToolResult.ok(f"Spawned background task {task_id} ({status})")
