"""In-process table of background subagent tasks.

Tasks move pending -> running -> completed|failed. At most
``max_concurrent`` run at once; the rest wait in creation order. Nothing
is persisted: the table lives and dies with the process.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

TaskRunner = Callable[[str], Awaitable[str]]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubagentTask:
    id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class SubagentManager:
    """
    Runs background tasks through an injected ``runner``.

    ``runner(description)`` does the actual work and returns the result
    text; any exception it raises marks the task failed. Must be used from
    inside a running event loop.
    """

    def __init__(self, runner: TaskRunner, max_concurrent: int = 3):
        self._runner = runner
        self.max_concurrent = max_concurrent
        self._tasks: dict[str, SubagentTask] = {}
        self._running: dict[str, asyncio.Task] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._closing = False

    async def spawn(self, description: str) -> str:
        task_id = f"task-{uuid.uuid4().hex[:12]}"
        self._tasks[task_id] = SubagentTask(id=task_id, description=description)
        self._done[task_id] = asyncio.Event()
        logger.info(f"Spawned subagent task {task_id}: {description[:80]}")
        self._start_pending()
        return task_id

    def _start_pending(self) -> None:
        if self._closing:
            return
        for task in self._tasks.values():
            if len(self._running) >= self.max_concurrent:
                return
            if task.status == TaskStatus.PENDING:
                task.status = TaskStatus.RUNNING
                task.started_at = _now()
                self._running[task.id] = asyncio.create_task(self._execute(task))

    async def _execute(self, task: SubagentTask) -> None:
        logger.info(f"Executing subagent task {task.id}")
        try:
            task.result = await self._runner(task.description)
            task.status = TaskStatus.COMPLETED
            logger.info(f"Subagent task completed: {task.id}")
        except asyncio.CancelledError:
            task.status = TaskStatus.FAILED
            task.error = "Cancelled"
            raise
        except Exception as e:
            task.status = TaskStatus.FAILED
            task.error = str(e) or type(e).__name__
            logger.error(f"Subagent task failed: {task.id}: {e}")
        finally:
            task.completed_at = _now()
            self._running.pop(task.id, None)
            self._signal(task.id)
            self._start_pending()

    def _signal(self, task_id: str) -> None:
        event = self._done.get(task_id)
        if event:
            event.set()

    # ── Queries ───────────────────────────────────────────────────

    def get_task(self, task_id: str) -> SubagentTask | None:
        return self._tasks.get(task_id)

    def all_tasks(self) -> list[SubagentTask]:
        return list(self._tasks.values())

    def running_tasks(self) -> list[SubagentTask]:
        return [t for t in self._tasks.values() if t.status == TaskStatus.RUNNING]

    def pending_tasks(self) -> list[SubagentTask]:
        return [t for t in self._tasks.values() if t.status == TaskStatus.PENDING]

    def get_running_count(self) -> int:
        return len(self._running)

    # ── Control ───────────────────────────────────────────────────

    def cancel(self, task_id: str) -> bool:
        """Cancel a task that has not started yet."""
        task = self._tasks.get(task_id)
        if not task or task.status != TaskStatus.PENDING:
            return False
        task.status = TaskStatus.FAILED
        task.error = "Cancelled by user"
        task.completed_at = _now()
        self._signal(task_id)
        logger.info(f"Cancelled subagent task {task_id}")
        return True

    def cleanup(self, max_age_seconds: float = 3600) -> int:
        """Drop finished tasks completed more than ``max_age_seconds`` ago."""
        cutoff = _now() - timedelta(seconds=max_age_seconds)
        stale = [
            tid for tid, t in self._tasks.items()
            if t.is_finished and t.completed_at is not None and t.completed_at < cutoff
        ]
        for tid in stale:
            del self._tasks[tid]
            self._done.pop(tid, None)
        logger.info(f"Cleaned up {len(stale)} old subagent tasks")
        return len(stale)

    async def wait_for(self, task_id: str, timeout: float = 60.0) -> SubagentTask:
        """Wait until a task finishes.

        Raises:
            KeyError: unknown task id.
            TimeoutError: the task did not finish in time.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"Task not found: {task_id}")
        if not task.is_finished:
            try:
                await asyncio.wait_for(self._done[task_id].wait(), timeout=timeout)
            except asyncio.TimeoutError:
                raise TimeoutError(f"Task timeout: {task_id}") from None
        return task

    async def shutdown(self) -> None:
        """Fail pending tasks, cancel running ones and wait for them to unwind."""
        self._closing = True
        for task in self.pending_tasks():
            task.status = TaskStatus.FAILED
            task.error = "Cancelled"
            task.completed_at = _now()
            self._signal(task.id)

        running = list(self._running.values())
        for t in running:
            t.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
