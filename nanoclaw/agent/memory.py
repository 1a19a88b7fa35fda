"""Durable, per-session conversation log."""

import json
from pathlib import Path

from loguru import logger

from nanoclaw.agent.messages import Message, Role
from nanoclaw.utils.helpers import ensure_dir, get_memory_path, safe_filename

DEFAULT_MAX_MESSAGES = 100


class Memory:
    """
    Ordered message history for exactly one session.

    The whole list is rewritten to ``<memory_dir>/<session>.json`` after
    every mutation. When more than ``max_messages`` are stored, the oldest
    non-system messages are dropped; system messages are always kept.
    A single owner per session id is assumed (no file locking).
    """

    def __init__(
        self,
        session_id: str,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        memory_dir: Path | None = None,
    ):
        self._session_id = session_id
        self.max_messages = max_messages
        self._dir = ensure_dir(memory_dir) if memory_dir else get_memory_path()
        self._path = self._dir / f"{safe_filename(session_id)}.json"
        self._messages: list[Message] = []
        self._load()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def path(self) -> Path:
        return self._path

    @property
    def message_count(self) -> int:
        return len(self._messages)

    # ── Persistence ───────────────────────────────────────────────

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            self._messages = [Message.from_dict(item) for item in data]
            logger.debug(f"Memory loaded for {self._session_id}: {len(self._messages)} messages")
        except (OSError, ValueError, KeyError, TypeError) as e:
            # Corrupt history is treated as empty rather than fatal
            logger.error(f"Failed to load memory for {self._session_id}: {e}")
            self._messages = []

    def _save(self) -> None:
        try:
            data = [m.to_dict() for m in self._messages]
            self._path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.debug(f"Memory saved for {self._session_id}: {len(self._messages)} messages")
        except OSError as e:
            logger.error(f"Failed to save memory for {self._session_id}: {e}")

    # ── Mutation ──────────────────────────────────────────────────

    def add_message(self, message: Message) -> None:
        self._messages.append(message.copy())

        if len(self._messages) > self.max_messages:
            others = sum(1 for m in self._messages if m.role != Role.SYSTEM)
            to_drop = max(others - self.max_messages, 0)
            if to_drop:
                logger.debug(f"Memory trim for {self._session_id}: dropping {to_drop} oldest messages")
                kept: list[Message] = []
                for m in self._messages:
                    if m.role != Role.SYSTEM and to_drop:
                        to_drop -= 1
                        continue
                    kept.append(m)
                self._messages = kept

        self._save()

    def update_last_message(self, content: str) -> None:
        if not self._messages:
            return
        self._messages[-1].content = content
        self._save()

    def clear(self) -> None:
        self._messages = []
        self._save()

    # ── Access ────────────────────────────────────────────────────

    def get_messages(self) -> list[Message]:
        return [m.copy() for m in self._messages]

    def get_recent_messages(self, count: int) -> list[Message]:
        if count <= 0:
            return []
        return [m.copy() for m in self._messages[-count:]]
