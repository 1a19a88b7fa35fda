"""Filesystem and formatting helpers shared across nanoclaw."""

import os
import re
from datetime import datetime, timezone
from pathlib import Path


def get_data_path() -> Path:
    """Get the nanoclaw data directory (~/.nanoclaw, or $NANOCLAW_HOME)."""
    home = os.environ.get("NANOCLAW_HOME")
    if home:
        return ensure_dir(Path(home).expanduser())
    return ensure_dir(Path.home() / ".nanoclaw")


def get_memory_path() -> Path:
    """Directory holding one JSON file per session."""
    return ensure_dir(get_data_path() / "memory")


def get_skills_path() -> Path:
    """Directory holding user skills (<name>/SKILL.md)."""
    return get_data_path() / "skills"


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing, return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_filename(name: str) -> str:
    """Replace characters that are not allowed in file names."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip()
    return cleaned or "_"


def format_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 timestamp in UTC with millisecond precision."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def truncate(text: str, max_length: int) -> str:
    """Shorten text to max_length, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)] + "..."
