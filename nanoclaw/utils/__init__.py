"""Utility helpers."""

from nanoclaw.utils.helpers import (
    ensure_dir,
    format_timestamp,
    get_data_path,
    get_memory_path,
    get_skills_path,
    safe_filename,
    truncate,
)

__all__ = [
    "ensure_dir",
    "format_timestamp",
    "get_data_path",
    "get_memory_path",
    "get_skills_path",
    "safe_filename",
    "truncate",
]
