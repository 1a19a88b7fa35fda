"""Read and write nanoclaw configuration.

On disk the config is camelCase JSON (``~/.nanoclaw/config.json``); in
memory it is the snake_case ``Config`` model. Environment variables, plus
any found in a ``.env`` file, take precedence over the file.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Callable, Iterator

from loguru import logger
from pydantic import ValidationError

from nanoclaw.config.schema import Config
from nanoclaw.utils.helpers import get_data_path


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or validated."""


def get_config_path() -> Path:
    return get_data_path() / "config.json"


def _env_candidates() -> Iterator[Path]:
    cwd = Path.cwd()
    yield cwd / ".env"
    root = next((p for p in (cwd, *cwd.parents) if (p / "pyproject.toml").is_file()), None)
    if root is not None:
        yield root / ".env"
    yield get_data_path() / ".env"


def find_env_file() -> Path | None:
    """First existing .env among: cwd, the enclosing project root, the data dir."""
    return next((p for p in _env_candidates() if p.is_file()), None)


def _parse_env_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    return key.strip(), value.strip().strip("'\"")


def load_env_file(env_path: Path | None = None) -> dict[str, str]:
    """
    Export variables from a .env file into ``os.environ``.

    Variables that are already set win. Returns only the ones newly set.
    """
    path = env_path or find_env_file()
    if path is None or not path.is_file():
        return {}

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Failed to load .env from {path}: {e}")
        return {}

    exported: dict[str, str] = {}
    for parsed in filter(None, map(_parse_env_line, lines)):
        key, value = parsed
        if key not in os.environ:
            os.environ[key] = value
            exported[key] = value
    return exported


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("top-level value must be an object")
    return convert_keys(data)


def load_config(
    config_path: Path | None = None,
    env_path: Path | None = None,
    strict: bool = False,
) -> Config:
    """
    Build the effective configuration.

    Environment (including .env) beats config.json, which beats the model
    defaults. A missing file is fine. An unreadable or invalid file raises
    ``ConfigError`` when ``strict``; otherwise it is logged and defaults
    are used.
    """
    exported = load_env_file(env_path)
    if exported:
        logger.debug(f"Exported {len(exported)} variables from .env")

    path = config_path or get_config_path()
    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = _read_config_file(path)
        except (OSError, ValueError) as e:
            if strict:
                raise ConfigError(f"Failed to load config from {path}: {e}") from e
            logger.warning(f"Failed to load config from {path}: {e}")

    try:
        return Config(**data)
    except ValidationError as e:
        if strict:
            raise ConfigError(f"Invalid configuration in {path}: {e}") from e
        logger.warning(f"Invalid configuration in {path}, using defaults: {e}")
        return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Write ``config`` as camelCase JSON, creating the directory if needed."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(convert_to_camel(config.model_dump()), indent=2), encoding="utf-8")
    logger.debug(f"Config saved to {path}")


# ── Key case conversion ───────────────────────────────────────────

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _map_keys(data: Any, fn: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {fn(k): _map_keys(v, fn) for k, v in data.items()}
    if isinstance(data, list):
        return [_map_keys(item, fn) for item in data]
    return data


def convert_keys(data: Any) -> Any:
    """camelCase -> snake_case, recursively."""
    return _map_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case -> camelCase, recursively."""
    return _map_keys(data, snake_to_camel)
