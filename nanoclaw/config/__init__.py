"""Configuration module for nanoclaw."""

from nanoclaw.config.loader import ConfigError, load_config, get_config_path, save_config
from nanoclaw.config.schema import AgentConfig, Config, ProviderConfig, ToolsConfig

__all__ = [
    "AgentConfig",
    "Config",
    "ConfigError",
    "ProviderConfig",
    "ToolsConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
