"""Configuration schema for nanoclaw."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class ProviderConfig(BaseModel):
    """Credentials and endpoint for one LLM provider."""

    api_key: str = ""
    api_base: Optional[str] = None
    enabled: bool = True

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


class ProvidersConfig(BaseModel):
    """All supported providers. Unset providers have an empty api_key."""

    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    groq: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)
    moonshot: ProviderConfig = Field(default_factory=ProviderConfig)
    zhipu: ProviderConfig = Field(default_factory=ProviderConfig)
    dashscope: ProviderConfig = Field(default_factory=ProviderConfig)
    vllm: ProviderConfig = Field(default_factory=ProviderConfig)

    def get(self, name: str) -> Optional[ProviderConfig]:
        value = getattr(self, name, None)
        return value if isinstance(value, ProviderConfig) else None

    def configured(self) -> list[str]:
        """Names of providers with credentials, in declaration order."""
        return [name for name in type(self).model_fields if self.get(name).is_configured]


class AgentConfig(BaseModel):
    """Immutable per-agent settings used by the loop and the context builder."""

    model_config = ConfigDict(frozen=True)

    model: str = "anthropic/claude-opus-4-5"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, gt=0)
    system_prompt: Optional[str] = None
    max_iterations: int = Field(default=10, gt=0)
    max_memory_messages: int = Field(default=100, gt=0)
    max_context_chars: Optional[int] = Field(default=None, gt=0)


class AgentsConfig(BaseModel):
    defaults: AgentConfig = Field(default_factory=AgentConfig)


class ToolsConfig(BaseModel):
    """Built-in tool settings."""

    restrict_to_workspace: bool = False
    allowed_commands: list[str] = Field(default_factory=list)
    denied_commands: list[str] = Field(default_factory=list)
    shell_timeout: float = Field(default=30.0, gt=0)
    shell_max_output: int = Field(default=1024 * 1024, gt=0)
    max_concurrent_shell: int = Field(default=4, gt=0)


class SubagentsConfig(BaseModel):
    max_concurrent: int = Field(default=3, gt=0)


class Config(BaseSettings):
    """Root configuration. Environment variables override file values.

    E.g. NANOCLAW_AGENTS__DEFAULTS__MODEL=openai/gpt-4o
    """

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    subagents: SubagentsConfig = Field(default_factory=SubagentsConfig)

    model_config = SettingsConfigDict(
        env_prefix="NANOCLAW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment first, then values passed in (from config.json)."""
        return (env_settings, init_settings)
