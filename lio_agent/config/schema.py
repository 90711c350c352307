"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lio_agent.utils.helpers import get_data_path


def _default_workspace() -> str:
    """Default workspace under active data directory."""
    return str(get_data_path() / "workspace")


class AgentDefaults(BaseModel):
    """Default generation settings."""
    workspace: str = Field(default_factory=_default_workspace)
    model: str = "gemini/gemini-2.0-flash-001"
    planner_model: str = ""  # Empty means reuse `model`
    max_tokens: int = 4096
    temperature: float = 0.7
    presence_penalty: float = 0.5
    frequency_penalty: float = 0.1
    max_steps: int = 20  # Tool loop ceiling
    max_attempts: int = 2  # Generator runs per turn, first try included
    history_limit: int = 30
    timezone: str = "Asia/Taipei"
    default_language: str = "繁體中文"


class AgentsConfig(BaseModel):
    """Agent configuration."""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM and media providers."""
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    elevenlabs: ProviderConfig = Field(default_factory=ProviderConfig)


class LineConfig(BaseModel):
    """LINE Messaging API channel configuration."""
    channel_access_token: str = ""
    channel_secret: str = ""
    api_base: str = "https://api.line.me"
    data_api_base: str = "https://api-data.line.me"
    max_messages_per_reply: int = 5
    loading_seconds: int = 20
    allow_from: list[str] = Field(default_factory=list)  # Allowed LINE user IDs, empty = everyone


class StorageConfig(BaseModel):
    """Blob storage (presigned upload) configuration."""
    presign_url: str = ""  # POST {filename} -> {url, publicUrl?}
    api_key: str = ""
    timeout_seconds: float = 30.0


class MediaConfig(BaseModel):
    """Voice and image synthesis configuration."""
    tts_model: str = "eleven_multilingual_v2"
    default_voice: str = "Sarah"
    voices: dict[str, str] = Field(
        default_factory=lambda: {
            "Sarah": "EXAVITQu4vr4xnSDxMaL",
            "Roger": "CwhRBWXzGAHq8TQ4Fs17",
        }
    )  # Persona name -> ElevenLabs voice id
    image_model: str = "dall-e-3"
    image_size: str = "1024x1024"
    timeout_seconds: float = 60.0


class WebToolsConfig(BaseModel):
    """Web lookup tool configuration."""
    search_model: str = "gemini/gemini-2.0-flash-001"
    timeout_seconds: float = 20.0
    max_chars: int = 20000


class FileToolsConfig(BaseModel):
    """Remote file parsing configuration."""
    parse_url: str = ""  # POST {url} -> {text}
    timeout_seconds: float = 60.0


class ToolsConfig(BaseModel):
    """Tools configuration."""
    web: WebToolsConfig = Field(default_factory=WebToolsConfig)
    file: FileToolsConfig = Field(default_factory=FileToolsConfig)


class GatewayConfig(BaseModel):
    """Webhook server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    callback_path: str = "/callback"
    push_token: str = ""  # Bearer token for the push endpoints, empty = open


class Config(BaseSettings):
    """Root configuration for Lio."""
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    line: LineConfig = Field(default_factory=LineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.agents.defaults.workspace).expanduser()

    def _provider_map(self) -> dict[str, ProviderConfig]:
        return {
            "gemini": self.providers.gemini,
            "openai": self.providers.openai,
            "anthropic": self.providers.anthropic,
            "openrouter": self.providers.openrouter,
        }

    def provider_for_model(self, model: str | None = None) -> str | None:
        """Name of the provider section that serves `model`."""
        model = (model or self.agents.defaults.model).lower()
        prefix = model.split("/", 1)[0] if "/" in model else ""
        if prefix in self._provider_map():
            return prefix
        if "gemini" in model:
            return "gemini"
        if "claude" in model:
            return "anthropic"
        if model.startswith(("gpt", "dall-e", "o1", "o3", "o4")):
            return "openai"
        if self.providers.openrouter.api_key:
            return "openrouter"
        return None

    def get_api_key(self, model: str | None = None) -> str | None:
        """API key for the provider serving `model`."""
        name = self.provider_for_model(model)
        if not name:
            return None
        return self._provider_map()[name].api_key or None

    def get_api_base(self, model: str | None = None) -> str | None:
        name = self.provider_for_model(model)
        if not name:
            return None
        return self._provider_map()[name].api_base

    model_config = SettingsConfigDict(
        env_prefix="LIO_",
        env_nested_delimiter="__",
    )
