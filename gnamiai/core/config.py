"""
Configuration Settings.

Two layers of configuration exist:

- ``Settings``: process settings bound from environment variables and the
  ``.env`` file through pydantic-settings (home directory, database URL,
  logging, provider API keys).
- ``GnamiConfig``: the user configuration persisted as JSON at
  ``$GNAMI_HOME/gnamiai.json``. It is edited by the persona bootstrap (the
  assistant name) and read by the gateway wiring.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Process settings
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are bound from environment variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Paths
    # =====================================================================
    gnami_home: Optional[str] = Field(
        default=None,
        description="Root directory for config, data and workspace (defaults to ~/.gnamiai)",
        alias="GNAMI_HOME",
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Async SQLAlchemy URL for the gateway store (defaults to SQLite under the data dir)",
        alias="GNAMI_DATABASE_URL",
    )

    # =====================================================================
    # Server / logging
    # =====================================================================
    server_host: str = Field(default="127.0.0.1", alias="GNAMI_SERVER_HOST")
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="GNAMI_LOG_LEVEL",
    )
    log_format: str = Field(default="detailed", alias="GNAMI_LOG_FORMAT")
    log_file_dir: str = Field(default="logs", alias="GNAMI_LOG_FILE_DIR")
    enable_file_logging: bool = Field(default=False, alias="GNAMI_ENABLE_FILE_LOGGING")

    # =====================================================================
    # Model providers
    # =====================================================================
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    local_model_base_url: Optional[str] = Field(default=None, alias="LOCAL_MODEL_BASE_URL")
    local_model_api_key: Optional[str] = Field(default=None, alias="LOCAL_MODEL_API_KEY")

    # =====================================================================
    # Long-term memory (Mem0)
    # =====================================================================
    mem0_api_key: Optional[str] = Field(default=None, alias="MEM0_API_KEY")
    mem0_base_url: str = Field(default="https://api.mem0.ai", alias="MEM0_BASE_URL")
    mem0_entity: Optional[str] = Field(default=None, alias="MEM0_ENTITY")
    mem0_org_id: Optional[str] = Field(default=None, alias="MEM0_ORG_ID")
    mem0_project_id: Optional[str] = Field(default=None, alias="MEM0_PROJECT_ID")

    # =====================================================================
    # Channels
    # =====================================================================
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")

    # =====================================================================
    # Derived paths
    # =====================================================================
    @property
    def home(self) -> Path:
        return Path(self.gnami_home).expanduser() if self.gnami_home else Path.home() / ".gnamiai"

    @property
    def config_path(self) -> Path:
        return self.home / "gnamiai.json"

    @property
    def data_dir(self) -> Path:
        return self.home / "data"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "gateway.sqlite"

    @property
    def basic_memory_path(self) -> Path:
        return self.data_dir / "basic-memory.json"

    @property
    def memory_entity_lock_path(self) -> Path:
        return self.data_dir / "memory-entity.lock"

    @property
    def workspace_dir(self) -> Path:
        return self.home / "workspace"

    @property
    def skills_dir(self) -> Path:
        return self.workspace_dir / "skills"

    @property
    def store_url(self) -> str:
        return self.database_url or f"sqlite+aiosqlite:///{self.db_path}"


settings = Settings()


# =====================================================================
# Persisted user configuration
# =====================================================================


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GatewayConfig(_ConfigModel):
    port: int = Field(default=18789, ge=1, le=65535)
    auth_token: Optional[str] = Field(default=None, alias="authToken", min_length=8)


class AgentConfig(_ConfigModel):
    assistant_name: str = Field(default="GnamiBot", alias="assistantName", min_length=1)
    model: str = Field(default="openai/gpt-5.3-codex", min_length=1)
    fallback_model: str = Field(default="gpt-5.2-codex", alias="openaiFallbackModel", min_length=1)
    openai_api_key: Optional[str] = Field(default=None, alias="openaiApiKey")
    local_base_url: Optional[str] = Field(default="http://127.0.0.1:11434/v1", alias="localBaseUrl")
    local_api_key: Optional[str] = Field(default=None, alias="localApiKey")


class TelegramConfig(_ConfigModel):
    bot_token: str = Field(alias="botToken", min_length=1)
    polling_interval_ms: int = Field(default=2500, alias="pollingIntervalMs", ge=1000)


class WebchatConfig(_ConfigModel):
    enabled: bool = True


class ChannelsConfig(_ConfigModel):
    telegram: Optional[TelegramConfig] = None
    webchat: WebchatConfig = Field(default_factory=WebchatConfig)


class MemoryConfig(_ConfigModel):
    enabled: bool = False
    mem0_api_key: Optional[str] = Field(default=None, alias="mem0ApiKey")
    mem0_base_url: Optional[str] = Field(default=None, alias="mem0BaseUrl")
    user_id_prefix: str = Field(default="gnamiai", alias="userIdPrefix", min_length=1)
    entity_name: Optional[str] = Field(default=None, alias="entityName")


class BrowserIntegrationConfig(_ConfigModel):
    enabled: bool = False
    debugger_url: Optional[str] = Field(default=None, alias="debuggerUrl")


class IntegrationsConfig(_ConfigModel):
    browser: BrowserIntegrationConfig = Field(default_factory=BrowserIntegrationConfig)


class GnamiConfig(_ConfigModel):
    """User configuration stored at ``$GNAMI_HOME/gnamiai.json``."""

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    integrations: IntegrationsConfig = Field(default_factory=IntegrationsConfig)


def load_config(path: Optional[Path] = None) -> GnamiConfig:
    """Load the user configuration.

    A missing file yields the defaults. Invalid JSON or values that fail
    validation raise (``json.JSONDecodeError`` / ``pydantic.ValidationError``).
    """
    path = path or settings.config_path
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return GnamiConfig()
    return GnamiConfig.model_validate(json.loads(raw))


def save_config(config: GnamiConfig, path: Optional[Path] = None) -> None:
    """Validate and write the user configuration as indented JSON."""
    path = path or settings.config_path
    validated = GnamiConfig.model_validate(config.model_dump(by_alias=True))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(validated.model_dump_json(by_alias=True, indent=2, exclude_none=True), encoding="utf-8")
