# assistant_sidecar/config/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, model_validator
from pathlib import Path
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from assistant_sidecar.exceptions.config import ConfigError

logger = logging.getLogger("Settings")

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to calendar, email, "
    "and other productivity tools."
)


class Settings(BaseSettings):
    # === Provider ===
    llm_provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    ollama_host: str = "http://localhost:11434"
    default_model: str = "gpt-4o-mini"
    # Blank: a cheap default for OpenAI, otherwise the request's model
    summary_model: Optional[str] = None
    temperature: float = 0.5
    request_timeout: float = 120.0

    # === Conversation memory ===
    max_recent_turns: int = Field(default=6, ge=1)
    max_conversations: Optional[int] = Field(default=None, ge=1)
    default_conversation_id: str = "default"
    require_conversation_id: bool = False

    # === Capabilities ===
    max_tool_steps: int = Field(default=20, ge=1)
    disallowed_tools: str = "shell,file_system,network"
    google_mcp_credentials_dir: Optional[Path] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # === MCP capability server (disabled while mcp_command is unset) ===
    mcp_server_name: str = "google_workspace"
    mcp_command: Optional[str] = None
    mcp_args: List[str] = Field(default_factory=list)
    mcp_env: Dict[str, str] = Field(default_factory=dict)
    mcp_cwd: Optional[Path] = None

    # === Transport ===
    host: str = "127.0.0.1"
    agent_port: int = Field(
        default=8765, validation_alias=AliasChoices("AGENT_PORT", "PORT", "agent_port")
    )
    log_level: str = "INFO"

    # === Pydantic V2 Configuration ===
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def validate_and_compute(self) -> "Settings":
        """Validate and normalise derived fields."""

        # 1. Validate log level
        if self.log_level.upper() not in logging._nameToLevel:
            raise ConfigError(f"Invalid log level: {self.log_level}", "log_level")
        self.log_level = self.log_level.upper()

        # 2. Validate provider selection
        normalized_provider = (self.llm_provider or "openai").strip().lower()
        if normalized_provider not in {"openai", "ollama"}:
            raise ConfigError(
                "Invalid llm_provider value. Expected 'openai' or 'ollama'. "
                f"Got: {self.llm_provider}",
                "llm_provider",
                self.llm_provider,
            )
        self.llm_provider = normalized_provider

        # 3. Conversation ids must be usable as dictionary keys in logs/headers
        if not self.default_conversation_id.strip():
            raise ConfigError(
                "default_conversation_id must not be blank", "default_conversation_id"
            )

        return self

    # === Convenience Properties ===

    @property
    def disallowed_tool_names(self) -> List[str]:
        """Parsed form of the comma separated disallowed tool list."""
        return [
            name.strip() for name in self.disallowed_tools.split(",") if name.strip()
        ]

    @property
    def credentials_dir(self) -> Path:
        """Directory holding the connected account's OAuth credential files."""
        if self.google_mcp_credentials_dir:
            return Path(self.google_mcp_credentials_dir).expanduser()
        home = Path.home()
        if str(home):
            return home / ".google_workspace_mcp" / "credentials"
        return Path.cwd() / ".credentials"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings instance, read once from the environment."""
    return Settings()
