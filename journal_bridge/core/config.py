from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    # Application
    app_name: str = "journal-bridge"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Basic auth (disabled while both are empty)
    auth_username: str = ""
    auth_password: str = ""
    auth_realm: str = "journalctl proxy"

    # Journal scopes
    user_scope: bool = False
    docker: bool = False

    # External commands
    journalctl_bin: str = "journalctl"
    systemctl_bin: str = "systemctl"
    docker_bin: str = "docker"
    command_timeout: float = Field(10.0, gt=0)

    # Streaming
    backlog_lines: int = Field(100, ge=0)
    write_timeout: float = Field(10.0, gt=0)
    terminate_timeout: float = Field(5.0, gt=0)
    max_line_bytes: int = Field(1024 * 1024, gt=0)
    max_sessions: Optional[int] = Field(64, ge=1)

    @validator("log_level")
    def normalize_log_level(cls, v):
        return v.upper()

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_username or self.auth_password)

    class Config:
        env_file = ".env"
        env_prefix = "JOURNAL_BRIDGE_"
        case_sensitive = False


def get_settings(**overrides) -> Settings:
    """Resolve settings from the environment, with explicit overrides on top."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
