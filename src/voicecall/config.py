"""
Process-wide settings: server URL, CORS origins and the audio store.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server settings from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "voicecall"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    port: int = Field(default=3001, ge=1, le=65535)
    server_url: str = Field(
        default="http://localhost:3001",
        description="Public base URL of this server, used for provider callbacks",
    )

    # CORS
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Origin of the web frontend",
    )
    cors_origins: str = Field(
        default="http://localhost:3002,http://localhost:3001",
        description="Comma-separated list of additional allowed CORS origins",
    )

    # Audio storage
    audio_dir: Path = Field(
        default=Path("audio"),
        description="Directory where synthesized audio files are stored",
    )
    cleanup_default_hours: int = Field(
        default=24,
        ge=0,
        description="Default max age for the audio cleanup sweep",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Frontend origin plus the extra CORS origins."""
        extra = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        return [self.frontend_url, *extra]


@lru_cache(maxsize=1)
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    # Under pytest env vars change between tests; do not freeze a Settings.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
