"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "inboxsync"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Nylas
    nylas_api_uri: str = "https://api.us.nylas.com"
    http_timeout_seconds: float = 30.0

    # Storage
    sqlite_db_path: str = "/app/data/mail.db"

    # Sync
    sync_default_limit: int = 100
    sync_high_limit: int = 500
    sync_recent_days: int = 30
    readiness_timeout_seconds: float = 30.0
    readiness_interval_seconds: float = 2.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
