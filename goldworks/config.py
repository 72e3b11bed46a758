"""Application configuration."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Environment variables take precedence over .env file.
    This makes it compatible with Docker (uses env vars) and
    local development (uses .env file).
    """

    APP_NAME: str = "Gold Factory Workflow"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./goldworks.db"

    # Workflow rules
    WEIGHT_VARIANCE_THRESHOLD: float = 5.0  # percent
    ORDER_NUMBER_PREFIX: str = "ORD"
    URGENT_PRIORITY: int = 8

    # Notifications
    NOTIFICATION_WEBHOOK_URL: Optional[str] = None
    NOTIFICATION_TIMEOUT: float = 5.0

    model_config = SettingsConfigDict(
        # Only load .env file if it exists (for local dev)
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
