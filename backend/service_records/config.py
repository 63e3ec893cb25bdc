from datetime import date, datetime
from typing import Literal

import pytz
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service record settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Service Records"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    # Only the audit trail lives here; employee records belong to the record store.
    database_url: str = "postgresql+asyncpg://service_records:service_records@db:5432/service_records"
    # Calendar used for "today" when previewing a rejoin.
    records_timezone: str = "Asia/Karachi"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def records_today() -> date:
    """Current calendar date in the records timezone."""
    return datetime.now(pytz.timezone(get_settings().records_timezone)).date()
