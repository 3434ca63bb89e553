"""Configuration for the contact reconciliation service.

Values come from the environment (or a local .env file) via Pydantic Settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """SQLite store configuration."""
    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    path: str = Field(default="contacts.db", description="SQLite database file")
    timeout: float = Field(default=5.0, gt=0, le=60, description="Seconds to wait for the write lock")


class LoggingSettings(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO")
    format: Literal["text", "json"] = Field(default="text")
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="Bitespeed Contact Reconciliation API")
    version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)

    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
