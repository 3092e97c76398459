"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: PostgresDsn = Field(
        default=...,
        description="PostgreSQL connection URL with asyncpg driver",
    )
    database_pool_size: int = Field(
        default=5,
        ge=1,
        description="Number of pooled connections kept open",
    )
    database_max_overflow: int = Field(
        default=10,
        ge=0,
        description="Connections allowed beyond the pool size",
    )

    # Application
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode (echoes SQL)",
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Analytics sessions
    session_retention_days: int = Field(
        default=90,
        ge=1,
        description="Sessions started earlier than this many days ago are purged",
    )
    default_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Page size used when listing records without an explicit limit",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()
