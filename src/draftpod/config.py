"""
Configuration management for draftpod.

Uses Pydantic Settings to load configuration from environment variables
with sensible defaults for development. The host password should only ever
be set via environment variables or a .env file.

Usage:
    from draftpod.config import settings
    print(settings.event_ttl_seconds)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the project root directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================

    storage_backend: str = Field(
        default="sql",
        description="Event store backend: 'sql' or 'memory'",
    )
    database_url: str = Field(
        default="sqlite:///./draftpod.db",
        description="SQLAlchemy connection URL for the event store",
    )
    db_pool_size: int = Field(
        default=5,
        description="Number of connections to keep in the pool (ignored for SQLite)",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max additional connections beyond pool_size (ignored for SQLite)",
    )
    db_echo: bool = Field(
        default=False,
        description="Log every SQL statement (also on when log_level is DEBUG)",
    )

    # Every write refreshes the expiry; an event nobody touches for a day is gone
    event_ttl_seconds: int = Field(
        default=60 * 60 * 24,
        description="Expiry applied to event documents and code mappings on each write",
    )

    # ==========================================================================
    # Host Authentication
    # ==========================================================================

    host_pass: Optional[str] = Field(
        default=None,
        description="Shared secret the host enters to unlock admin controls",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================

    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to",
    )
    api_port: int = Field(
        default=8000,
        description="Port for the API server",
    )
    api_reload: bool = Field(
        default=False,
        description="Enable auto-reload for development",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="console",
        description="Log format: 'json' for production, 'console' for dev",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower_v = v.lower()
        if lower_v not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return lower_v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        lower_v = v.lower()
        if lower_v not in {"sql", "memory"}:
            raise ValueError("storage_backend must be 'sql' or 'memory'")
        return lower_v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once,
    which is important because loading from .env can be slow.
    """
    return Settings()


# Convenience alias for importing
settings = get_settings()
