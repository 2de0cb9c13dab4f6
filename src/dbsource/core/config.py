"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings.

    All settings can be overridden via environment variables.
    Prefix: DBSOURCE_
    """

    model_config = SettingsConfigDict(
        env_prefix="DBSOURCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reading
    default_fetch_size: int = Field(
        default=1000,
        description="Rows fetched per round trip when a source does not set fetchSize",
    )
    connect_timeout_seconds: int = Field(
        default=30,
        description="Connect timeout passed to drivers that accept one",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
