"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database. Left optional so a missing value surfaces as ConfigurationError
    # from db.session.connect() instead of failing at import time.
    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("database_url", "DATABASE_URL", "DATABASE_URI"),
    )
    database_connect_timeout: float = 10.0

    # Redis (page cache)
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True
    page_cache_ttl: int = 60

    # Development mode - bypasses the identity header for local development
    dev_mode: bool = False
    dev_user_id: str = "dev-user"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
