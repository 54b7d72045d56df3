"""Tests for application configuration."""
import pytest

from core.config import Settings


class TestDatabaseUrl:
    """Tests for the database URL and its environment aliases."""

    def test_database_url_defaults_to_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A missing URL is allowed at load time (connect() reports it)."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("DATABASE_URI", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url is None

    def test_database_url_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """DATABASE_URL is read from the environment."""
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/threads")
        settings = Settings(_env_file=None)
        assert settings.database_url == "postgresql+asyncpg://db/threads"

    def test_database_uri_alias(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """DATABASE_URI is accepted as an alternative name."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("DATABASE_URI", "postgresql+asyncpg://db/alias")
        settings = Settings(_env_file=None)
        assert settings.database_url == "postgresql+asyncpg://db/alias"

    def test_database_url_keyword(self) -> None:
        """The field can be set directly by name."""
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite://")
        assert settings.database_url == "sqlite+aiosqlite://"


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Timeouts, cache and dev settings have sensible defaults."""
        for var in ("REDIS_URL", "REDIS_ENABLED", "PAGE_CACHE_TTL", "DEV_MODE"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_connect_timeout == 10.0
        assert settings.redis_url == "redis://localhost:6379"
        assert settings.redis_enabled is True
        assert settings.page_cache_ttl == 60
        assert settings.dev_mode is False
