"""Unit tests for settings and logging setup."""

import pytest
import structlog

from shelfwise.config import Settings, get_settings
from shelfwise.core.logging import configure_logging


class TestSettings:
    """Test settings defaults and overrides."""

    def test_defaults(self):
        """Defaults match the documented tuning values."""
        settings = Settings(_env_file=None)

        assert settings.min_common_books == 3
        assert settings.optimistic_retries == 5
        assert settings.trending_cache_ttl == 300
        assert settings.is_production is False

    def test_environment_overrides(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("MIN_COMMON_BOOKS", "4")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.min_common_books == 4
        assert settings.is_production is True

    def test_get_settings_is_cached(self):
        """Settings are built once per process."""
        assert get_settings() is get_settings()


class TestConfigureLogging:
    """Test structlog setup per environment."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_in_production(self):
        """Production logs render as JSON."""
        configure_logging(Settings(_env_file=None, environment="production"))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_console_in_development(self):
        """Development logs render for the console."""
        configure_logging(Settings(_env_file=None, environment="development"))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)
