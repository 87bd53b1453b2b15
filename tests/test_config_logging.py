"""
Tests for environment-driven settings and structlog configuration.
"""

import logging

import pytest
import structlog

from shieldcheck.config import Settings, get_settings
from shieldcheck.logging_config import configure_logging


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSettings:

    def test_defaults(self, settings):
        assert settings.MAX_GRID_COMPLEXITY == 100_000_000
        assert settings.ORTHOGONALITY_TOLERANCE_DEG == 1.0
        assert settings.PARALLEL_CATEGORIES is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SHIELDCHECK_MAX_GRID_COMPLEXITY", "5000")
        monkeypatch.setenv("SHIELDCHECK_PARALLEL_CATEGORIES", "true")
        settings = Settings()

        assert settings.MAX_GRID_COMPLEXITY == 5000
        assert settings.PARALLEL_CATEGORIES is True

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestConfigureLogging:

    def test_json_renderer_by_default(self, reset_structlog):
        configure_logging(Settings(DEBUG=False))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_in_debug(self, reset_structlog):
        configure_logging(Settings(DEBUG=True))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    @pytest.mark.parametrize("level", ["warning", "WARNING", "nonsense"])
    def test_level_filter(self, reset_structlog, level):
        configure_logging(Settings(LOG_LEVEL=level))
        expected = structlog.make_filtering_bound_logger(
            logging.INFO if level == "nonsense" else logging.WARNING
        )
        assert structlog.get_config()["wrapper_class"] is expected
