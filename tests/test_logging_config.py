"""
PlazaNetInsights - Logging Configuration Tests

Tests logger setup and the LOG_LEVEL / LOG_DIR settings.
"""

import logging
import logging.handlers
import sys

import pytest

from plazanet.utils.config import Config
from plazanet.utils.errors import ConfigurationError
from plazanet.utils.logging_config import parse_log_level, setup_logging


@pytest.fixture
def root_logger():
    """Restore the root logger after each test."""
    logger = logging.getLogger()
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def observium_env(monkeypatch, tmp_path):
    """Required Observium settings in an isolated working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OBSERVIUM_BASE_URL", "observium.example.net")
    monkeypatch.setenv("OBSERVIUM_USERNAME", "reader")
    monkeypatch.setenv("OBSERVIUM_PASSWORD", "secret")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_DIR", raising=False)


class TestParseLogLevel:
    """Tests for parse_log_level."""

    @pytest.mark.parametrize("name,expected", [
        ("debug", logging.DEBUG),
        (" INFO ", logging.INFO),
        ("Warning", logging.WARNING),
    ])
    def test_known_levels(self, name, expected):
        """Test case-insensitive level names."""
        assert parse_log_level(name) == expected

    @pytest.mark.parametrize("name", ["verbose", "", "10"])
    def test_unknown_levels(self, name):
        """Test that anything else is a configuration error."""
        with pytest.raises(ConfigurationError):
            parse_log_level(name)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self, root_logger):
        """Test that no log_dir means a single stderr handler."""
        setup_logging(level=logging.WARNING)

        assert len(root_logger.handlers) == 1
        assert root_logger.handlers[0].stream is sys.stderr
        assert root_logger.handlers[0].level == logging.WARNING

    def test_rotating_file(self, root_logger, tmp_path):
        """Test that the file handler captures DEBUG regardless of console level."""
        log_dir = tmp_path / "logs"
        setup_logging(level=logging.INFO, log_dir=log_dir)

        file_handlers = [
            handler for handler in root_logger.handlers
            if isinstance(handler, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG

        logging.getLogger("plazanet.views.pipeline").debug("cache miss")
        file_handlers[0].flush()
        assert "cache miss" in (log_dir / "plazanet.log").read_text(encoding="utf-8")

    def test_noisy_libraries_lowered(self, root_logger):
        """Test that aiohttp is held at WARNING."""
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger("aiohttp").level == logging.WARNING


class TestConfigLogging:
    """Tests for the logging settings in Config."""

    def test_defaults(self, observium_env):
        """Test INFO and the default log directory."""
        config = Config()
        assert config.log_level == logging.INFO
        assert str(config.log_dir) == "data/logs"

    def test_empty_log_dir_disables_file(self, observium_env, monkeypatch):
        """Test that LOG_DIR="" means console logging only."""
        monkeypatch.setenv("LOG_DIR", "")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = Config()
        assert config.log_dir is None
        assert config.log_level == logging.DEBUG

    def test_bad_level_rejected(self, observium_env, monkeypatch):
        """Test that an unknown LOG_LEVEL fails configuration."""
        monkeypatch.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ConfigurationError):
            Config()
