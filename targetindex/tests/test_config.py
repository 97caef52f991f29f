"""Tests for settings and logging configuration."""

import logging
import pytest
from targetindex.config.settings import Settings
from targetindex.config.logging import get_logger, resolve_level, setup_logging
from targetindex.errors import ConfigurationError


def test_settings_from_environment(monkeypatch, tmp_path):
    """Settings read TARGETINDEX_ prefixed variables."""
    log_file = tmp_path / "logs" / "index.log"
    monkeypatch.setenv("TARGETINDEX_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("TARGETINDEX_PROGRESS_INTERVAL", "25")
    monkeypatch.setenv("TARGETINDEX_LOG_FILE", str(log_file))

    settings = Settings()

    assert settings.log_level == "DEBUG"
    assert settings.progress_interval == 25
    assert settings.log_file == log_file
    assert log_file.parent.is_dir()


def test_settings_defaults(monkeypatch):
    """Without environment overrides the defaults apply."""
    for name in ("TARGETINDEX_LOG_LEVEL", "TARGETINDEX_PROGRESS_INTERVAL", "TARGETINDEX_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.log_level == "INFO"
    assert settings.progress_interval == 100
    assert settings.log_file is None


def test_loggers_live_under_the_package_logger():
    """Module loggers are children of the targetindex logger."""
    assert get_logger("targetindex.indexing").name == "targetindex.indexing"
    assert get_logger("plugins.custom").name == "targetindex.plugins.custom"


def test_setup_logging_writes_file(tmp_path):
    """A log file handler is attached when a path is given."""
    log_file = tmp_path / "run.log"
    setup_logging(level="WARNING", log_file=log_file)
    try:
        get_logger(__name__).warning("disk almost full")
        for handler in logging.getLogger("targetindex").handlers:
            handler.flush()
        assert "disk almost full" in log_file.read_text(encoding="utf-8")
    finally:
        setup_logging()


def test_resolve_level():
    """Level names are case-insensitive; unknown names are rejected."""
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" Warning ") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ConfigurationError, match="Unknown log level: loud"):
        resolve_level("loud")


def test_verbose_overrides_level():
    """Verbose logging is DEBUG whatever level was asked for."""
    try:
        logger = setup_logging(level="ERROR", verbose=True)
        assert logger.name == "targetindex"
        assert logger.level == logging.DEBUG
        assert not logger.propagate

        assert setup_logging(level="ERROR").level == logging.ERROR
        assert len(logging.getLogger("targetindex").handlers) == 1
    finally:
        setup_logging()
