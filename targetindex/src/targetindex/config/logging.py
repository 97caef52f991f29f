"""Logging configuration for targetindex."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
from targetindex.errors import ConfigurationError
from .settings import get_settings

PACKAGE_LOGGER = "targetindex"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)


def resolve_level(level: Union[str, int]) -> int:
    """
    Turn a level name or number into a logging level.

    Args:
        level: Level name such as "info" or "DEBUG", or a numeric level

    Returns:
        Numeric logging level

    Raises:
        ConfigurationError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the targetindex package logger.

    Indexing runs log a line per object at INFO and a line per reconciled
    record at DEBUG, so ``verbose`` switches to DEBUG and to a format that
    carries the source location.

    Args:
        level: Logging level name, defaults to settings
        log_file: Optional file path for file logging, defaults to settings
        format_string: Optional custom format string, defaults to settings
        verbose: Log at DEBUG whatever level is configured

    Returns:
        The package logger
    """
    settings = get_settings()
    log_level = logging.DEBUG if verbose else resolve_level(level or settings.log_level)
    log_file_path = log_file or settings.log_file
    if format_string is None:
        format_string = settings.log_format or (VERBOSE_FORMAT if verbose else DEFAULT_FORMAT)
    formatter = logging.Formatter(format_string)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # Indexing output stays out of the host application's root logger
    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, under the package logger."""
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        setup_logging()

    if name.startswith(PACKAGE_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
