"""
PlazaNetInsights - Logging Configuration

Console logging goes to stderr so a view's JSON on stdout stays parseable.
File logging (rotating, always at DEBUG) is optional.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from plazanet.utils.errors import ConfigurationError


LOG_FILE_NAME = "plazanet.log"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGERS = (
    "plazanet.api",
    "plazanet.collectors",
    "plazanet.aggregators",
    "plazanet.calculators",
    "plazanet.cache",
    "plazanet.views",
)

# aiohttp logs every connection event at DEBUG; asyncio warns on slow callbacks
NOISY_LOGGERS = ("aiohttp", "aiohttp.access", "aiohttp.client", "asyncio")

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_log_level(name: str) -> int:
    """
    Convert a level name ("info", "DEBUG", ...) to its logging constant.

    Raises:
        ConfigurationError: If the name is not a standard level
    """
    normalized = (name or "").strip().upper()
    if normalized not in LEVEL_NAMES:
        raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(LEVEL_NAMES)}, got {name!r}")
    return getattr(logging, normalized)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    log_file: str = LOG_FILE_NAME
) -> logging.Logger:
    """
    Configure the root logger for a CLI run.

    Args:
        level: Console and package logger level
        log_dir: Directory for the rotating log file; None logs to console only
        log_file: File name inside log_dir

    Returns:
        Root logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_dir is not None else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if log_dir is not None else level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
