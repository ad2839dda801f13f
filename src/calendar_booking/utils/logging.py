"""Logging setup for the booking engine and its CLI."""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError

ROOT_LOGGER = "calendar_booking"

# Timestamps are UTC to match stored booking times
CONSOLE_FORMAT = "%(asctime)sZ %(levelname)-7s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)sZ %(levelname)-7s [%(name)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _formatter(fmt: str) -> logging.Formatter:
    formatter = logging.Formatter(fmt, datefmt=DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    name: str = ROOT_LOGGER,
) -> logging.Logger:
    """
    Configure the booking engine logger.

    Console records go to stderr so CLI output on stdout stays JSON. A log file,
    when given, always records DEBUG and above. HTTP client chatter from
    ``urllib3`` is kept at WARNING unless DEBUG is requested.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        name: Logger to configure

    Returns:
        Configured logger instance

    Raises:
        ConfigurationError: If the level name is unknown
    """
    console_level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    logging.getLogger("urllib3").setLevel(
        logging.DEBUG if console_level <= logging.DEBUG else logging.WARNING
    )
    return logger
