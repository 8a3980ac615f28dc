"""Logger helpers; every logger of the package lives under ``parallel_tool_lib``."""

import logging
import sys
from typing import TextIO

_LOGGER_NAME = "parallel_tool_lib"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it.

    Module names that already start with the package name (``__name__``
    inside the package) are used unchanged.

    Args:
        name: Optional child name. If None, returns the package logger.
    """
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    if name == _LOGGER_NAME or name.startswith(f"{_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO, format_str: str = DEFAULT_FORMAT, stream: TextIO | None = None
) -> logging.Handler:
    """Print the package's log records, for applications that have no logging setup of their own.

    Libraries embedding the executor should configure logging themselves instead.
    Calling this again only updates the level and returns the existing handler.

    Args:
        level: Logging level for the package logger.
        format_str: Log format string.
        stream: Target stream. Defaults to stdout.

    Returns:
        The handler attached to the package logger.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    for existing in logger.handlers:
        if not isinstance(existing, logging.NullHandler):
            return existing

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(format_str))
    logger.addHandler(handler)
    return handler


# Silences "No handler found" until the application configures logging.
logging.getLogger(_LOGGER_NAME).addHandler(logging.NullHandler())
