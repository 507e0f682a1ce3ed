"""Structured logging configuration.

This module initializes structlog loggers with a stable JSON format.
All events, including dropped-record diagnostics, go to stderr.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL
from core.errors import QuarryConfigError

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    The stderr JSON pipeline is installed on first use unless logging
    was already configured.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog processors and the minimum level.

    Args:
        level: Level name such as ``INFO`` or ``DEBUG``.

    Raises:
        QuarryConfigError: If the level name is unknown.
    """
    normalized_level = level.upper()
    if normalized_level not in _LEVEL_NAMES:
        raise QuarryConfigError(
            f"Invalid log level '{level}'. Use one of: {', '.join(_LEVEL_NAMES)}."
        )
    numeric_level = logging.getLevelName(normalized_level)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # Resolved per logger so a replaced sys.stderr is picked up.
    return structlog.PrintLogger(file=sys.stderr)
