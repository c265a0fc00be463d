"""
Structured logging setup.

Every module logs through ``structlog.get_logger(__name__)`` with a snake_case
event name and keyword context. ``configure_logging`` renders those events as
JSON (or coloured console output for local development).
"""

import logging
import sys
from typing import Any

import structlog

from agricredit.core.config import settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog processors, level filtering and rendering."""
    level_name = (level or settings.LOG_LEVEL).upper()
    level_value = getattr(logging, level_name, logging.INFO)
    log_format = (fmt or settings.LOG_FORMAT).strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
