"""Structured logging setup shared by every entry point."""

import logging
import sys
from typing import Optional

import structlog

from marketsearch.core.config import get_settings


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install the structlog processor chain.

    Console rendering is used on a TTY or when LOG_FORMAT is "console";
    otherwise events are rendered as JSON lines.
    """
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()
    fmt = (log_format or settings.LOG_FORMAT).lower()

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    elif fmt == "console" or sys.stdout.isatty():
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
