"""structlog configuration."""
from __future__ import annotations

import logging

import structlog

from ..config import get_settings


def configure_logging(level: str | None = None) -> None:
    """Install a level-filtering structlog pipeline rendering key/value lines."""
    level_name = (level or get_settings().observability.log_level).upper()
    min_level = logging.getLevelName(level_name)
    if not isinstance(min_level, int):
        min_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        cache_logger_on_first_use=True,
    )


__all__ = ["configure_logging"]
