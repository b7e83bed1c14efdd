"""Structured logging configuration."""

from __future__ import annotations
from typing import Optional

import structlog

from .constants import LOG_LEVELS
from .model import LoggingConfig


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog processors and level filtering.
    
    Args:
        config: Logging settings, defaults to INFO with console rendering
    """
    config = config or LoggingConfig()
    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVELS[config.level]),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
