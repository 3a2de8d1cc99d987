"""Logging configuration for the Ordering domain."""

import logging
import os

import structlog

logger = structlog.get_logger(__name__)

# Suppress noisy library loggers
logging.getLogger("protean").setLevel(logging.WARNING)


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog for the server process.

    ``LOG_LEVEL`` sets the threshold and ``LOG_FORMAT=json`` switches from
    the console renderer to one JSON object per line.
    """
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if json is None:
        json = os.environ.get("LOG_FORMAT", "console") == "json"

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelNamesMapping()[level]),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
