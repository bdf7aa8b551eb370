"""
Structured logging setup (structlog on top of the stdlib logging module).

Every module grabs its logger at import time::

    from orchestrator.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Pipeline started", execution_id=..., topic=...)

setup_logging() is called once from the FastAPI lifespan hook and from
the Celery worker bootstrap.  Until then structlog falls back to its
default configuration, which is fine for tests and scripts.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog + stdlib logging.

    Args:
        level: Root log level name (DEBUG, INFO, ...).
        json_logs: Render one JSON object per line instead of the
                   coloured console renderer.  Use in production.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)
