"""Logging configuration for Clixen.

Application modules log through stdlib ``logging``; the HTTP layer logs
structured events through structlog, which is routed into the same
handlers so both streams share one console.
"""

import logging
import sys
from typing import Literal

import structlog

from src.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Third-party loggers capped at WARNING unless listed in QUIET_LEVELS
QUIET_LOGGERS = (
    "alembic.runtime.migration",
    "apscheduler",
    "asyncio",
    "httpcore",
    "httpx",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
)

QUIET_LEVELS = {
    "sqlalchemy.engine": logging.ERROR,
}


def _configure_structlog(json_output: bool) -> None:
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(level: LogLevel | None = None) -> None:
    """Install the console handler and quiet chatty libraries.

    Args:
        level: Override log level (defaults to settings.log_level)
    """
    settings = get_settings()
    log_level = getattr(logging, level or settings.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handler does the filtering
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s | %(name)s | %(message)s", datefmt="%H:%M:%S")
    )
    root_logger.addHandler(handler)
    logging.getLogger("src").setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(QUIET_LEVELS.get(name, logging.WARNING))

    _configure_structlog(json_output=settings.environment == "production")
