"""Unit tests for logging configuration."""

import logging

import pytest
import structlog

from src.logging_config import QUIET_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    levels = {name: logging.getLogger(name).level for name in (*QUIET_LOGGERS, "src")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, previous in levels.items():
        logging.getLogger(name).setLevel(previous)
    structlog.reset_defaults()


def test_single_console_handler_at_requested_level():
    configure_logging("WARNING")

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert handlers[0].level == logging.WARNING
    assert logging.getLogger("src").level == logging.WARNING


def test_libraries_are_quieted():
    configure_logging("DEBUG")

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR


def test_structlog_routes_through_stdlib():
    configure_logging("INFO")

    assert isinstance(structlog.get_config()["logger_factory"], structlog.stdlib.LoggerFactory)
