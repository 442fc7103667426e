"""API utility functions."""

import logging

from src.settings import get_settings

logger = logging.getLogger(__name__)


def sanitize_error(exc: Exception, *, context: str = "Operation") -> str:
    """Return a safe error message for API responses.

    Development and testing environments include the original exception
    message; elsewhere the real error is only logged server-side.
    """
    settings = get_settings()

    logger.exception("%s failed", context)

    if settings.debug or settings.environment in ("development", "testing"):
        return f"{context} failed: {exc!s}"

    return f"{context} failed. Check server logs for details."
