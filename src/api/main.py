"""FastAPI application configuration and setup.

Main entry point for the HTTP API with CORS, middleware,
rate limiting, and lifecycle management.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src import __version__
from src.api.rate_limit import MAX_REQUEST_BODY_BYTES, limiter
from src.api.routes import api_router
from src.exceptions import (
    ClixenError,
    ConfigurationError,
    DeploymentNotFoundError,
    DeploymentStateError,
    WorkflowNotFoundError,
)
from src.settings import Settings, get_settings
from src.storage import close_db, init_db

# Context variable for correlation ID (thread-safe, async-safe)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Singleton app instance
_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup initializes the database and the scheduler; shutdown stops
    the scheduler and releases the engine client and database pool.
    """
    from src.logging_config import configure_logging

    settings = get_settings()
    configure_logging()

    if settings.environment != "testing":
        await init_db()

    scheduler = None
    if settings.scheduler_enabled and settings.environment != "testing":
        from src.scheduler import SchedulerService

        scheduler = SchedulerService()
        await scheduler.start()

    yield

    if scheduler:
        await scheduler.stop()

    from src.engine import get_engine_client, reset_engine_client

    await get_engine_client().close()
    reset_engine_client()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override (uses get_settings() if not provided)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Clixen",
        description="Workflow validation and deployment orchestration",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.middleware("http")(_body_size_limit_middleware)
    app.middleware("http")(_correlation_middleware)

    from src.api.middleware import RequestTracingMiddleware

    app.add_middleware(RequestTracingMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    _register_exception_handlers(app)

    return app


def _get_allowed_origins(settings: Settings) -> list[str]:
    """Get allowed CORS origins: explicit list first, then environment defaults."""
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.environment in ("development", "testing"):
        return ["*"]
    return []


def _error_response(
    status_code: int,
    message: str,
    error_type: str,
    correlation_id: str | None = None,
) -> JSONResponse:
    """Uniform error body: ``{"error": {code, message, type, correlation_id}}``."""
    body: dict[str, Any] = {"code": status_code, "message": message, "type": error_type}
    headers = None
    if correlation_id:
        body["correlation_id"] = correlation_id
        headers = {"X-Correlation-ID": correlation_id}
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def _body_size_limit_middleware(request: Request, call_next):
    """Reject requests whose declared body exceeds MAX_REQUEST_BODY_BYTES."""
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > MAX_REQUEST_BODY_BYTES:
        return _error_response(
            413,
            f"Request body too large. Maximum size is {MAX_REQUEST_BODY_BYTES} bytes.",
            "request_too_large",
        )
    return await call_next(request)


async def _correlation_middleware(request: Request, call_next):
    """Propagate or mint the X-Correlation-ID for this request."""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    _correlation_id.set(correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def get_correlation_id() -> str | None:
    """Get the current request's correlation ID from context."""
    return _correlation_id.get()


# Most specific first; anything else derived from ClixenError is a 500
ERROR_STATUS: tuple[tuple[type[ClixenError], int], ...] = (
    (WorkflowNotFoundError, 404),
    (DeploymentNotFoundError, 404),
    (DeploymentStateError, 409),
    (ConfigurationError, 503),
)


def _status_for(exc: ClixenError) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def _register_exception_handlers(app: FastAPI) -> None:
    """Map application, HTTP and unexpected errors onto the error body."""
    logger = structlog.get_logger()

    @app.exception_handler(ClixenError)
    async def clixen_error_handler(request: Request, exc: ClixenError) -> JSONResponse:
        correlation_id = get_correlation_id() or exc.correlation_id
        error_type = exc.__class__.__name__.replace("Error", "_error").lower()
        status_code = _status_for(exc)

        logger.error(
            "clixen_error",
            error_type=error_type,
            status=status_code,
            path=request.url.path,
            correlation_id=correlation_id,
            exc_info=exc if status_code >= 500 else None,
        )

        # 4xx messages name the workflow/deployment and are safe to return
        if status_code < 500 or get_settings().debug:
            message = str(exc)
        else:
            message = f"An error occurred. Correlation ID: {correlation_id}"
        return _error_response(status_code, message, error_type, correlation_id)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        return _error_response(exc.status_code, exc.detail, "http_error", correlation_id)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            correlation_id=correlation_id,
            exc_info=exc,
        )

        message = str(exc) if get_settings().debug else "Internal server error"
        return _error_response(500, message, "internal_error", correlation_id)


def get_app() -> FastAPI:
    """Get or create the singleton FastAPI application."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: use "src.api.main:get_app" with --factory flag,
# or "src.api.main:app" which lazily initializes on first access.
def __getattr__(name: str) -> Any:
    """Create the app only when 'app' is accessed, not at import time."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
