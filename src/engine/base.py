"""Base execution engine client with HTTP request handling.

Provides the shared httpx connection pool, request/error translation,
and the health probe. Operation groups are added via mixins.
"""

import logging
import re
import time
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.exceptions import ConfigurationError, EngineClientError
from src.schema.core import utc_timestamp
from src.settings import get_settings

logger = logging.getLogger(__name__)

API_VERSION_SUFFIX = re.compile(r"/api/v\d+/?$")


class EngineClientConfig(BaseModel):
    """Configuration for the engine client."""

    api_url: str = Field(..., description="Engine API base URL, e.g. http://n8n:5678/api/v1")
    api_key: str = Field(default="", description="API key sent as X-N8N-API-KEY")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    health_timeout: float = Field(default=5.0, gt=0, description="Health probe timeout in seconds")


def _site_url(api_url: str) -> str:
    return API_VERSION_SUFFIX.sub("", api_url.rstrip("/")).rstrip("/")


def health_url_for(api_url: str) -> str:
    """Derive the health endpoint by replacing the API version segment."""
    return f"{_site_url(api_url)}/healthz"


def editor_url_for(api_url: str, workflow_id: str) -> str:
    """Engine editor URL for a deployed workflow."""
    return f"{_site_url(api_url)}/workflow/{workflow_id}"


def _error_message(response: httpx.Response) -> str:
    text = response.text
    try:
        parsed = response.json()
    except ValueError:
        return text
    if isinstance(parsed, dict) and parsed.get("message"):
        return str(parsed["message"])
    return text


class BaseEngineClient:
    """Base HTTP client for the execution engine's public API.

    Every request carries the API key header and a JSON content type.
    ``_request`` raises EngineClientError; public methods on the mixins
    catch it and return ``{"success": False, "error": ...}``.
    """

    def __init__(self, config: EngineClientConfig | None = None):
        """Initialize base engine client.

        Args:
            config: Optional configuration (uses settings if not provided)
        """
        if config is None:
            config = self._resolve_config()
        self.config = config
        self._http_client: httpx.AsyncClient | None = None

    @staticmethod
    def _resolve_config() -> EngineClientConfig:
        settings = get_settings()
        return EngineClientConfig(
            api_url=settings.engine_api_url,
            api_key=settings.engine_api_key.get_secret_value(),
            timeout=settings.engine_timeout_seconds,
            health_timeout=settings.engine_health_timeout_seconds,
        )

    @property
    def health_url(self) -> str:
        return health_url_for(self.config.api_url)

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create a shared httpx.AsyncClient with connection pooling.

        The client is created lazily on first use and reused across requests
        to avoid TCP handshake overhead on every call.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                ),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release connections."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        if not self.config.api_key:
            raise ConfigurationError("Engine API key is not configured (ENGINE_API_KEY)")
        return {
            "X-N8N-API-KEY": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request to the engine API.

        Args:
            method: HTTP method
            path: API path relative to the configured base URL
            json: JSON body
            params: Query parameters

        Returns:
            Parsed JSON body, or ``{}`` if empty

        Raises:
            EngineClientError: On non-2xx status, timeout, connection failure,
                or a non-JSON or unparseable body
        """
        operation = f"{method} {path}"
        try:
            headers = self._headers()
        except ConfigurationError as e:
            raise EngineClientError(str(e), operation) from e

        client = self._get_http_client()
        url = f"{self.config.api_url.rstrip('/')}{path}"
        start_time = time.perf_counter()

        try:
            response = await client.request(method, url, headers=headers, json=json, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Engine request timed out: %s", operation)
            raise EngineClientError(f"Engine request timed out: {path}", operation) from e
        except httpx.HTTPError as e:
            logger.warning("Engine connection failed: %s (%s)", operation, type(e).__name__)
            raise EngineClientError(
                f"Engine connection failed: {path}", operation, {"reason": str(e)}
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("%s -> %d in %.0fms", operation, response.status_code, duration_ms)

        if not response.is_success:
            message = _error_message(response)
            logger.warning("Engine API error %d on %s: %s", response.status_code, operation, message)
            raise EngineClientError(
                f"Engine API error {response.status_code}: {message}",
                operation,
                {"body": response.text},
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        if "application/json" not in response.headers.get("content-type", ""):
            logger.warning("Engine returned a non-JSON body on %s", operation)
            raise EngineClientError(
                f"Engine returned a non-JSON response: {path}",
                operation,
                {"body": response.text[:200]},
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise EngineClientError(
                f"Engine returned invalid JSON: {path}",
                operation,
                status_code=response.status_code,
            ) from e

    async def health(self) -> dict[str, Any]:
        """Probe the engine's health endpoint.

        Never raises: any failure, including the hard timeout, is reported
        as ``healthy: False`` with the error text.

        Returns:
            ``{"success", "healthy", "status", "timestamp"}`` or
            ``{"success": False, "healthy": False, "error", "timestamp"}``
        """
        client = self._get_http_client()
        try:
            response = await client.get(self.health_url, timeout=self.config.health_timeout)
        except httpx.TimeoutException:
            return {
                "success": False,
                "healthy": False,
                "error": f"Health check timed out after {self.config.health_timeout:g}s",
                "timestamp": utc_timestamp(),
            }
        except httpx.HTTPError as e:
            return {
                "success": False,
                "healthy": False,
                "error": str(e) or type(e).__name__,
                "timestamp": utc_timestamp(),
            }

        return {
            "success": response.is_success,
            "status": response.status_code,
            "healthy": response.is_success,
            "timestamp": utc_timestamp(),
        }
