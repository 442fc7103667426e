"""Execution engine (n8n public API) client."""

from src.engine.base import (
    BaseEngineClient,
    EngineClientConfig,
    editor_url_for,
    health_url_for,
)
from src.engine.client import EngineClient, get_engine_client, reset_engine_client

__all__ = [
    "BaseEngineClient",
    "EngineClient",
    "EngineClientConfig",
    "editor_url_for",
    "get_engine_client",
    "health_url_for",
    "reset_engine_client",
]
