"""Execution engine client facade.

Combines the base HTTP handling with the workflow and execution
operation mixins, and keeps one pooled client per process.
"""

import threading

from src.engine.base import BaseEngineClient, EngineClientConfig
from src.engine.executions import ExecutionMixin
from src.engine.workflows import WorkflowMixin
from src.exceptions import EngineClientError
from src.schema.validator import WorkflowValidator

__all__ = [
    "EngineClient",
    "EngineClientConfig",
    "EngineClientError",
    "get_engine_client",
    "reset_engine_client",
]


class EngineClient(BaseEngineClient, WorkflowMixin, ExecutionMixin):
    """Client for the execution engine's public REST API.

    Usage:
        client = get_engine_client()
        result = await client.deploy(document, activate=True)
        if result["success"]:
            print(result["workflowId"])
    """

    def __init__(
        self,
        config: EngineClientConfig | None = None,
        validator: WorkflowValidator | None = None,
    ):
        super().__init__(config)
        self.validator = validator or WorkflowValidator()


_client: EngineClient | None = None
_client_lock = threading.Lock()


def get_engine_client() -> EngineClient:
    """Get or create the process-wide engine client.

    Thread-safe: Uses double-checked locking.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = EngineClient()
    return _client


def reset_engine_client() -> None:
    """Drop the cached client (e.g. after settings change).

    The caller is responsible for awaiting ``close()`` on a client it
    still holds.
    """
    global _client
    with _client_lock:
        _client = None
