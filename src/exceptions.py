"""Clixen exception hierarchy.

Base exceptions for all application layers with correlation ID support.

Usage:
    from src.exceptions import DeploymentStateError, EngineClientError

    try:
        await orchestrator.rollback(deployment_id)
    except DeploymentStateError as e:
        logger.error("Rollback refused (%s): %s", e.correlation_id, e)
"""

import uuid
from typing import Any


class ClixenError(Exception):
    """Base exception for all Clixen application errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class EngineClientError(ClixenError):
    """Errors from execution engine API calls.

    Raised inside the engine client when a request fails, with the
    operation name, HTTP status and response detail for diagnostics.
    Public client methods translate it into a ``{"success": False}``
    envelope, so callers never see it.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        correlation_id: str | None = None,
    ):
        self.operation = operation
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message, correlation_id=correlation_id)


class DALError(ClixenError):
    """Errors from data access layer operations."""

    pass


class WorkflowNotFoundError(DALError):
    """Requested workflow record does not exist."""

    def __init__(self, workflow_id: str, **kwargs):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}", **kwargs)


class DeploymentNotFoundError(DALError):
    """Requested deployment record does not exist."""

    def __init__(self, deployment_id: str, **kwargs):
        self.deployment_id = deployment_id
        super().__init__(f"Deployment not found: {deployment_id}", **kwargs)


class DeploymentStateError(ClixenError):
    """Illegal deployment state-machine transition."""

    def __init__(self, message: str, *, status: str | None = None, **kwargs):
        self.status = status
        super().__init__(message, **kwargs)


class ConfigurationError(ClixenError):
    """Errors from application configuration."""

    pass
