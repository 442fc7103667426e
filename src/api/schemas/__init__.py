"""Pydantic schemas for API requests and responses."""

from src.api.schemas.deployments import (
    DeploymentListResponse,
    DeploymentResponse,
    RollbackRequest,
)
from src.api.schemas.sync import SyncRequest
from src.api.schemas.system import HealthResponse, HealthStatus

__all__ = [
    "DeploymentListResponse",
    "DeploymentResponse",
    "HealthResponse",
    "HealthStatus",
    "RollbackRequest",
    "SyncRequest",
]
