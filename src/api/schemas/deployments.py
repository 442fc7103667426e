"""Deployment API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeploymentResponse(BaseModel):
    """One deployment record."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Deployment UUID")
    workflow_id: str
    user_id: str
    version: int
    status: str = Field(description="pending, deploying, deployed, failed or rolled_back")
    engine_workflow_id: str | None = None
    deployment_url: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None


class DeploymentListResponse(BaseModel):
    """Deployments of one workflow, newest version first."""

    deployments: list[DeploymentResponse]
    total: int


class RollbackRequest(BaseModel):
    """Body for a rollback request."""

    reason: str | None = Field(
        default=None,
        max_length=500,
        description="Recorded on the deployment as 'Rolled back: <reason>'",
    )
