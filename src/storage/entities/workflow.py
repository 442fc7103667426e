"""Workflow entity model.

A stored workflow document plus two groups of bookkeeping columns with
separate owners:

- deployment columns, written by the deployment orchestrator
- runtime stats (``WorkflowRuntimeStatsMixin``), written only by the
  sync engine
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.storage.models import Base, TimestampMixin, UUIDMixin


class WorkflowStatus(StrEnum):
    """Authoring status of a workflow."""

    DRAFT = "draft"
    VALIDATED = "validated"
    DEPLOYED = "deployed"
    FAILED = "failed"
    ARCHIVED = "archived"


class WorkflowDeploymentStatus(StrEnum):
    """Deployment status mirrored onto the workflow row."""

    NOT_DEPLOYED = "not_deployed"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"
    UPDATING = "updating"


class WorkflowRuntimeStatsMixin:
    """Execution statistics reconciled from the engine."""

    execution_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
        doc="Finished executions counted so far",
    )
    successful_executions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    failed_executions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    last_execution_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
        doc="Start time of the newest counted execution",
    )
    last_execution_status: Mapped[str | None] = mapped_column(
        String(20), nullable=True,
        doc="success, error or the engine's terminal status",
    )
    last_execution_engine_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
        doc="Engine id of the newest counted execution (high-water mark)",
    )
    engine_active: Mapped[bool | None] = mapped_column(
        Boolean, nullable=True,
        doc="Engine-side active flag at the last sync",
    )
    last_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
        doc="Time of the last reconciliation attempt",
    )


class Workflow(Base, UUIDMixin, TimestampMixin, WorkflowRuntimeStatsMixin):
    """A user's workflow and its deployment state."""

    __tablename__ = "workflows"
    __table_args__ = (
        CheckConstraint("version > 0", name="version_positive"),
        CheckConstraint(
            "status IN ('draft', 'validated', 'deployed', 'failed', 'archived')",
            name="status_valid",
        ),
        CheckConstraint(
            "deployment_status IN "
            "('not_deployed', 'deploying', 'deployed', 'failed', 'updating')",
            name="deployment_status_valid",
        ),
        Index("ix_workflows_user_status", "user_id", "deployment_status"),
    )

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Owning user",
    )
    project_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
        doc="Owning project, if any",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    document: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        doc="Workflow document (nodes, connections, settings)",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
        doc="Document version; bumped before every redeploy",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WorkflowStatus.DRAFT,
        server_default=WorkflowStatus.DRAFT.value,
    )

    # Deployment (orchestrator-owned)
    deployment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WorkflowDeploymentStatus.NOT_DEPLOYED,
        server_default=WorkflowDeploymentStatus.NOT_DEPLOYED.value,
    )
    engine_workflow_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Id assigned by the execution engine",
    )
    deployment_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    deployment_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_deployed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
        doc="Whether the owner wants the workflow live; archived workflows are inactive",
    )
    deployment_retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        doc="Automatic redeploy attempts since the last success",
    )

    def __repr__(self) -> str:
        return (
            f"<Workflow(id={self.id!r}, name={self.name!r}, "
            f"version={self.version}, deployment_status={self.deployment_status!r})>"
        )
