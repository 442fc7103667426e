"""Deployment entity model.

One row per attempt to push a workflow version to the execution engine.

State machine:
    pending -> deploying -> deployed -> rolled_back
                   |
                   v
                 failed

Terminal rows are never modified again, except deployed -> rolled_back.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.exceptions import DeploymentStateError
from src.storage.models import Base, TimestampMixin, UUIDMixin


class DeploymentStatus(StrEnum):
    """Status of a deployment attempt."""

    PENDING = "pending"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


IN_FLIGHT_STATUSES = frozenset({DeploymentStatus.PENDING, DeploymentStatus.DEPLOYING})

VALID_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PENDING: {DeploymentStatus.DEPLOYING, DeploymentStatus.FAILED},
    DeploymentStatus.DEPLOYING: {DeploymentStatus.DEPLOYED, DeploymentStatus.FAILED},
    DeploymentStatus.DEPLOYED: {DeploymentStatus.ROLLED_BACK},
    DeploymentStatus.FAILED: set(),
    DeploymentStatus.ROLLED_BACK: set(),
}


def _now() -> datetime:
    return datetime.now(UTC)


class Deployment(Base, UUIDMixin, TimestampMixin):
    """A single deployment attempt for one workflow version."""

    __tablename__ = "deployments"
    __table_args__ = (
        UniqueConstraint("workflow_id", "version", name="uq_deployments_workflow_version"),
        CheckConstraint("version > 0", name="version_positive"),
        CheckConstraint(
            "status IN ('pending', 'deploying', 'deployed', 'failed', 'rolled_back')",
            name="status_valid",
        ),
        Index("ix_deployments_status_started", "status", "started_at"),
    )

    workflow_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who requested the deployment",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Workflow version captured when the attempt was created",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeploymentStatus.PENDING,
        server_default=DeploymentStatus.PENDING.value,
    )
    engine_workflow_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Id assigned by the engine on successful create",
    )
    engine_response: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        doc="Raw engine response for the create call",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    deployment_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Deployment(id={self.id!r}, workflow_id={self.workflow_id!r}, "
            f"version={self.version}, status={self.status!r})>"
        )

    @property
    def is_in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES

    def can_transition_to(self, new_status: DeploymentStatus) -> bool:
        """Check if transition to new status is valid."""
        return new_status in VALID_TRANSITIONS.get(DeploymentStatus(self.status), set())

    def _transition(self, new_status: DeploymentStatus) -> None:
        if not self.can_transition_to(new_status):
            raise DeploymentStateError(
                f"Cannot move deployment {self.id} from {self.status} to {new_status.value}",
                status=str(self.status),
            )
        self.status = new_status

    def _complete(self, now: datetime | None) -> None:
        self.completed_at = now or _now()
        if self.started_at is not None:
            elapsed = self.completed_at - self.started_at
            self.duration_ms = max(0, int(elapsed.total_seconds() * 1000))

    def start(self) -> None:
        """pending -> deploying, immediately before the engine call."""
        self._transition(DeploymentStatus.DEPLOYING)

    def mark_deployed(
        self,
        engine_workflow_id: str,
        engine_response: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> None:
        """Record a successful create."""
        self._transition(DeploymentStatus.DEPLOYED)
        self.engine_workflow_id = engine_workflow_id
        self.engine_response = engine_response
        self._complete(now)

    def mark_failed(self, error_message: str, now: datetime | None = None) -> None:
        """Record a failed attempt (validation, transport or timeout)."""
        self._transition(DeploymentStatus.FAILED)
        self.error_message = error_message
        self._complete(now)

    def mark_rolled_back(self, reason: str) -> None:
        """deployed -> rolled_back; completion time is kept."""
        self._transition(DeploymentStatus.ROLLED_BACK)
        self.error_message = f"Rolled back: {reason}"
