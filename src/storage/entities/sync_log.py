"""Sync log entity model.

Append-only record of each reconciliation run.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.storage.models import Base, UUIDMixin


class SyncType(StrEnum):
    WORKFLOW_SYNC = "workflow_sync"
    BATCH_SYNC = "batch_sync"


class SyncLogStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"


class SyncLog(Base, UUIDMixin):
    """One reconciliation run and its counters."""

    __tablename__ = "sync_logs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'partial_success', 'error')",
            name="status_valid",
        ),
    )

    sync_type: Mapped[str] = mapped_column(String(30), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("user_profiles.id", ondelete="SET NULL"),
        nullable=True,
        doc="Set when the run was scoped to one user",
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    workflows_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_syncs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_syncs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_syncs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    executions_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        doc="Per-workflow failures: [{workflow_id, error}]",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<SyncLog(id={self.id!r}, type={self.sync_type!r}, status={self.status!r}, "
            f"processed={self.workflows_processed})>"
        )
