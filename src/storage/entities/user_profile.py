"""User profile model.

Holds the deployment bookkeeping kept per user: when they first
deployed successfully and how many successful deployments they have.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.storage.models import Base, TimestampMixin, UUIDMixin


class UserProfile(Base, UUIDMixin, TimestampMixin):
    """A user who owns workflows."""

    __tablename__ = "user_profiles"

    email: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        doc="Email address (unique if set)",
    )
    first_deployment_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Completion time of the user's first successful deployment",
    )
    total_deployments: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        doc="Number of successful deployments",
    )

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, deployments={self.total_deployments})>"
