"""Initial schema: user_profiles, workflows, deployments, sync_logs.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the owned tables."""
    op.create_table(
        "user_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_deployment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_deployments", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_profiles")),
        sa.UniqueConstraint("email", name=op.f("uq_user_profiles_email")),
    )

    op.create_table(
        "workflows",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("document", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("status", sa.String(20), server_default="draft", nullable=False),
        # Deployment
        sa.Column(
            "deployment_status", sa.String(20), server_default="not_deployed", nullable=False
        ),
        sa.Column("engine_workflow_id", sa.String(255), nullable=True),
        sa.Column("deployment_url", sa.Text(), nullable=True),
        sa.Column("deployment_error", sa.Text(), nullable=True),
        sa.Column("last_deployed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("deployment_retry_count", sa.Integer(), server_default="0", nullable=False),
        # Runtime stats
        sa.Column("execution_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("successful_executions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("failed_executions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_execution_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_execution_status", sa.String(20), nullable=True),
        sa.Column("last_execution_engine_id", sa.String(255), nullable=True),
        sa.Column("engine_active", sa.Boolean(), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("version > 0", name=op.f("ck_workflows_version_positive")),
        sa.CheckConstraint(
            "status IN ('draft', 'validated', 'deployed', 'failed', 'archived')",
            name=op.f("ck_workflows_status_valid"),
        ),
        sa.CheckConstraint(
            "deployment_status IN "
            "('not_deployed', 'deploying', 'deployed', 'failed', 'updating')",
            name=op.f("ck_workflows_deployment_status_valid"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user_profiles.id"],
            name=op.f("fk_workflows_user_id_user_profiles"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_workflows")),
    )
    op.create_index(op.f("ix_workflows_user_id"), "workflows", ["user_id"])
    op.create_index(op.f("ix_workflows_engine_workflow_id"), "workflows", ["engine_workflow_id"])
    op.create_index("ix_workflows_user_status", "workflows", ["user_id", "deployment_status"])

    op.create_table(
        "deployments",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("engine_workflow_id", sa.String(255), nullable=True),
        sa.Column("engine_response", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("deployment_url", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("version > 0", name=op.f("ck_deployments_version_positive")),
        sa.CheckConstraint(
            "status IN ('pending', 'deploying', 'deployed', 'failed', 'rolled_back')",
            name=op.f("ck_deployments_status_valid"),
        ),
        sa.ForeignKeyConstraint(
            ["workflow_id"],
            ["workflows.id"],
            name=op.f("fk_deployments_workflow_id_workflows"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user_profiles.id"],
            name=op.f("fk_deployments_user_id_user_profiles"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_deployments")),
        sa.UniqueConstraint("workflow_id", "version", name="uq_deployments_workflow_version"),
    )
    op.create_index(op.f("ix_deployments_workflow_id"), "deployments", ["workflow_id"])
    op.create_index("ix_deployments_status_started", "deployments", ["status", "started_at"])

    op.create_table(
        "sync_logs",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("sync_type", sa.String(30), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("workflows_processed", sa.Integer(), nullable=False),
        sa.Column("successful_syncs", sa.Integer(), nullable=False),
        sa.Column("failed_syncs", sa.Integer(), nullable=False),
        sa.Column("skipped_syncs", sa.Integer(), nullable=False),
        sa.Column("executions_updated", sa.Integer(), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('success', 'partial_success', 'error')",
            name=op.f("ck_sync_logs_status_valid"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user_profiles.id"],
            name=op.f("fk_sync_logs_user_id_user_profiles"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_sync_logs")),
    )
    op.create_index(op.f("ix_sync_logs_created_at"), "sync_logs", ["created_at"])


def downgrade() -> None:
    """Drop the owned tables."""
    op.drop_index(op.f("ix_sync_logs_created_at"), table_name="sync_logs")
    op.drop_table("sync_logs")
    op.drop_index("ix_deployments_status_started", table_name="deployments")
    op.drop_index(op.f("ix_deployments_workflow_id"), table_name="deployments")
    op.drop_table("deployments")
    op.drop_index("ix_workflows_user_status", table_name="workflows")
    op.drop_index(op.f("ix_workflows_engine_workflow_id"), table_name="workflows")
    op.drop_index(op.f("ix_workflows_user_id"), table_name="workflows")
    op.drop_table("workflows")
    op.drop_table("user_profiles")
