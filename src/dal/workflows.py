"""Workflow repository."""

from sqlalchemy import select

from src.dal.base import BaseRepository
from src.exceptions import WorkflowNotFoundError
from src.storage.entities import Workflow, WorkflowDeploymentStatus


class WorkflowRepository(BaseRepository[Workflow]):
    """Repository for Workflow records."""

    model = Workflow

    async def get_or_raise(self, workflow_id: str) -> Workflow:
        """Get a workflow by id.

        Raises:
            WorkflowNotFoundError: If no such workflow exists
        """
        workflow = await self.get_by_id(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def list_syncable(self, user_id: str | None = None) -> list[Workflow]:
        """Active, deployed workflows, ordered by last sync (oldest first).

        Rows without an engine id are included so reconciliation can
        count them as skipped.
        """
        query = select(Workflow).where(
            Workflow.is_active.is_(True),
            Workflow.deployment_status == WorkflowDeploymentStatus.DEPLOYED,
        )
        if user_id:
            query = query.where(Workflow.user_id == user_id)
        query = query.order_by(Workflow.last_sync_at.asc().nulls_first())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_retryable(self, max_retries: int, limit: int = 50) -> list[Workflow]:
        """Workflows whose last deployment failed, under the retry budget.

        Inactive workflows are included; they are redeployed inactive.
        """
        query = (
            select(Workflow)
            .where(
                Workflow.deployment_status == WorkflowDeploymentStatus.FAILED,
                Workflow.deployment_retry_count < max_retries,
            )
            .order_by(Workflow.updated_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
