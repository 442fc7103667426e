"""Deployment record repository."""

from datetime import UTC, datetime

from sqlalchemy import select

from src.dal.base import BaseRepository
from src.exceptions import DeploymentNotFoundError
from src.storage.entities import Deployment, DeploymentStatus


class DeploymentRepository(BaseRepository[Deployment]):
    """Repository for Deployment records."""

    model = Deployment

    async def get_or_raise(self, deployment_id: str) -> Deployment:
        """Get a deployment by id.

        Raises:
            DeploymentNotFoundError: If no such deployment exists
        """
        deployment = await self.get_by_id(deployment_id)
        if deployment is None:
            raise DeploymentNotFoundError(deployment_id)
        return deployment

    async def get_for_version(self, workflow_id: str, version: int) -> Deployment | None:
        """The (unique) deployment row for one workflow version."""
        result = await self.session.execute(
            select(Deployment).where(
                Deployment.workflow_id == workflow_id,
                Deployment.version == version,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_workflow(self, workflow_id: str, limit: int = 50) -> list[Deployment]:
        """Deployments for a workflow, newest version first."""
        result = await self.session.execute(
            select(Deployment)
            .where(Deployment.workflow_id == workflow_id)
            .order_by(Deployment.version.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_for_workflow(self, workflow_id: str) -> Deployment | None:
        deployments = await self.list_for_workflow(workflow_id, limit=1)
        return deployments[0] if deployments else None

    async def create_pending(self, workflow_id: str, user_id: str, version: int) -> Deployment:
        """Insert a new attempt in ``pending``.

        Raises:
            sqlalchemy.exc.IntegrityError: If a row for (workflow_id, version)
                already exists
        """
        deployment = Deployment(
            workflow_id=workflow_id,
            user_id=user_id,
            version=version,
            status=DeploymentStatus.PENDING,
            started_at=datetime.now(UTC),
        )
        return await self.add(deployment)

    async def list_stale(self, cutoff: datetime) -> list[Deployment]:
        """``deploying`` rows started before ``cutoff``."""
        result = await self.session.execute(
            select(Deployment).where(
                Deployment.status == DeploymentStatus.DEPLOYING,
                Deployment.started_at < cutoff,
            )
        )
        return list(result.scalars().all())
