"""User profile repository."""

from datetime import datetime

from sqlalchemy import func, update

from src.dal.base import BaseRepository
from src.storage.entities import UserProfile


class UserProfileRepository(BaseRepository[UserProfile]):
    """Repository for UserProfile records."""

    model = UserProfile

    async def record_successful_deployment(self, user_id: str, completed_at: datetime) -> bool:
        """Bump the deployment counter and set first-deployment time once.

        A single UPDATE, so concurrent deployments by the same user cannot
        lose an increment.

        Returns:
            True if the profile exists and was updated
        """
        result = await self.session.execute(
            update(UserProfile)
            .where(UserProfile.id == user_id)
            .values(
                total_deployments=UserProfile.total_deployments + 1,
                first_deployment_at=func.coalesce(UserProfile.first_deployment_at, completed_at),
            )
        )
        return bool(result.rowcount)
