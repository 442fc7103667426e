"""Base repository with common read and insert operations."""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository with common operations.

    Subclasses must set ``model`` to the SQLAlchemy model class.
    """

    model: type[T]

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_by_id(self, id: str) -> T | None:
        """Get entity by primary key, or None."""
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def add(self, entity: T) -> T:
        """Add an entity and flush so database defaults and constraints apply."""
        self.session.add(entity)
        await self.session.flush()
        return entity
