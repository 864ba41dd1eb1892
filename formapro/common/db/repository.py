"""
Repository Base Module

Base class for repositories backed by an async SQLAlchemy session factory.
Each operation opens its own session; multi-row writes go through
``transaction``.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from formapro.common.error_handling import DatabaseError, NotFoundError
from formapro.common.logger import get_logger

logger = get_logger("db.repository")

# Type variable for ORM models
T = TypeVar('T')


class SQLAlchemyRepository(Generic[T]):
    """
    Common read operations on a single ORM model.

    Subclasses set ``model`` and ``entity_type`` and add their own queries.
    """

    model: Type[T]
    entity_type: str = "Entity"

    def __init__(self, session_factory: async_sessionmaker):
        """
        Initialize the repository with a session factory.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory

    async def get(self, entity_id: int) -> Optional[T]:
        """
        Get an entity by ID.

        Returns:
            The entity, or None if it does not exist
        """
        try:
            async with self._session_factory() as session:
                return await session.get(self.model, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading {self.entity_type} {entity_id}: {e}")
            raise DatabaseError(f"Failed to load {self.entity_type}", cause=e)

    async def get_or_raise(self, entity_id: int) -> T:
        """
        Get an entity by ID.

        Raises:
            NotFoundError: If the entity doesn't exist
        """
        entity = await self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_type, entity_id)
        return entity

    async def list(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[T]:
        """
        List entities whose columns equal the given filter values, by id.
        """
        stmt = select(self.model)
        for column, value in (filters or {}).items():
            stmt = stmt.where(getattr(self.model, column) == value)
        stmt = stmt.order_by(self.model.id)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing {self.entity_type}: {e}")
            raise DatabaseError(f"Failed to list {self.entity_type}", cause=e)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        for column, value in (filters or {}).items():
            stmt = stmt.where(getattr(self.model, column) == value)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.entity_type}: {e}")
            raise DatabaseError(f"Failed to count {self.entity_type}", cause=e)
