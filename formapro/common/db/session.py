"""
Database Session Management

Repositories receive an ``async_sessionmaker`` and open one session per
operation. ``transaction`` wraps a unit of work that must commit or roll
back as a whole.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formapro.common.error_handling import DatabaseError
from formapro.common.logger import get_logger
from formapro.database.init_db import get_session_factory

logger = get_logger("db.session")


def session_factory() -> async_sessionmaker:
    """
    FastAPI dependency returning the session factory of the running app.

    Tests override it to point repositories at an in-memory database.
    """
    return get_session_factory()


@asynccontextmanager
async def transaction(factory: Optional[async_sessionmaker] = None) -> AsyncIterator[AsyncSession]:
    """
    Open a session with a transaction that commits on exit.

    Any exception rolls the whole transaction back. Driver errors other
    than integrity violations are re-raised as DatabaseError; integrity
    violations propagate unchanged so callers can react to them.

    Example:
        async with transaction(factory) as session:
            session.add(row)
    """
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            async with session.begin():
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e}")
            raise DatabaseError("Database operation failed", cause=e)
