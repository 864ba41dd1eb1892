"""
Database initialization and connection management.

This module provides functions for:
1. Creating the async engine and the session factory
2. Creating the schema from the ORM metadata
3. Disposing of the engine on shutdown
"""

from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from formapro.common.logger import get_logger
from formapro.database.base import Base

logger = get_logger("database.init_db")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_session_factory() -> async_sessionmaker:
    """Get the session factory bound to the global engine."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def initialize_database(
    database_url: str,
    echo: bool = False,
    create_schema: bool = True,
    **engine_kwargs: Any
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        create_schema: Create missing tables from the ORM metadata
        **engine_kwargs: Extra arguments for create_async_engine (pool settings)

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    # Register every table on the metadata before create_all
    import formapro.training.models  # noqa: F401
    import formapro.evaluations.models  # noqa: F401

    try:
        logger.info(f"Initializing database with URL: {database_url.split('://')[0]}://...")

        _engine = create_async_engine(database_url, echo=echo, **engine_kwargs)

        if _engine.dialect.name == "sqlite":
            event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if create_schema:
                await conn.run_sync(Base.metadata.create_all)

        logger.info("Database engine initialized successfully")
        return _engine

    except Exception as e:
        logger.error(f"Failed to initialize async database: {str(e)}")
        raise


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        try:
            await _engine.dispose()
            logger.info("Database engine closed successfully")
        except Exception as e:
            logger.error(f"Error closing database engine: {str(e)}")
            raise
        finally:
            _engine = None
            _session_factory = None
