"""
Database module for the Formal Photo Studio API.

Provides async SQLAlchemy database connection management, session handling
and an explicit transaction boundary for writes that must be atomic.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_database(database_url: str | None = None, create_schema: bool | None = None) -> None:
    """
    Initialize the database engine and session factory.

    Should be called during application startup.
    """
    global _engine, _async_session_factory

    settings = get_settings()

    if not settings.database_enabled:
        logger.info("Database is disabled, skipping initialization")
        return

    database_url = database_url or settings.database_url
    if not database_url:
        logger.warning("DATABASE_URL not configured, database features disabled")
        return

    logger.info("Initializing database connection...")

    engine_kwargs = {"echo": settings.debug and settings.db_echo}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )

    _engine = create_async_engine(database_url, **engine_kwargs)

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if create_schema if create_schema is not None else settings.db_create_schema:
        from database.models import Base

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    logger.info("Database initialized successfully")


async def close_database() -> None:
    """
    Close the database connection.

    Should be called during application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.info("Closing database connection...")
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection closed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory, failing loudly if not initialized."""
    if _async_session_factory is None:
        raise RuntimeError(
            "Database not initialized. Call init_database() first or check DATABASE_URL."
        )
    return _async_session_factory


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session whose work commits together or not at all.

    Usage:
        async with transaction() as session:
            session.add(...)
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        async with session.begin():
            yield session


def is_database_available() -> bool:
    """Check if database is available and initialized."""
    return _engine is not None and _async_session_factory is not None


async def check_database() -> dict:
    """Run a trivial query to report database health."""
    from sqlalchemy import text

    if not is_database_available():
        return {"status": "not_initialized"}
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


# Export commonly used items
__all__ = [
    "init_database",
    "close_database",
    "get_session_factory",
    "transaction",
    "is_database_available",
    "check_database",
]
