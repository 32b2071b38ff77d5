"""
Database session management with async SQLAlchemy 2.0.

Provides:
- Async engine with connection pooling
- Session factory with proper lifecycle
- Dependency injection for route handlers
- Time-bounded store calls for the auth and quota paths
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Awaitable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from educore.config import settings
from educore.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Base class for all ORM models
class Base(DeclarativeBase):
    """
    Base class for all database models.

    Provides:
    - Common metadata for all tables
    - Type hints for SQLAlchemy
    """
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    Singleton pattern ensures one engine per application.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event) and by
        Celery tasks before touching the store.
        """
        logger.info("Initializing database connection...")

        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if settings.is_development:
            # Development: NullPool for simplicity
            engine_kwargs["poolclass"] = NullPool
            engine_kwargs["echo"] = settings.db_echo
        else:
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow

        self._engine = create_async_engine(
            database_url or settings.database_url,
            **engine_kwargs,
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Manual control over flushes
        )

        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """
        Close database connections.

        Called during application shutdown (lifespan event).
        """
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Dependency injection for database sessions.

        Yields:
            AsyncSession: Database session with automatic cleanup
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()  # Auto-commit on success
            except Exception:
                await session.rollback()  # Auto-rollback on error
                raise


# Global instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        from educore.core.database import get_db

        @router.get("/tenant/{tenant_id}")
        async def get_tenant(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in db_manager.get_session():
        yield session


async def store_call(awaitable: Awaitable[T], operation: str) -> T:
    """
    Await a store operation with the configured time bound.

    Timeouts and connection-level failures become ``StoreUnavailable`` so
    callers on the auth and quota paths can fail closed.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.store_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"Store call timed out: {operation}")
        raise StoreUnavailable(f"Store timeout during {operation}")
    except IntegrityError:
        raise
    except (OperationalError, DBAPIError) as e:
        logger.error(f"Store call failed: {operation} - {e}")
        raise StoreUnavailable(f"Store error during {operation}")
