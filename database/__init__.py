"""
Database module for the notification service.

Provides async SQLAlchemy engine ownership and session handling.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one async engine and its session factory.

    Created during application startup (or by tests) and passed to whatever
    needs a session; nothing here is stored at module level.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        settings = settings or get_settings()
        logger.info("Initializing database connection...")

        options = {"echo": settings.debug and settings.database_echo}
        if settings.is_sqlite:
            options["connect_args"] = {"timeout": 30}
        else:
            options.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
            )

        engine = create_async_engine(settings.database_url, **options)
        logger.info("Database initialized successfully")
        return cls(engine)

    async def create_tables(self) -> None:
        """Create all tables from the ORM metadata (development and tests)."""
        from .models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a unit of work.

        Commits when the block exits cleanly, rolls back and re-raises otherwise.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """
        Close the database connection.

        Should be called during application shutdown.
        """
        logger.info("Closing database connection...")
        await self.engine.dispose()
        logger.info("Database connection closed")


__all__ = [
    "Database",
]
