"""Database session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from musicindex.config import Settings
from musicindex.infrastructure.persistence.retry import LockStats

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager."""

    def __init__(self, settings: Settings) -> None:
        """Initialize database with settings."""
        self.settings = settings
        self.url = settings.database_url
        self.lock_stats = LockStats()

        engine_kwargs: dict[str, Any] = {
            "echo": settings.database.echo,
            "pool_pre_ping": settings.database.pool_pre_ping,
        }
        if "sqlite" in self.url:
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": 30,  # Wait up to 30s for lock
            }

        self._engine = create_async_engine(self.url, **engine_kwargs)

        if "sqlite" in self.url and ":memory:" not in self.url:
            self._enable_sqlite_wal()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _enable_sqlite_wal(self) -> None:
        """Switch file-backed SQLite to WAL so readers don't block the scan's writers."""

        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    # Hey future me - every repository call opens its OWN scope. Batch members run
    # concurrently and an AsyncSession must never be shared between tasks.
    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                # Rollback on any exception - re-raised for the caller to handle
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create all tables that don't exist yet."""
        from musicindex.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug(f"Metadata store ready at {self.url}")

    async def close(self) -> None:
        """Close database connection."""
        await self._engine.dispose()
