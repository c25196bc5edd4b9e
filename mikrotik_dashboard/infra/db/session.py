"""Async engine and session lifecycle for the device database.

SQLite (aiosqlite) is the default store; a PostgreSQL URL switches the
engine to a sized connection pool. Sessions commit when the block exits
cleanly and roll back otherwise.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mikrotik_dashboard.config import Settings
from mikrotik_dashboard.infra.db.models import Base

logger = logging.getLogger(__name__)

_NOT_INITIALIZED = "SessionManager not initialized. Call init() first."


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Driver specific keyword arguments for create_async_engine."""
    if settings.is_sqlite:
        # aiosqlite hands the connection to its own thread
        return {"connect_args": {"check_same_thread": False, "timeout": 30.0}}

    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def _ensure_sqlite_directory(database_url: str) -> None:
    database = make_url(database_url).database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


class DatabaseSessionManager:
    """Owns the engine and hands out transactional sessions.

    Example:
        manager = DatabaseSessionManager(settings)
        await manager.init()
        await manager.create_all()

        async with manager.session() as session:
            result = await session.execute(select(MikrotikDevice))
            devices = result.scalars().all()

        await manager.close()
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    async def init(self) -> None:
        """Create the engine and session factory.

        For file-backed SQLite the parent directory of the database file is
        created when missing.
        """
        if self.settings.is_sqlite:
            _ensure_sqlite_directory(self.settings.database_url)

        self._engine = create_async_engine(
            self.settings.database_url,
            echo=self.settings.database_echo,
            **_engine_options(self.settings),
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.debug("Database engine created", extra={"driver": self.settings.database_driver})

    async def create_all(self) -> None:
        """Create missing tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Run ``SELECT 1``; False when the manager is closed or the query fails."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False
        return True

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session: commit on success, rollback on error.

        Raises:
            RuntimeError: If session manager not initialized
        """
        if self._session_factory is None:
            raise RuntimeError(_NOT_INITIALIZED)

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine


_session_manager: DatabaseSessionManager | None = None


def get_session_manager(settings: Settings | None = None) -> DatabaseSessionManager:
    """Process wide session manager, built from the global settings on first use."""
    global _session_manager

    if _session_manager is None:
        if settings is None:
            from mikrotik_dashboard.config import get_settings

            settings = get_settings()
        _session_manager = DatabaseSessionManager(settings)

    return _session_manager


def reset_session_manager() -> None:
    global _session_manager
    _session_manager = None
