"""Engine and session management for the catalog store.

One lazily created async engine per process. SQLite (development, tests)
gets foreign keys and WAL on every new connection; PostgreSQL gets a small
pre-pinged pool. Request handlers receive sessions through get_db_session();
scripts use the get_session() context manager.

Examples:
    >>> from catalog.database import get_session, init_db
    >>> await init_db()
    >>> async with get_session() as session:
    ...     books = (await session.execute(select(Book))).scalars().all()

Tests:
    - tests/unit/test_main.py::TestEndpoints::test_health
    - tests/integration (sessions overridden per test)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog.config import Settings, get_settings

logger = logging.getLogger(__name__)

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine

    if _engine is not None:
        return _engine

    settings = get_settings()
    _engine = create_async_engine(
        settings.DATABASE_URL, echo=settings.DEBUG, **_engine_options(settings)
    )
    if settings.is_sqlite:
        event.listen(_engine.sync_engine, "connect", _on_sqlite_connect)

    # Strip credentials before logging.
    logger.info(f"Catalog store engine ready: {settings.DATABASE_URL.split('@')[-1]}")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session scope for scripts and the CLI.

    DocumentStore commits its own writes, so the closing commit only picks up
    objects a caller added to the session by hand. Errors roll back.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with get_session() as session:
        yield session


async def init_db() -> None:
    """Create missing tables for every catalog model."""
    from catalog.models import Base
    import catalog.models_auth  # noqa: F401  registers users on Base.metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Catalog tables ensured")


async def check_db_connection() -> bool:
    """True when the store answers SELECT 1."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Catalog store health check failed: {e}")
        return False
    return True


async def close_db() -> None:
    """Dispose of the engine at shutdown; the next call recreates it."""
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Catalog store connections closed")
