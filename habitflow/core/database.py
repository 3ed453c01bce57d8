"""
Async engine and session factory for the habit store.

``init_database`` is called once from the app lifespan; repositories get
the session factory through the service container. Tests build their own
engines with ``create_engine`` / ``create_tables``.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from ..models.base import Base
from .config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_dir(database_url: str) -> None:
    path = make_url(database_url).database
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def create_engine(database_url: str) -> AsyncEngine:
    """Engine with the pool and pragmas the backend needs."""
    kwargs = {"echo": False}
    if _is_sqlite(database_url):
        # A :memory: database lives and dies with its one connection
        kwargs["poolclass"] = StaticPool if ":memory:" in database_url else NullPool
    else:
        kwargs["pool_pre_ping"] = True
    engine = create_async_engine(database_url, **kwargs)
    if _is_sqlite(database_url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(database_url: Optional[str] = None) -> None:
    """Open the process-wide engine and make sure the schema exists."""
    global _engine, _session_factory

    database_url = database_url or get_settings().database_url
    # Keep credentials out of the log
    logger.info(f"Opening habit store at {database_url.split('@')[-1]}")

    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)
    _engine = create_engine(database_url)
    _session_factory = create_session_factory(_engine)
    await create_tables(_engine)


async def close_database() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Habit store connection closed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker:
    if _session_factory is None:
        raise RuntimeError("Database is not initialized; call init_database() first")
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session from the process-wide factory, rolled back if the block raises."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def health_check() -> bool:
    """True when ``SELECT 1`` round-trips."""
    try:
        async with get_db_session() as session:
            return (await session.execute(text("SELECT 1"))).scalar() == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
