"""Async database engine and session management.

Holds the process-wide async engine and session factory used by the
operation registry. SQLite (aiosqlite) is the default backend; PostgreSQL
works through the same URL-driven setup.
"""

import asyncio
import weakref

from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_connection_locks: weakref.WeakKeyDictionary[Engine, asyncio.Lock] = weakref.WeakKeyDictionary()


def get_engine() -> AsyncEngine:
    """Return the current async engine.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the current session factory.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def shared_connection_lock(engine: AsyncEngine) -> asyncio.Lock | None:
    """Return the lock serializing sessions on a single-connection engine.

    A ``StaticPool`` engine hands every session the same connection, so a
    rollback in one session discards uncommitted writes of another. Sessions
    on such an engine must not interleave. Pooled engines return None.
    """
    sync_engine = engine.sync_engine
    if not isinstance(sync_engine.pool, StaticPool):
        return None
    lock = _connection_locks.get(sync_engine)
    if lock is None:
        lock = _connection_locks[sync_engine] = asyncio.Lock()
    return lock


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite") and (":memory:" in database_url or database_url.endswith("://"))


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: object) -> AsyncEngine:
    """Create and store the async engine and session factory.

    In-memory SQLite URLs get a ``StaticPool`` so every session sees the
    same database; see shared_connection_lock().

    Args:
        database_url: Async SQLAlchemy connection string.
        schema: Optional PostgreSQL schema for isolated environments.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The created async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if schema is not None:
        connect_args = kwargs.pop("connect_args", {})
        if not isinstance(connect_args, dict):
            msg = "connect_args must be a dict"
            raise TypeError(msg)
        connect_args["options"] = f"-c search_path={schema},public"
        kwargs["connect_args"] = connect_args
    if _is_memory_sqlite(database_url):
        kwargs.setdefault("poolclass", StaticPool)
    elif not database_url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 5)
    _engine = create_async_engine(database_url, **kwargs)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def create_all_tables() -> None:
    """Create every mapped table that does not exist yet.

    Used for SQLite development databases and tests; managed deployments
    run Alembic migrations instead.
    """
    from pack_manager.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the async engine and release connections."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
