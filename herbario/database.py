"""
Async database engine and sessions (SQLAlchemy 2.0).

PostgreSQL (asyncpg) in deployment, SQLite (aiosqlite) for local runs and
tests. Request handlers get a session from ``get_db``; scripts use
``session_scope``.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from herbario.config import Settings, get_settings

settings = get_settings()


def _engine_options(settings: Settings) -> Dict[str, Any]:
    if settings.database_url.startswith("sqlite"):
        # One connection per session; SQLite cannot share one across tasks
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": NullPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "connect_args": {"command_timeout": settings.db_statement_timeout_seconds},
    }


def _sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """WAL for concurrent readers, enforced foreign keys, bounded lock waits."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    new_engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        **_engine_options(settings),
    )
    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine.sync_engine, "connect", _sqlite_pragmas)
    return new_engine


engine = build_engine(settings)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Services commit their own writes before the handler returns, since
    teardown here may run after the response is sent. Anything still
    pending at exit is committed; an exception rolls it back.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Same commit/rollback contract as ``get_db``, for code outside a request."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. Deployments run alembic migrations instead."""
    from herbario.kernel.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
