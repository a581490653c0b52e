"""Engine and session factory setup for the local store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from .base import Base


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_engine(database_url: str) -> AsyncEngine:
    engine_kwargs: dict[str, object] = {}
    if _is_sqlite(database_url):
        engine_kwargs["connect_args"] = {"timeout": 30}
        engine_kwargs["poolclass"] = NullPool
    return create_async_engine(database_url, **engine_kwargs)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def _apply_sqlite_pragmas(sync_conn) -> None:
    """Enable WAL mode and generous timeouts for concurrent SQLite access."""
    sync_conn.exec_driver_sql("PRAGMA journal_mode=WAL")
    sync_conn.exec_driver_sql("PRAGMA synchronous=NORMAL")
    sync_conn.exec_driver_sql("PRAGMA busy_timeout=30000")


async def init_models(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        if engine.dialect.name == "sqlite":
            await conn.run_sync(_apply_sqlite_pragmas)
        await conn.run_sync(Base.metadata.create_all)
