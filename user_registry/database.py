"""Database engine construction and schema synchronization."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from user_registry.config import Settings
from user_registry.logger import async_log_timing, get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine with the configured pool limits.

    SQLite (local development / tests):
    - NullPool, a new connection per session
    - check_same_thread=False for aiosqlite

    PostgreSQL:
    - pool_size=DB_POOL_MAX with no overflow, so the limit is hard
    - pool_timeout: waiting for a free connection fails instead of queueing forever
    - pool_recycle: connections older than DB_POOL_IDLE_TIMEOUT are replaced
    - pool_pre_ping: stale connections are detected before checkout
    """
    if settings.is_sqlite:
        return create_async_engine(
            settings.database_url,
            echo=settings.debug,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )

    connect_args: dict[str, Any] = {}
    if settings.database_ssl:
        connect_args["ssl"] = "require"

    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_max,
        max_overflow=0,
        pool_timeout=settings.db_pool_acquire_timeout,
        pool_recycle=settings.db_pool_idle_timeout,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables. Existing tables and rows are left untouched."""
    # Register models on Base.metadata
    from user_registry import models  # noqa: F401

    async with async_log_timing("sync_schema", logger=logger, tables=sorted(Base.metadata.tables)):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
