from __future__ import annotations
"""SQLAlchemy 2.0 async database engine and session management.

SQLite via aiosqlite. The engine is created per application instance so the
storage location stays a start-up setting rather than an import-time global.
"""

import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine for ``database_url``.

    The parent directory of a file-backed SQLite database is created if
    missing, and every connection runs in WAL mode with a busy timeout so
    concurrent tool invocations do not trip over each other's writes.
    """
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite and ":memory:" not in database_url:
        db_file = database_url.split(":///", 1)[-1]
        Path(db_file).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args={"timeout": 30} if is_sqlite else {},
    )
    if not is_sqlite:
        return engine

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables defined by Base metadata.

    Called once at application startup. Alembic migrations describe the same
    schema for deployments that manage it out of band.
    """
    import mediabridge.models  # noqa: F401  — triggers model registration

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the engine connection pool.

    Called at application shutdown.
    """
    await engine.dispose()
