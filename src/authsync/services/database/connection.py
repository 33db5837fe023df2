"""Async SQLAlchemy engine and session factory management."""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.authsync.services.database.models import Base

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """
    Select an async driver for plain database URLs.

    Hosting providers hand out `postgres://` / `postgresql://` URLs; the
    async engine needs the driver spelled out.

    Example:
        >>> normalize_database_url("postgres://u:p@db:5432/app")
        'postgresql+asyncpg://u:p@db:5432/app'
    """
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://") :]
    if url.startswith("sqlite://") and not url.startswith("sqlite+"):
        return "sqlite+aiosqlite://" + url[len("sqlite://") :]
    return url


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the process-wide engine (and its connection pool).

    Args:
        database_url: SQLAlchemy URL; plain postgres/sqlite URLs are upgraded
            to their async drivers
        echo: Log every SQL statement

    Returns:
        AsyncEngine owning the connection pool
    """
    url = normalize_database_url(database_url)
    kwargs: dict = {"echo": echo}
    if not url.startswith("sqlite"):
        kwargs["pool_pre_ping"] = True
    engine = create_async_engine(url, **kwargs)
    logger.info("Database engine created", extra={"dialect": engine.dialect.name})
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables. Existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
