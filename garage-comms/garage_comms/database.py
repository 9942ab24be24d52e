"""
Database Module
===============
Async engine, session factory and declarative base for the OTP and
rate limit tables.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import (
    create_async_engine as sa_create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.orm import DeclarativeBase
import structlog

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def create_async_engine(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_pre_ping: bool = True,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create and configure the async database engine.

    Args:
        database_url: Async connection string (postgresql+asyncpg://...,
            sqlite+aiosqlite://...)
        pool_size: Connection pool size (ignored for SQLite)
        max_overflow: Max overflow connections (ignored for SQLite)
        pool_pre_ping: Enable connection health checks
        echo: Log SQL statements

    Returns:
        Configured AsyncEngine instance
    """
    options = {"pool_pre_ping": pool_pre_ping, "echo": echo}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=pool_size, max_overflow=max_overflow)

    engine = sa_create_async_engine(database_url, **options)
    logger.info("database_engine_initialized", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory passed to the SQL stores.

    Usage:
        factory = create_session_factory(engine)
        async with factory() as session:
            ...
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create the tables registered on ``Base`` (development and tests)."""
    # Import for side effects: registers the ORM models on Base.metadata
    from garage_comms.otp import sql_store  # noqa: F401
    from garage_comms.rate_limit import sql_limiter  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
