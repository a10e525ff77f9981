"""Database configuration and session management.

The engine is built from settings on demand rather than at import time, so
callers (and tests) can wire their own engine into the compliance service.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from storeguard.config.settings import Settings, get_settings
from storeguard.db.models.base import Base


def create_engine_from_settings(settings: Settings | None = None) -> AsyncEngine:
    """Create an async engine for the configured database."""
    settings = settings or get_settings()
    kwargs: dict = {"echo": settings.DEBUG}

    if settings.ENVIRONMENT == "test":
        kwargs["poolclass"] = NullPool
    elif not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW

    return create_async_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine, *, create_tables: bool = False) -> None:
    """Verify connectivity and optionally create all tables.

    Production deployments create the schema through alembic; ``create_tables``
    is meant for local development and tests.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Release all pooled connections."""
    await engine.dispose()


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session for one scheduler run or one subject request.

    Usage:
        async with session_scope(factory) as session:
            reporter = ComplianceReporter(session, settings)
            await reporter.run_daily()
    """
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()
