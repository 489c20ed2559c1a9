"""Async SQLAlchemy engine and session construction."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tsumitan.config import DatabaseSettings


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Build the async SQLAlchemy engine; called once at start-up."""
    return create_async_engine(settings.url, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the async session factory bound to ``engine``."""
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def get_db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for request-scoped use."""
    async with session_factory() as session:
        yield session
