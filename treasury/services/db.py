"""Database connection and session management."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from treasury.models import Base
from treasury.services.config import settings


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, sharing one connection for in-memory SQLite.

    Args:
        database_url: Async SQLAlchemy URL (e.g. "sqlite+aiosqlite:///./treasury.db")
        echo: Log emitted SQL

    Returns:
        AsyncEngine bound to the URL
    """
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url:
            return create_async_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(
            database_url, echo=echo, connect_args={"check_same_thread": False}
        )
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine = create_engine_for_url(settings.database_url, echo=settings.database_echo)
AsyncSessionLocal = create_session_factory(async_engine)


async def init_models(engine: AsyncEngine = async_engine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used for independently committed bulk items."""
    return AsyncSessionLocal


__all__ = [
    "async_engine",
    "AsyncSessionLocal",
    "create_engine_for_url",
    "create_session_factory",
    "init_models",
    "get_async_session",
    "get_session_factory",
]
