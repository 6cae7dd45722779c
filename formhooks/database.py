"""
Database engine and session management.

The engine and session factory are built once at process start (FastAPI
lifespan or ARQ worker startup) and handed to every component that needs
the store. Nothing in this module holds a global connection.
"""
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the given URL."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # In-memory SQLite needs one shared connection
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory shared by the store, enqueuer and relay."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session from the app's factory."""
    async with request.app.state.session_factory() as session:
        yield session
