"""Database engine and session management.

The engine is created lazily so that it binds to the running event loop
(asyncpg connections cannot cross loops).
"""

from collections.abc import AsyncGenerator
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from weather_api.config import settings
from weather_api.logging_config import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Get or create the shared engine.

    Under ``settings.testing`` a NullPool is used so that each test event
    loop opens its own connections.
    """
    global _engine
    if _engine is None:
        if settings.testing:
            _engine = create_async_engine(settings.database_url, poolclass=NullPool)
        else:
            _engine = create_async_engine(
                settings.database_url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
            )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the session maker."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session_maker()() as session:
        yield session


async def check_database_connection() -> bool:
    """Return True if a trivial query succeeds against the store."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception:
        logger.warning("Database connectivity check failed")
        return False


async def close_database() -> None:
    """Dispose the engine and forget the session maker."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None
