"""
Async engine and request-scoped sessions.

Writes are committed by ``PortalRepository`` one at a time, so audit rows
written before a failure stay written. The request session only rolls back
whatever was left uncommitted when a handler raises.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from portal.config import settings

# Keep SQL statements out of the application log
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

async_engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
)

# Objects stay readable after the repository commits
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the connection pool on shutdown."""
    await async_engine.dispose()
