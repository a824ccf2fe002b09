"""
Database Package
Engine, request sessions and the declarative base.
"""

from portal.database.base import Base, TimestampMixin, UUIDMixin
from portal.database.connection import (
    async_engine,
    async_session_factory,
    close_db,
    get_async_session,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "close_db",
    "get_async_session",
]
