"""
Activity and Audit Models
User activity trail and security-relevant audit events.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, UUIDMixin
from portal.models.login_attempt import IP_ADDRESS_LENGTH, USER_AGENT_LENGTH


class UserActivityLog(Base, UUIDMixin):
    """Things a signed-in user did (LOGIN, LOGOUT, ...)."""

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(IP_ADDRESS_LENGTH), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(USER_AGENT_LENGTH), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_user_activity_user_time", "user_id", "timestamp"),
    )


class AuditLog(Base, UUIDMixin):
    """
    Security and data-change audit events.

    ``table_name``/``record_id`` identify what was touched; for lockouts the
    record id is the locked IP address.
    """

    table_name: Mapped[str] = mapped_column(String(80), nullable=False)
    record_id: Mapped[str] = mapped_column(String(255), nullable=False)
    operation: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(IP_ADDRESS_LENGTH), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(USER_AGENT_LENGTH), nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
