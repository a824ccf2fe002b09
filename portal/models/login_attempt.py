"""
Login Attempt Model
Audit trail of every login attempt; successful rows double as login history.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, UUIDMixin

# Column widths the repository clips request-supplied values to
IP_ADDRESS_LENGTH = 45
USER_AGENT_LENGTH = 512


class LoginAttempt(Base, UUIDMixin):
    """
    One row per login attempt (password or SSO).

    Rows with ``success=True`` form the append-only login history used to
    decide whether a login comes from a new (IP, user agent) pair.

    Attributes:
        id: Unique identifier (UUID)
        email: Email address used in the attempt (normalised)
        user_id: Matching user, if the account exists
        ip_address: Source IP address (IPv6 safe length)
        user_agent: User-Agent header, clipped to the column width
        success: Whether the login succeeded
        failure_reason: Why a failed attempt was rejected
        attempted_at: When the attempt was made
    """

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Email address used in login attempt",
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        index=True,
        comment="User ID if user exists (null for non-existent users)",
    )

    ip_address: Mapped[str] = mapped_column(
        String(IP_ADDRESS_LENGTH),
        nullable=False,
        comment="IP address of the login attempt (supports IPv6)",
    )

    user_agent: Mapped[str] = mapped_column(
        String(USER_AGENT_LENGTH),
        nullable=False,
        default="unknown",
    )

    success: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )

    failure_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    __table_args__ = (
        Index("ix_login_attempt_email_time", "email", "attempted_at"),
        Index("ix_login_attempt_history", "email", "success", "ip_address", "user_agent"),
    )

    def __repr__(self) -> str:
        return (
            f"<LoginAttempt("
            f"id={self.id}, "
            f"email={self.email}, "
            f"success={self.success}, "
            f"attempted_at={self.attempted_at.isoformat() if self.attempted_at else 'N/A'})>"
        )
