"""
Token Blacklist Model
Stores revoked session tokens until they expire.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, UUIDMixin


class TokenBlacklist(Base, UUIDMixin):
    """
    Blacklist for revoked JWT session tokens.

    Tokens land here on logout (explicit or inactivity-driven) and are
    checked on every authenticated request.
    """

    jti: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="JWT ID (unique token identifier)",
    )

    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA256 hash of the full token",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
    )

    revoked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the token naturally expires (from JWT exp claim)",
    )

    __table_args__ = (
        Index("ix_token_blacklist_expires", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<TokenBlacklist(id={self.id}, jti={self.jti[:8]}..., user_id={self.user_id})>"
