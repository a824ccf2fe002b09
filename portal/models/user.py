"""
User Model
Represents portal users: organisation members, owners and Acclaim admins.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from portal.models.organisation import OrganisationMembership


class User(Base, UUIDMixin, TimestampMixin):
    """
    User model for authentication and identity.

    Attributes:
        id: Unique identifier (UUID)
        email: Login email, stored lowercase
        first_name / last_name: Display name parts
        password_hash: bcrypt hash, or legacy scrypt ``hexdigest.salt``;
            null for SSO-only accounts
        temporary_password: Admin-issued one-time password, cleared by the
            password change flow
        must_change_password: Forces a password change after login
        is_admin: Platform-wide Acclaim administrator flag
        is_active: Whether the account may log in
        login_notifications: Email the user on logins from new locations
        azure_id: Linked Entra External ID home account id
        memberships: Organisation memberships (member or owner)
    """

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    first_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    temporary_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    must_change_password: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    login_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    azure_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)

    memberships: Mapped[list["OrganisationMembership"]] = relationship(
        "OrganisationMembership",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_users_email_active", "email", "is_active"),
    )

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "User"

    @property
    def organisation_ids(self) -> list:
        return [m.organisation_id for m in self.memberships]

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, is_admin={self.is_admin})>"
