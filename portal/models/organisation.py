"""
Organisation Models
Tenant grouping of users and debt-recovery cases.
"""

import enum
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from portal.models.user import User


class MembershipRole(str, enum.Enum):
    """Role a user holds inside one organisation."""

    MEMBER = "member"
    OWNER = "owner"


class Organisation(Base, UUIDMixin, TimestampMixin):
    """
    Organisation model for multi-tenancy.

    This is the tenant isolation boundary: cases, memberships and case
    access restrictions are all scoped to an organisation.
    """

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    memberships: Mapped[list["OrganisationMembership"]] = relationship(
        "OrganisationMembership",
        back_populates="organisation",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organisation(id={self.id}, name={self.name!r})>"


class OrganisationMembership(Base, UUIDMixin, TimestampMixin):
    """
    Links a user to an organisation with a role.

    An organisation may have zero, one or several owners. Owner status is
    only ever changed by an administrator; owners can request changes but
    never apply them.
    """

    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organisations.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[MembershipRole] = mapped_column(
        Enum(MembershipRole, name="membership_role_enum", values_callable=lambda e: [m.value for m in e]),
        default=MembershipRole.MEMBER,
        nullable=False,
    )

    organisation: Mapped["Organisation"] = relationship(
        "Organisation",
        back_populates="memberships",
        lazy="selectin",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="memberships",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("organisation_id", "user_id", name="uq_membership_org_user"),
        Index("ix_membership_user", "user_id"),
    )

    @property
    def is_owner(self) -> bool:
        return self.role == MembershipRole.OWNER
