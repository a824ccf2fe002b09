"""
Case Access Restriction Model
Per-(organisation, user, case) visibility override set by organisation owners.
"""

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, TimestampMixin, UUIDMixin


class CaseAccessRestriction(Base, UUIDMixin, TimestampMixin):
    """
    One cell of an organisation's access matrix.

    No row means the user may see the case. A row with ``restricted=False``
    records that an owner explicitly allowed it.

    Rows are not cascaded away when a member leaves or a case moves to
    another organisation; readers filter those orphans out.
    """

    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organisations.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    restricted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("organisation_id", "user_id", "case_id", name="uq_restriction_org_user_case"),
        Index("ix_restriction_org_restricted", "organisation_id", "restricted"),
    )
