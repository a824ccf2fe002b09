"""
Case Model
A debt-recovery matter belonging to one organisation.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, TimestampMixin, UUIDMixin


class Case(Base, UUIDMixin, TimestampMixin):
    """
    Minimal case record.

    Only the fields the access-restriction screens display are modelled
    here; the full case record is owned by the case management module.
    """

    account_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    debtor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")

    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organisations.id", ondelete="CASCADE"),
        nullable=False,
    )

    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_cases_organisation", "organisation_id"),
    )

    def __repr__(self) -> str:
        return f"<Case(id={self.id}, account_number={self.account_number!r})>"
