"""
Portal Repository
Persistence operations used by the authentication gate and the
organisation access-restriction engine.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.utils import hash_token, normalize_email
from portal.models import (
    AuditLog,
    Case,
    CaseAccessRestriction,
    LoginAttempt,
    MembershipRole,
    Organisation,
    OrganisationMembership,
    TokenBlacklist,
    User,
    UserActivityLog,
)
from portal.models.login_attempt import IP_ADDRESS_LENGTH, USER_AGENT_LENGTH

logger = logging.getLogger(__name__)


def clip(value: Optional[str], length: int) -> Optional[str]:
    """Cut request-supplied text to its column width."""
    if value is None:
        return None
    return value[:length]


class PortalRepository:
    """Async SQLAlchemy access to users, organisations, cases and audit trails."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        """
        Get user by email address, ignoring case.

        Args:
            email: Email as typed by the user

        Returns:
            User if found, None otherwise
        """
        query = select(User).where(func.lower(User.email) == normalize_email(email))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_azure_id(self, azure_id: str) -> User | None:
        result = await self.session.execute(select(User).where(User.azure_id == azure_id))
        return result.scalar_one_or_none()

    async def link_azure_account(self, user: User, azure_id: str) -> None:
        user.azure_id = azure_id
        await self.session.commit()
        logger.info("Linked Azure account for user %s", user.id)

    # ------------------------------------------------------------------
    # Login history and audit trails
    # ------------------------------------------------------------------

    async def log_login_attempt(
        self,
        email: str,
        success: bool,
        ip_address: str,
        user_agent: str,
        user_id: Optional[UUID] = None,
        failure_reason: Optional[str] = None,
    ) -> LoginAttempt:
        """Record a login attempt. Successful rows are the login history."""
        attempt = LoginAttempt(
            email=normalize_email(email),
            user_id=user_id,
            ip_address=clip(ip_address, IP_ADDRESS_LENGTH),
            user_agent=clip(user_agent, USER_AGENT_LENGTH),
            success=success,
            failure_reason=failure_reason,
        )
        self.session.add(attempt)
        await self.session.commit()
        return attempt

    async def is_new_login_location(self, email: str, ip_address: str, user_agent: str) -> bool:
        """True when no earlier successful login used this exact (IP, user agent)."""
        query = (
            select(LoginAttempt.id)
            .where(
                and_(
                    LoginAttempt.email == normalize_email(email),
                    LoginAttempt.success.is_(True),
                    LoginAttempt.ip_address == clip(ip_address, IP_ADDRESS_LENGTH),
                    LoginAttempt.user_agent == clip(user_agent, USER_AGENT_LENGTH),
                )
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is None

    async def log_user_activity(
        self,
        user_id: UUID,
        action: str,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserActivityLog:
        row = UserActivityLog(
            user_id=user_id,
            action=action,
            details=details,
            ip_address=clip(ip_address, IP_ADDRESS_LENGTH),
            user_agent=clip(user_agent, USER_AGENT_LENGTH),
        )
        self.session.add(row)
        await self.session.commit()
        return row

    async def log_audit_event(
        self,
        table_name: str,
        record_id: str,
        operation: str,
        description: Optional[str] = None,
        user_id: Optional[UUID] = None,
        user_email: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        row = AuditLog(
            table_name=table_name,
            record_id=record_id,
            operation=operation,
            description=description,
            user_id=user_id,
            user_email=clip(user_email, 255),
            ip_address=clip(ip_address, IP_ADDRESS_LENGTH),
            user_agent=clip(user_agent, USER_AGENT_LENGTH),
            details=details,
        )
        self.session.add(row)
        await self.session.commit()
        return row

    # ------------------------------------------------------------------
    # Session token revocation
    # ------------------------------------------------------------------

    async def is_token_blacklisted(self, jti: str) -> bool:
        result = await self.session.execute(select(TokenBlacklist.id).where(TokenBlacklist.jti == jti))
        return result.scalar_one_or_none() is not None

    async def blacklist_token(self, jti: str, token: str, user_id: UUID, expires_at: datetime) -> None:
        if await self.is_token_blacklisted(jti):
            return
        self.session.add(
            TokenBlacklist(
                jti=jti,
                token_hash=hash_token(token),
                user_id=user_id,
                expires_at=expires_at,
                revoked_at=datetime.now(timezone.utc),
            )
        )
        await self.session.commit()

    # ------------------------------------------------------------------
    # Organisations and cases
    # ------------------------------------------------------------------

    async def get_organisation(self, organisation_id: UUID) -> Organisation | None:
        result = await self.session.execute(select(Organisation).where(Organisation.id == organisation_id))
        return result.scalar_one_or_none()

    async def get_membership(self, organisation_id: UUID, user_id: UUID) -> OrganisationMembership | None:
        query = select(OrganisationMembership).where(
            and_(
                OrganisationMembership.organisation_id == organisation_id,
                OrganisationMembership.user_id == user_id,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_org_ownerships(self, user_id: UUID) -> list[UUID]:
        """Ids of the organisations ``user_id`` owns."""
        query = select(OrganisationMembership.organisation_id).where(
            and_(
                OrganisationMembership.user_id == user_id,
                OrganisationMembership.role == MembershipRole.OWNER,
            )
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_org_memberships(self, organisation_id: UUID) -> list[OrganisationMembership]:
        query = select(OrganisationMembership).where(OrganisationMembership.organisation_id == organisation_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_org_cases(self, organisation_id: UUID) -> list[Case]:
        query = (
            select(Case)
            .where(Case.organisation_id == organisation_id)
            .order_by(Case.account_number)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_case(self, case_id: UUID) -> Case | None:
        result = await self.session.execute(select(Case).where(Case.id == case_id))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Case access restrictions
    # ------------------------------------------------------------------

    async def get_restriction(
        self, organisation_id: UUID, user_id: UUID, case_id: UUID
    ) -> CaseAccessRestriction | None:
        query = select(CaseAccessRestriction).where(
            and_(
                CaseAccessRestriction.organisation_id == organisation_id,
                CaseAccessRestriction.user_id == user_id,
                CaseAccessRestriction.case_id == case_id,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_restrictions_for_org(self, organisation_id: UUID) -> list[CaseAccessRestriction]:
        """Restricted cells only; explicitly allowed rows are left out."""
        query = select(CaseAccessRestriction).where(
            and_(
                CaseAccessRestriction.organisation_id == organisation_id,
                CaseAccessRestriction.restricted.is_(True),
            )
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def set_restriction(
        self, organisation_id: UUID, user_id: UUID, case_id: UUID, restricted: bool
    ) -> CaseAccessRestriction:
        row = await self.get_restriction(organisation_id, user_id, case_id)
        if row is None:
            row = CaseAccessRestriction(
                organisation_id=organisation_id,
                user_id=user_id,
                case_id=case_id,
                restricted=restricted,
            )
            self.session.add(row)
        else:
            row.restricted = restricted
        await self.session.commit()
        return row

    async def set_restrictions(
        self,
        organisation_id: UUID,
        cells: Iterable[tuple[UUID, UUID]],
        restricted: bool,
    ) -> int:
        """
        Set many (user, case) cells to the same state in one transaction.

        Returns:
            Number of cells written
        """
        existing = {
            (row.user_id, row.case_id): row
            for row in (
                await self.session.execute(
                    select(CaseAccessRestriction).where(CaseAccessRestriction.organisation_id == organisation_id)
                )
            ).scalars().all()
        }

        count = 0
        for user_id, case_id in cells:
            row = existing.get((user_id, case_id))
            if row is None:
                self.session.add(
                    CaseAccessRestriction(
                        organisation_id=organisation_id,
                        user_id=user_id,
                        case_id=case_id,
                        restricted=restricted,
                    )
                )
            else:
                row.restricted = restricted
            count += 1

        await self.session.commit()
        return count
