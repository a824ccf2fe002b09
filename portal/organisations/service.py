"""
Organisation Access-Restriction Service
Owner-managed per-case visibility for organisation members, plus the
request-only membership workflows that are handed to Acclaim.
"""

import enum
import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import settings
from portal.core.errors import InvalidRequest, NotFound, Unauthorized
from portal.models import Case, Organisation, OrganisationMembership, User
from portal.notifications import (
    NotificationDispatcher,
    NotificationIntent,
    NotificationType,
    OrganisationRequestPayload,
)
from portal.services.repository import PortalRepository

logger = logging.getLogger(__name__)


class AccessState(str, enum.Enum):
    ALLOWED = "allowed"
    RESTRICTED = "restricted"


class BulkAction(str, enum.Enum):
    RESTRICT_ALL = "restrict-all"
    ALLOW_ALL = "allow-all"

    @property
    def restricted(self) -> bool:
        return self is BulkAction.RESTRICT_ALL


class AccessRestrictionService:
    """
    Restriction matrix of (member, case) cells for one organisation.

    A missing cell means allowed. Platform admins and owners are never
    restrictable and never appear in the member list; admins also bypass
    restrictions when cases are listed.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationDispatcher,
        admin_email: Optional[str] = None,
    ):
        self.repository = PortalRepository(session)
        self.notifications = notifications
        self.admin_email = admin_email or settings.admin_notification_email

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    async def _require_owner(self, organisation_id: UUID, user: User) -> Organisation:
        organisation = await self.repository.get_organisation(organisation_id)
        if organisation is None:
            raise NotFound("Organisation not found")

        membership = await self.repository.get_membership(organisation_id, user.id)
        if membership is None or not membership.is_owner:
            logger.warning(f"Non-owner {user.id} attempted an owner action on organisation {organisation_id}")
            raise Unauthorized()

        return organisation

    async def _require_member(self, organisation_id: UUID, user_id: UUID) -> OrganisationMembership:
        membership = await self.repository.get_membership(organisation_id, user_id)
        if membership is None:
            raise NotFound("User is not a member of this organisation")
        return membership

    async def _require_restrictable(self, organisation_id: UUID, user_id: UUID) -> User:
        membership = await self._require_member(organisation_id, user_id)
        if not self._is_restrictable(membership):
            raise NotFound("User is not a restrictable member of this organisation")
        return membership.user

    async def _require_case(self, organisation_id: UUID, case_id: UUID) -> Case:
        case = await self.repository.get_case(case_id)
        if case is None or case.organisation_id != organisation_id:
            raise NotFound("Case not found in this organisation")
        return case

    @staticmethod
    def _is_restrictable(membership: OrganisationMembership) -> bool:
        return not membership.is_owner and not membership.user.is_admin

    async def _restrictable_members(self, organisation_id: UUID) -> list[User]:
        memberships = await self.repository.get_org_memberships(organisation_id)
        users = [m.user for m in memberships if self._is_restrictable(m)]
        return sorted(users, key=lambda u: (u.last_name or "", u.first_name or "", u.email))

    # ------------------------------------------------------------------
    # Owner reads
    # ------------------------------------------------------------------

    async def get_ownerships(self, user: User) -> list[UUID]:
        return await self.repository.get_org_ownerships(user.id)

    async def list_members(self, organisation_id: UUID, owner: User) -> list[User]:
        await self._require_owner(organisation_id, owner)
        return await self._restrictable_members(organisation_id)

    async def list_cases(self, organisation_id: UUID, owner: User) -> list[Case]:
        await self._require_owner(organisation_id, owner)
        return await self.repository.get_org_cases(organisation_id)

    async def get_restrictions(self, organisation_id: UUID, owner: User) -> list[tuple[UUID, UUID]]:
        """
        Restricted (user_id, case_id) pairs.

        Rows left behind by deleted cases or departed members are skipped.
        """
        await self._require_owner(organisation_id, owner)

        member_ids = {u.id for u in await self._restrictable_members(organisation_id)}
        case_ids = {c.id for c in await self.repository.get_org_cases(organisation_id)}

        return [
            (row.user_id, row.case_id)
            for row in await self.repository.get_restrictions_for_org(organisation_id)
            if row.user_id in member_ids and row.case_id in case_ids
        ]

    # ------------------------------------------------------------------
    # Owner writes
    # ------------------------------------------------------------------

    async def toggle_restriction(
        self, organisation_id: UUID, owner: User, user_id: UUID, case_id: UUID
    ) -> bool:
        """
        Flip one cell.

        Returns:
            True if the member is now restricted from the case
        """
        await self._require_owner(organisation_id, owner)
        await self._require_restrictable(organisation_id, user_id)
        await self._require_case(organisation_id, case_id)

        current = await self.lookup(organisation_id, user_id, case_id)
        restricted = current is AccessState.ALLOWED
        await self.repository.set_restriction(organisation_id, user_id, case_id, restricted)

        logger.info(
            f"Owner {owner.id} {'restricted' if restricted else 'allowed'} "
            f"user {user_id} on case {case_id} in organisation {organisation_id}"
        )
        return restricted

    async def bulk_member_restriction(
        self, organisation_id: UUID, owner: User, user_id: UUID, action: BulkAction
    ) -> int:
        """Apply ``action`` to one member across the organisation's current cases."""
        await self._require_owner(organisation_id, owner)
        await self._require_restrictable(organisation_id, user_id)

        cases = await self.repository.get_org_cases(organisation_id)
        return await self._write_cells(
            organisation_id,
            owner,
            ((user_id, case.id) for case in cases),
            action,
        )

    async def bulk_case_restriction(
        self, organisation_id: UUID, owner: User, case_id: UUID, action: BulkAction
    ) -> int:
        """Apply ``action`` to one case across the organisation's current restrictable members."""
        await self._require_owner(organisation_id, owner)
        await self._require_case(organisation_id, case_id)

        members = await self._restrictable_members(organisation_id)
        return await self._write_cells(
            organisation_id,
            owner,
            ((member.id, case_id) for member in members),
            action,
        )

    async def _write_cells(
        self,
        organisation_id: UUID,
        owner: User,
        cells: Iterable[tuple[UUID, UUID]],
        action: BulkAction,
    ) -> int:
        count = await self.repository.set_restrictions(organisation_id, list(cells), action.restricted)
        logger.info(f"Owner {owner.id} applied {action.value} to {count} cells in organisation {organisation_id}")
        return count

    # ------------------------------------------------------------------
    # Lookup used by case listing
    # ------------------------------------------------------------------

    async def lookup(
        self,
        organisation_id: UUID,
        user_id: UUID,
        case_id: UUID,
        default: AccessState = AccessState.ALLOWED,
    ) -> AccessState:
        row = await self.repository.get_restriction(organisation_id, user_id, case_id)
        if row is None:
            return default
        return AccessState.RESTRICTED if row.restricted else AccessState.ALLOWED

    async def visible_case_ids(self, organisation_id: UUID, user: User) -> list[UUID]:
        """Case ids ``user`` may see in the organisation. Admins see every case."""
        cases = await self.repository.get_org_cases(organisation_id)
        if user.is_admin:
            return [case.id for case in cases]

        membership = await self._require_member(organisation_id, user.id)
        if membership.is_owner:
            return [case.id for case in cases]

        restricted = {
            row.case_id
            for row in await self.repository.get_restrictions_for_org(organisation_id)
            if row.user_id == user.id
        }
        return [case.id for case in cases if case.id not in restricted]

    # ------------------------------------------------------------------
    # Membership change requests (handled by Acclaim, never applied here)
    # ------------------------------------------------------------------

    async def request_member_removal(
        self, organisation_id: UUID, owner: User, target_user_id: UUID, reason: Optional[str] = None
    ) -> NotificationIntent:
        organisation = await self._require_owner(organisation_id, owner)
        if target_user_id == owner.id:
            raise InvalidRequest("You cannot request your own removal")
        target = (await self._require_member(organisation_id, target_user_id)).user

        return await self._publish_request(
            NotificationType.MEMBER_REMOVAL_REQUEST, organisation, owner, target, reason
        )

    async def request_owner_delegation(
        self, organisation_id: UUID, owner: User, target_user_id: UUID, reason: Optional[str] = None
    ) -> NotificationIntent:
        organisation = await self._require_owner(organisation_id, owner)
        membership = await self._require_member(organisation_id, target_user_id)
        if membership.is_owner:
            raise InvalidRequest("User is already an owner of this organisation")

        return await self._publish_request(
            NotificationType.OWNER_DELEGATION_REQUEST, organisation, owner, membership.user, reason
        )

    async def request_ownership_removal(
        self, organisation_id: UUID, owner: User, target_user_id: UUID, reason: Optional[str] = None
    ) -> NotificationIntent:
        organisation = await self._require_owner(organisation_id, owner)
        membership = await self._require_member(organisation_id, target_user_id)
        if not membership.is_owner:
            raise InvalidRequest("User is not an owner of this organisation")

        return await self._publish_request(
            NotificationType.OWNERSHIP_REMOVAL_REQUEST, organisation, owner, membership.user, reason
        )

    async def _publish_request(
        self,
        notification_type: NotificationType,
        organisation: Organisation,
        requester: User,
        target: User,
        reason: Optional[str],
    ) -> NotificationIntent:
        intent = NotificationIntent.organisation_request(
            notification_type,
            self.admin_email,
            OrganisationRequestPayload(
                requester_id=requester.id,
                requester_name=requester.full_name,
                requester_email=requester.email,
                target_id=target.id,
                target_name=target.full_name,
                target_email=target.email,
                organisation_id=organisation.id,
                organisation_name=organisation.name,
                reason=reason,
            ),
        )
        self.notifications.publish(intent)

        await self.repository.log_user_activity(
            user_id=requester.id,
            action=notification_type.value.upper(),
            details=f"Requested {notification_type.value.replace('_', ' ')} for {target.email} in {organisation.name}",
        )
        logger.info(f"{notification_type.value} from {requester.id} for {target.id} in organisation {organisation.id}")
        return intent
