"""
Organisation Owner Router
Endpoints owners use to manage case visibility and request membership changes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, status

from portal.auth.dependencies import CurrentUser, DbSession, DispatcherDep
from portal.organisations.schemas import (
    BulkCaseRestrictionRequest,
    BulkMemberRestrictionRequest,
    BulkRestrictionResponse,
    CaseSummary,
    MemberSummary,
    MembershipChangeRequest,
    OwnershipsResponse,
    RequestAcceptedResponse,
    RestrictionPair,
    RestrictionsResponse,
    ToggleRestrictionRequest,
    ToggleRestrictionResponse,
)
from portal.organisations.service import AccessRestrictionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/org-owner", tags=["Organisation Owner"])


@router.get(
    "/ownerships",
    response_model=OwnershipsResponse,
    summary="Owned organisations",
    description="Ids of the organisations the current user owns.",
)
async def get_ownerships(
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> OwnershipsResponse:
    service = AccessRestrictionService(session, notifications)
    return OwnershipsResponse(organisation_ids=await service.get_ownerships(current_user))


@router.get("/{organisation_id}/users", response_model=list[MemberSummary])
async def list_members(
    organisation_id: UUID,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> list[MemberSummary]:
    """Members that can be restricted. Owners and admins are left out."""
    service = AccessRestrictionService(session, notifications)
    members = await service.list_members(organisation_id, current_user)
    return [MemberSummary.model_validate(member) for member in members]


@router.get("/{organisation_id}/cases", response_model=list[CaseSummary])
async def list_cases(
    organisation_id: UUID,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> list[CaseSummary]:
    service = AccessRestrictionService(session, notifications)
    cases = await service.list_cases(organisation_id, current_user)
    return [CaseSummary.model_validate(case) for case in cases]


@router.get("/{organisation_id}/restrictions", response_model=RestrictionsResponse)
async def get_restrictions(
    organisation_id: UUID,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> RestrictionsResponse:
    service = AccessRestrictionService(session, notifications)
    pairs = await service.get_restrictions(organisation_id, current_user)
    return RestrictionsResponse(
        restrictions=[RestrictionPair(user_id=user_id, case_id=case_id) for user_id, case_id in pairs]
    )


@router.post("/{organisation_id}/toggle-restriction", response_model=ToggleRestrictionResponse)
async def toggle_restriction(
    organisation_id: UUID,
    body: ToggleRestrictionRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> ToggleRestrictionResponse:
    service = AccessRestrictionService(session, notifications)
    restricted = await service.toggle_restriction(organisation_id, current_user, body.user_id, body.case_id)
    return ToggleRestrictionResponse(user_id=body.user_id, case_id=body.case_id, restricted=restricted)


@router.post("/{organisation_id}/bulk-member-restriction", response_model=BulkRestrictionResponse)
async def bulk_member_restriction(
    organisation_id: UUID,
    body: BulkMemberRestrictionRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> BulkRestrictionResponse:
    """Restrict or allow one member on every case the organisation has right now."""
    service = AccessRestrictionService(session, notifications)
    updated = await service.bulk_member_restriction(organisation_id, current_user, body.user_id, body.action)
    return BulkRestrictionResponse(action=body.action, updated=updated)


@router.post("/{organisation_id}/bulk-case-restriction", response_model=BulkRestrictionResponse)
async def bulk_case_restriction(
    organisation_id: UUID,
    body: BulkCaseRestrictionRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> BulkRestrictionResponse:
    """Restrict or allow every current restrictable member on one case."""
    service = AccessRestrictionService(session, notifications)
    updated = await service.bulk_case_restriction(organisation_id, current_user, body.case_id, body.action)
    return BulkRestrictionResponse(action=body.action, updated=updated)


@router.post(
    "/{organisation_id}/request-member-removal",
    response_model=RequestAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_member_removal(
    organisation_id: UUID,
    body: MembershipChangeRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> RequestAcceptedResponse:
    service = AccessRestrictionService(session, notifications)
    intent = await service.request_member_removal(organisation_id, current_user, body.user_id, body.reason)
    return RequestAcceptedResponse(
        message="Your request to remove this member has been sent to Acclaim.",
        request_type=intent.type.value,
    )


@router.post(
    "/{organisation_id}/request-owner-delegation",
    response_model=RequestAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_owner_delegation(
    organisation_id: UUID,
    body: MembershipChangeRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> RequestAcceptedResponse:
    service = AccessRestrictionService(session, notifications)
    intent = await service.request_owner_delegation(organisation_id, current_user, body.user_id, body.reason)
    return RequestAcceptedResponse(
        message="Your request to make this member an owner has been sent to Acclaim.",
        request_type=intent.type.value,
    )


@router.post(
    "/{organisation_id}/request-ownership-removal",
    response_model=RequestAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_ownership_removal(
    organisation_id: UUID,
    body: MembershipChangeRequest,
    current_user: CurrentUser,
    session: DbSession,
    notifications: DispatcherDep,
) -> RequestAcceptedResponse:
    service = AccessRestrictionService(session, notifications)
    intent = await service.request_ownership_removal(organisation_id, current_user, body.user_id, body.reason)
    return RequestAcceptedResponse(
        message="Your request to remove this owner has been sent to Acclaim.",
        request_type=intent.type.value,
    )
