"""
Admin Router
API endpoints for inspecting and clearing login lockouts.
"""

import logging

from fastapi import APIRouter

from portal.auth import audit
from portal.auth.dependencies import AdminUser, DbSession, LoginContextDep, RateLimiterDep
from portal.admin.schemas import (
    LockedIdentifier,
    LockedIdentifiersResponse,
    LockoutStatsResponse,
    TrackedAttempt,
    TrackedAttemptsResponse,
    UnlockResponse,
)
from portal.services.repository import PortalRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get(
    "/login-lockouts",
    response_model=LockedIdentifiersResponse,
    summary="Locked sources",
    description="Sources currently locked out after repeated failed logins.",
)
async def get_login_lockouts(
    admin_user: AdminUser,
    rate_limiter: RateLimiterDep,
) -> LockedIdentifiersResponse:
    locked = await rate_limiter.get_locked_identifiers()
    return LockedIdentifiersResponse(
        total=len(locked),
        lockouts=[LockedIdentifier(**row) for row in locked],
    )


@router.get(
    "/login-attempts/tracked",
    response_model=TrackedAttemptsResponse,
    summary="Tracked sources",
    description="Every source with failed attempts on record, most recent first.",
)
async def get_tracked_attempts(
    admin_user: AdminUser,
    rate_limiter: RateLimiterDep,
) -> TrackedAttemptsResponse:
    rows = await rate_limiter.get_all_attempts()
    return TrackedAttemptsResponse(
        total=len(rows),
        attempts=[TrackedAttempt(**row) for row in rows],
    )


@router.get(
    "/login-lockouts/stats",
    response_model=LockoutStatsResponse,
    summary="Lockout statistics",
)
async def get_lockout_stats(
    admin_user: AdminUser,
    rate_limiter: RateLimiterDep,
) -> LockoutStatsResponse:
    return LockoutStatsResponse(**await rate_limiter.get_stats())


@router.post(
    "/login-lockouts/{identifier}/unlock",
    response_model=UnlockResponse,
    summary="Clear a lockout",
    description="Forget all failed attempts for a source, lifting any lock.",
)
async def unlock_identifier(
    identifier: str,
    admin_user: AdminUser,
    rate_limiter: RateLimiterDep,
    session: DbSession,
    context: LoginContextDep,
) -> UnlockResponse:
    """
    Clear the lockout for ``identifier``.

    The action is written to the audit log whether or not anything was tracked.
    """
    unlocked = await rate_limiter.unlock(identifier)

    audit.log_manual_unlock(identifier, admin_user.id)
    await PortalRepository(session).log_audit_event(
        table_name="login_attempts",
        record_id=identifier,
        operation="IP_UNLOCK",
        description=f"Lockout for {identifier} cleared by {admin_user.email}",
        user_id=admin_user.id,
        user_email=admin_user.email,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )

    logger.info(f"Admin {admin_user.id} unlocked {identifier} (was tracked: {unlocked})")
    return UnlockResponse(
        identifier=identifier,
        unlocked=unlocked,
        message="Lockout cleared" if unlocked else "No failed attempts were tracked for this identifier",
    )
