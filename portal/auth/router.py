"""
Authentication Router
API endpoints for password login, logout and the current identity.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status

from portal.auth.dependencies import (
    CurrentUser,
    DbSession,
    DispatcherDep,
    LoginContextDep,
    RateLimiterDep,
    get_session_token,
    get_token_payload,
)
from portal.auth.rate_limit import limiter
from portal.auth.schemas import LoginRequest, LoginResponse, MessageResponse, UserResponse
from portal.auth.service import AuthService, LoginResult
from portal.config import settings
from portal.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Authentication"])


def build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        organisation_ids=user.organisation_ids,
        is_admin=user.is_admin,
        must_change_password=user.must_change_password,
    )


def set_session_cookie(response: Response, result: LoginResult) -> None:
    """Attach the session token as an HTTP-only cookie."""
    max_age = int((result.expires_at - datetime.now(timezone.utc)).total_seconds())
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=result.access_token,
        max_age=max(max_age, 0),
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with email and password and open a session.",
)
@limiter.limit(settings.login_request_limit)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    session: DbSession,
    rate_limiter: RateLimiterDep,
    notifications: DispatcherDep,
    context: LoginContextDep,
) -> LoginResponse:
    """
    Authenticate user and return the session.

    Failed attempts are counted against the source IP. The fifth failure
    locks that IP for fifteen minutes and every attempt during the lock is
    answered with 429 before any credential is checked.
    """
    auth_service = AuthService(session, rate_limiter, notifications)
    result = await auth_service.authenticate(
        email=login_data.email,
        password=login_data.password,
        context=context,
    )

    set_session_cookie(response, result)
    identity = build_user_response(result.user)
    return LoginResponse(**identity.model_dump(), access_token=result.access_token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout user",
    description="Revoke the current session token.",
)
async def logout(
    response: Response,
    current_user: CurrentUser,
    session: DbSession,
    rate_limiter: RateLimiterDep,
    notifications: DispatcherDep,
    context: LoginContextDep,
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
    token: Annotated[str | None, Depends(get_session_token)],
) -> MessageResponse:
    """Blacklist the token until its natural expiry and clear the cookie."""
    expires_at = None
    if payload.get("exp"):
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

    auth_service = AuthService(session, rate_limiter, notifications)
    await auth_service.logout(
        user=current_user,
        jti=payload.get("jti"),
        token=token or "",
        expires_at=expires_at,
        context=context,
    )

    response.delete_cookie(settings.auth_cookie_name, path="/")
    logger.info(f"User logged out: {current_user.id}")
    return MessageResponse(message="Logged out")


@router.get(
    "/user",
    response_model=UserResponse,
    summary="Get current user",
    description="Get the authenticated user's identity.",
)
async def get_user(current_user: CurrentUser) -> UserResponse:
    return build_user_response(current_user)
