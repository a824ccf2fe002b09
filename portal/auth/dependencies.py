"""
Authentication Dependencies
FastAPI dependencies for route protection and shared services.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.rate_limiter import LoginRateLimiter
from portal.auth.service import LoginContext
from portal.auth.utils import decode_token
from portal.config import settings
from portal.core.errors import NotAuthenticated, Unauthorized
from portal.database import get_async_session
from portal.models import User
from portal.notifications import NotificationDispatcher
from portal.services.repository import PortalRepository

# auto_error=False: the session cookie is accepted as well
security = HTTPBearer(auto_error=False)


def get_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_rate_limiter


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notifications


def get_login_context(request: Request) -> LoginContext:
    return LoginContext(
        ip_address=get_remote_address(request) or "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    )


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def get_token_payload(
    token: Annotated[str | None, Depends(get_session_token)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> dict[str, Any]:
    """
    Validate the session token.

    Raises:
        NotAuthenticated: Missing, invalid, expired or revoked token
    """
    if not token:
        raise NotAuthenticated()

    payload = decode_token(token)
    if not payload or payload.get("type") != "access" or not payload.get("sub"):
        raise NotAuthenticated()

    jti = payload.get("jti")
    if jti and await PortalRepository(session).is_token_blacklisted(jti):
        raise NotAuthenticated()

    return payload


async def get_current_user(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> User:
    """
    Dependency that validates the session and returns the current user.

    Raises:
        NotAuthenticated: If the token is invalid or the user is gone or inactive
    """
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise NotAuthenticated()

    user = await PortalRepository(session).get_user_by_id(user_id)
    if not user or not user.is_active:
        raise NotAuthenticated()

    return user


async def get_admin_user(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if not current_user.is_admin:
        raise Unauthorized("Admin access required")
    return current_user


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_admin_user)]
DbSession = Annotated[AsyncSession, Depends(get_async_session)]
RateLimiterDep = Annotated[LoginRateLimiter, Depends(get_rate_limiter)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
LoginContextDep = Annotated[LoginContext, Depends(get_login_context)]
