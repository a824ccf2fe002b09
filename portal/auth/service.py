"""
Authentication Service
The single gate password and SSO logins pass through: source lockout,
credential verification, audit trail and login notifications.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NoReturn, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import audit
from portal.auth.credentials import credentials_for, verify_any
from portal.auth.login_location import LoginLocationDetector
from portal.auth.rate_limiter import LoginRateLimiter
from portal.auth.utils import create_access_token, normalize_email
from portal.core.errors import InvalidCredentials, RateLimited
from portal.models import User
from portal.notifications import (
    LoginMethod,
    LoginNotificationPayload,
    NotificationDispatcher,
    NotificationIntent,
)
from portal.services.repository import PortalRepository

logger = logging.getLogger(__name__)


@dataclass
class LoginContext:
    """Where a login request came from."""

    ip_address: str
    user_agent: str


@dataclass
class LoginResult:
    user: User
    access_token: str
    expires_at: datetime
    new_location: bool


class AuthService:
    """Service for authenticating users with lockout protection."""

    def __init__(
        self,
        session: AsyncSession,
        rate_limiter: LoginRateLimiter,
        notifications: NotificationDispatcher,
    ):
        self.session = session
        self.repository = PortalRepository(session)
        self.rate_limiter = rate_limiter
        self.notifications = notifications
        self.location_detector = LoginLocationDetector(self.repository)

    async def authenticate(self, email: str, password: str, context: LoginContext) -> LoginResult:
        """
        Authenticate a password login.

        Args:
            email: Email as typed (matched case-insensitively)
            password: Candidate password or temporary password
            context: Source IP and user agent

        Returns:
            LoginResult for the authenticated user

        Raises:
            RateLimited: The source IP is locked out. No credential is checked.
            InvalidCredentials: Unknown account or wrong password.
        """
        normalized_email = normalize_email(email)

        lock = await self.rate_limiter.is_locked(context.ip_address)
        if lock.locked:
            audit.log_login_blocked(normalized_email, context.ip_address, lock.remaining_seconds)
            raise RateLimited(lock.remaining_seconds)

        user = await self.repository.get_user_by_email(normalized_email)
        failure_reason = self._check_credentials(user, password)
        if failure_reason is not None:
            await self._handle_failed_login(normalized_email, user, context, failure_reason)

        return await self.complete_login(user, context, LoginMethod.PASSWORD)

    def _check_credentials(self, user: Optional[User], password: str) -> Optional[str]:
        if user is None:
            return "unknown_account"
        if not user.is_active:
            return "inactive_account"
        if verify_any(credentials_for(user), password) is None:
            return "invalid_password"
        return None

    async def _handle_failed_login(
        self,
        email: str,
        user: Optional[User],
        context: LoginContext,
        reason: str,
    ) -> NoReturn:
        """Count the failure against the source IP, audit it, then raise."""
        result = await self.rate_limiter.record_failed_attempt(context.ip_address, email)
        user_id = user.id if user else None

        await self.repository.log_login_attempt(
            email=email,
            success=False,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            user_id=user_id,
            failure_reason=reason,
        )
        audit.log_login_attempt(email, context.ip_address, False, user_id=user_id, reason=reason)

        if result.locked:
            audit.log_account_locked(email, context.ip_address, user_id=user_id)
            await self.repository.log_audit_event(
                table_name="login_attempts",
                record_id=context.ip_address,
                operation="IP_LOCKOUT",
                description=(
                    f"IP {context.ip_address} locked for {int(self.rate_limiter.lockout_duration.total_seconds() // 60)} "
                    f"minutes after {self.rate_limiter.max_attempts} failed login attempts "
                    f"(last attempted email: {email})"
                ),
                user_id=user_id,
                user_email=email,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            raise RateLimited(
                int(self.rate_limiter.lockout_duration.total_seconds()),
                message="Too many failed login attempts. Your access has been temporarily locked.",
                attempts_remaining=0,
            )

        raise InvalidCredentials(attempts_remaining=result.attempts_remaining)

    async def complete_login(self, user: User, context: LoginContext, method: LoginMethod) -> LoginResult:
        """
        Success path shared by password and SSO logins.

        The new-location check runs before this login is added to history.
        A notification is only queued; its outcome never affects the login.
        """
        await self.rate_limiter.record_successful_login(context.ip_address)

        new_location = await self.location_detector.is_new_location(
            user.email, context.ip_address, context.user_agent
        )

        await self.repository.log_login_attempt(
            email=user.email,
            success=True,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            user_id=user.id,
        )
        await self.repository.log_user_activity(
            user_id=user.id,
            action="LOGIN",
            details=f"User logged in via {method.value}",
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        audit.log_login_attempt(user.email, context.ip_address, True, user_id=user.id)

        if user.login_notifications and new_location:
            self._notify_login(user, context, method)

        access_token, expires_at = create_access_token(subject=str(user.id))
        logger.info(f"Successful login: {user.id} ({user.email}) via {method.value}")

        return LoginResult(
            user=user,
            access_token=access_token,
            expires_at=expires_at,
            new_location=new_location,
        )

    def _notify_login(self, user: User, context: LoginContext, method: LoginMethod) -> None:
        try:
            self.notifications.publish(
                NotificationIntent.login(
                    LoginNotificationPayload(
                        user_email=user.email,
                        user_name=user.full_name,
                        login_time=datetime.now(timezone.utc),
                        ip_address=context.ip_address,
                        user_agent=context.user_agent,
                        login_method=method,
                    )
                )
            )
        except Exception:
            logger.exception("Failed to queue login notification for %s", user.id)

    async def logout(self, user: User, jti: Optional[str], token: str, expires_at: Optional[datetime], context: LoginContext) -> None:
        if jti and expires_at:
            await self.repository.blacklist_token(jti=jti, token=token, user_id=user.id, expires_at=expires_at)
        await self.repository.log_user_activity(
            user_id=user.id,
            action="LOGOUT",
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        audit.log_logout(user.id, context.ip_address)
