"""
Notification Intents
What the core asks the email collaborator to send.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    LOGIN_NOTIFICATION = "login_notification"
    MEMBER_REMOVAL_REQUEST = "member_removal_request"
    OWNER_DELEGATION_REQUEST = "owner_delegation_request"
    OWNERSHIP_REMOVAL_REQUEST = "ownership_removal_request"


class LoginMethod(str, Enum):
    PASSWORD = "password"
    AZURE_SSO = "azure_sso"


class LoginNotificationPayload(BaseModel):
    """Sent to a user when their account signs in from a new location."""

    user_email: str
    user_name: str
    login_time: datetime
    ip_address: str
    user_agent: str
    login_method: LoginMethod


class OrganisationRequestPayload(BaseModel):
    """Sent to Acclaim when an owner asks for a membership change."""

    requester_id: UUID
    requester_name: str
    requester_email: str
    target_id: UUID
    target_name: str
    target_email: str
    organisation_id: UUID
    organisation_name: str
    reason: Optional[str] = None


class NotificationIntent(BaseModel):
    """A request to notify ``recipient``; delivery happens out of band."""

    type: NotificationType
    recipient: str
    payload: dict[str, Any]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def login(cls, payload: LoginNotificationPayload) -> "NotificationIntent":
        return cls(
            type=NotificationType.LOGIN_NOTIFICATION,
            recipient=payload.user_email,
            payload=payload.model_dump(mode="json"),
        )

    @classmethod
    def organisation_request(
        cls,
        notification_type: NotificationType,
        recipient: str,
        payload: OrganisationRequestPayload,
    ) -> "NotificationIntent":
        return cls(type=notification_type, recipient=recipient, payload=payload.model_dump(mode="json"))
