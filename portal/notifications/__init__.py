"""
Notifications Package
Outbound notification intents and their delivery.
"""

from portal.notifications.dispatcher import NotificationDispatcher
from portal.notifications.intents import (
    LoginMethod,
    LoginNotificationPayload,
    NotificationIntent,
    NotificationType,
    OrganisationRequestPayload,
)
from portal.notifications.transport import (
    EmailTransport,
    LoggingTransport,
    SendGridTransport,
    build_transport,
)

__all__ = [
    "NotificationDispatcher",
    "LoginMethod",
    "LoginNotificationPayload",
    "NotificationIntent",
    "NotificationType",
    "OrganisationRequestPayload",
    "EmailTransport",
    "LoggingTransport",
    "SendGridTransport",
    "build_transport",
]
