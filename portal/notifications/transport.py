"""
Email Transports
Deliver rendered notification intents.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from portal.config import settings
from portal.notifications.intents import NotificationIntent
from portal.notifications.messages import render_body, render_subject

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class EmailTransport(ABC):
    """Sends one intent; returns whether the provider accepted it."""

    @abstractmethod
    async def send(self, intent: NotificationIntent) -> bool:
        ...

    async def close(self) -> None:
        return None


class LoggingTransport(EmailTransport):
    """Used when no email provider is configured."""

    async def send(self, intent: NotificationIntent) -> bool:
        logger.info(
            "Email not configured; would send %s to %s: %s",
            intent.type.value,
            intent.recipient,
            render_subject(intent),
        )
        return True


class SendGridTransport(EmailTransport):
    """SendGrid v3 mail/send over httpx."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def build_message(self, intent: NotificationIntent) -> dict:
        return {
            "personalizations": [{"to": [{"email": intent.recipient}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": render_subject(intent),
            "content": [{"type": "text/plain", "value": render_body(intent)}],
        }

    async def send(self, intent: NotificationIntent) -> bool:
        response = await self._client.post(
            SENDGRID_SEND_URL,
            json=self.build_message(intent),
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if response.status_code >= 400:
            logger.error(
                "SendGrid rejected %s to %s: %s %s",
                intent.type.value,
                intent.recipient,
                response.status_code,
                response.text[:500],
            )
            return False
        return True

    async def close(self) -> None:
        await self._client.aclose()


def build_transport() -> EmailTransport:
    """SendGrid when an API key is configured, otherwise log only."""
    if settings.sendgrid_api_key:
        return SendGridTransport(
            api_key=settings.sendgrid_api_key,
            from_email=settings.sendgrid_from_email,
            from_name=settings.sendgrid_from_name,
        )
    return LoggingTransport()
