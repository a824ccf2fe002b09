"""
Notification Dispatcher
Single outbound queue between the core and the email transport.

``publish`` never blocks and never raises: login, restriction changes and
removal requests complete whether or not an email is ever delivered.
"""

import asyncio
import logging
from typing import Optional

from portal.core.errors import TransportFailure
from portal.notifications.intents import NotificationIntent
from portal.notifications.transport import EmailTransport

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """asyncio queue drained by one background worker."""

    def __init__(self, transport: EmailTransport, max_queue_size: int = 1000):
        self.transport = transport
        self._queue: asyncio.Queue[NotificationIntent] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None

    def publish(self, intent: NotificationIntent) -> bool:
        """
        Queue an intent for delivery.

        Returns:
            False if the queue is full and the intent was dropped
        """
        try:
            self._queue.put_nowait(intent)
        except asyncio.QueueFull:
            logger.warning("Notification queue full; dropped %s to %s", intent.type.value, intent.recipient)
            return False
        logger.debug("Queued %s notification for %s", intent.type.value, intent.recipient)
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def deliver(self, intent: NotificationIntent) -> bool:
        """Send one intent, absorbing every transport error."""
        try:
            delivered = await self.transport.send(intent)
            if not delivered:
                raise TransportFailure("transport reported failure", intent.type.value)
        except Exception as exc:
            logger.error(
                "Failed to send %s notification to %s: %s",
                intent.type.value,
                intent.recipient,
                exc,
            )
            return False
        logger.info("Sent %s notification to %s", intent.type.value, intent.recipient)
        return True

    async def _run(self) -> None:
        while True:
            intent = await self._queue.get()
            try:
                await self.deliver(intent)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")

    async def drain(self) -> None:
        """Wait until everything queued so far has been handled."""
        await self._queue.join()

    async def stop(self, drain_timeout: float = 5.0) -> None:
        if self._worker is not None:
            try:
                await asyncio.wait_for(self.drain(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning("Dropping %d undelivered notifications on shutdown", self.pending)
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self.transport.close()
