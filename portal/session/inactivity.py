"""
Inactivity Timeout Controller
Ends a client session after a period without user activity.

After ``timeout - warning_lead`` of inactivity the controller warns once;
from then on ordinary activity no longer postpones the logout, only an
explicit ``force_reset`` (the "stay signed in" action) does. Everything runs
on one asyncio event loop with ``loop.call_later`` timers.
"""

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from portal.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15 * 60
DEFAULT_WARNING_SECONDS = 60
LOGIN_PATH = "/auth"

ACTIVITY_EVENTS = (
    "mousedown",
    "mousemove",
    "keydown",
    "scroll",
    "touchstart",
    "click",
    "wheel",
)

ActivityCallback = Callable[[str], None]
SessionInvalidator = Callable[[], Awaitable[None]]


class InactivityState(str, enum.Enum):
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"
    DISABLED = "disabled"


class ActivitySource(Protocol):
    """Where user activity events come from (a browser document, a terminal UI...)."""

    def add_listener(self, event: str, callback: ActivityCallback, passive: bool = True) -> None: ...

    def remove_listener(self, event: str, callback: ActivityCallback) -> None: ...


class ActivityEmitter:
    """In-process ActivitySource: callers ``emit`` events to the registered listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[ActivityCallback]] = {}

    def add_listener(self, event: str, callback: ActivityCallback, passive: bool = True) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: ActivityCallback) -> None:
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            self._listeners.pop(event, None)

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    def emit(self, event: str) -> None:
        for callback in list(self._listeners.get(event, [])):
            callback(event)


def logout_invalidator(client: httpx.AsyncClient, path: str = "/api/logout") -> SessionInvalidator:
    """Invalidate the server session by calling the logout endpoint."""

    async def invalidate() -> None:
        response = await client.post(path)
        response.raise_for_status()

    return invalidate


class InactivityTimeoutController:
    """
    Two timers (warning and expiry) armed together and always cancelled together.

    Args:
        source: Activity source the listeners are registered on
        on_warning: Called once when the warning phase starts
        on_logout: Called after the session was invalidated
        navigate: Called with the login path as the last expiry step
        session_invalidator: Best-effort remote logout; errors are logged
        timeout_seconds: Total inactivity allowed
        warning_seconds: How long before expiry the warning fires
        enabled: Arm immediately (requires a running event loop)

    Raises:
        ValueError: Non-positive durations, or a warning lead not shorter
            than the timeout
    """

    def __init__(
        self,
        source: ActivitySource,
        on_warning: Optional[Callable[[], None]] = None,
        on_logout: Optional[Callable[[], None]] = None,
        navigate: Optional[Callable[[str], None]] = None,
        session_invalidator: Optional[SessionInvalidator] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        warning_seconds: float = DEFAULT_WARNING_SECONDS,
        enabled: bool = True,
    ):
        if timeout_seconds <= 0 or warning_seconds <= 0:
            raise ValueError("Inactivity timeout and warning lead must be positive")
        if warning_seconds >= timeout_seconds:
            raise ValueError(
                f"Warning lead ({warning_seconds}s) must be shorter than the timeout ({timeout_seconds}s)"
            )

        self.source = source
        self.on_warning = on_warning
        self.on_logout = on_logout
        self.navigate = navigate
        self.session_invalidator = session_invalidator
        self.timeout_seconds = timeout_seconds
        self.warning_seconds = warning_seconds

        self.state = InactivityState.DISABLED
        self.last_activity: Optional[float] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._warning_handle: Optional[asyncio.TimerHandle] = None
        self._expiry_handle: Optional[asyncio.TimerHandle] = None
        self._expiry_task: Optional[asyncio.Task] = None
        self._listening = False

        if enabled:
            self.enable()

    @classmethod
    def from_settings(cls, source: ActivitySource, **kwargs) -> "InactivityTimeoutController":
        kwargs.setdefault("timeout_seconds", settings.inactivity_timeout_seconds)
        kwargs.setdefault("warning_seconds", settings.inactivity_warning_seconds)
        return cls(source, **kwargs)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def enable(self) -> None:
        if self.state in (InactivityState.ACTIVE, InactivityState.WARNING):
            return
        self._loop = asyncio.get_running_loop()
        self._register_listeners()
        self._arm()

    def disable(self) -> None:
        """Stop the countdown and any logout in flight; deregister every listener."""
        self._cancel_timers()
        task = self._expiry_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._unregister_listeners()
        self.state = InactivityState.DISABLED

    def close(self) -> None:
        self.disable()

    def record_activity(self, event: str = "activity") -> None:
        """Qualifying user activity. Only restarts the countdown while ACTIVE."""
        if self.state is InactivityState.ACTIVE:
            self._arm()

    def force_reset(self) -> None:
        """Deliberate "stay signed in": the only way out of WARNING."""
        if self.state in (InactivityState.ACTIVE, InactivityState.WARNING):
            self._arm()

    @property
    def expiry_task(self) -> Optional[asyncio.Task]:
        return self._expiry_task

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        self._cancel_timers()
        loop = self._require_loop()
        self.last_activity = loop.time()
        self._warning_handle = loop.call_later(
            self.timeout_seconds - self.warning_seconds, self._fire_warning
        )
        self._expiry_handle = loop.call_later(self.timeout_seconds, self._fire_expiry)
        self.state = InactivityState.ACTIVE

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("Inactivity controller has not been enabled on an event loop")
        return self._loop

    def _cancel_timers(self) -> None:
        for handle in (self._warning_handle, self._expiry_handle):
            if handle is not None:
                handle.cancel()
        self._warning_handle = None
        self._expiry_handle = None

    def _fire_warning(self) -> None:
        self._warning_handle = None
        if self.state is not InactivityState.ACTIVE:
            return
        self.state = InactivityState.WARNING
        logger.debug("Inactivity warning: %ss until logout", self.warning_seconds)
        if self.on_warning:
            self.on_warning()

    def _fire_expiry(self) -> None:
        self._expiry_handle = None
        if self.state not in (InactivityState.ACTIVE, InactivityState.WARNING):
            return
        self._cancel_timers()
        self._unregister_listeners()
        self.state = InactivityState.EXPIRED
        self._expiry_task = self._require_loop().create_task(self._expire(), name="inactivity-logout")

    async def _expire(self) -> None:
        logger.info("Session expired after %ss of inactivity", self.timeout_seconds)
        if self.session_invalidator is not None:
            try:
                await self.session_invalidator()
            except Exception:
                logger.exception("Error during logout")
        if self.state is not InactivityState.EXPIRED:
            # Disabled while the remote logout was in flight
            return
        if self.on_logout:
            self.on_logout()
        if self.navigate:
            self.navigate(LOGIN_PATH)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def _register_listeners(self) -> None:
        if self._listening:
            return
        for event in ACTIVITY_EVENTS:
            self.source.add_listener(event, self.record_activity, passive=True)
        self._listening = True

    def _unregister_listeners(self) -> None:
        if not self._listening:
            return
        for event in ACTIVITY_EVENTS:
            self.source.remove_listener(event, self.record_activity)
        self._listening = False
