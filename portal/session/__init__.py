"""
Session Package
Client-side session lifetime helpers.
"""

from portal.session.inactivity import (
    ACTIVITY_EVENTS,
    ActivityEmitter,
    ActivitySource,
    InactivityState,
    InactivityTimeoutController,
    logout_invalidator,
)

__all__ = [
    "ACTIVITY_EVENTS",
    "ActivityEmitter",
    "ActivitySource",
    "InactivityState",
    "InactivityTimeoutController",
    "logout_invalidator",
]
