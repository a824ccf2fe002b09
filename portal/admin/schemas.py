"""
Admin Schemas
Pydantic models for the login lockout administration endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LockedIdentifier(BaseModel):
    """A source currently locked out of password login."""

    identifier: str = Field(..., description="Source IP address")
    account: Optional[str] = Field(None, description="Last email attempted from this source")
    attempts: int = Field(..., description="Failed attempts counted")
    locked_until: datetime = Field(..., description="When the lock ends")
    remaining_minutes: int = Field(..., description="Minutes until the lock ends, rounded up")


class LockedIdentifiersResponse(BaseModel):
    total: int = Field(..., description="Number of locked sources")
    lockouts: list[LockedIdentifier] = Field(..., description="Locked sources")


class TrackedAttempt(BaseModel):
    """A source with failed attempts on record, locked or not."""

    identifier: str = Field(..., description="Source IP address")
    account: Optional[str] = Field(None, description="Last email attempted from this source")
    attempts: int = Field(..., description="Failed attempts counted")
    locked_until: Optional[datetime] = Field(None, description="Lock end, if a lock was set")
    last_attempt: datetime = Field(..., description="Most recent failed attempt")


class TrackedAttemptsResponse(BaseModel):
    total: int = Field(..., description="Number of tracked sources")
    attempts: list[TrackedAttempt] = Field(..., description="Most recent first")


class LockoutStatsResponse(BaseModel):
    total_tracked: int = Field(..., description="Sources with failed attempts on record")
    currently_locked: int = Field(..., description="Sources locked right now")
    max_attempts: int = Field(..., description="Failures allowed before a lock")
    lockout_minutes: int = Field(..., description="Lock duration")


class UnlockResponse(BaseModel):
    identifier: str
    unlocked: bool = Field(..., description="False if nothing was tracked for the identifier")
    message: str
