"""
Login Rate Limiter
Per-source lockout after repeated failed logins.

The identifier is the caller's IP address, not the attempted account, so one
source cannot spread guesses across many accounts. The flip side is that
users sharing a NAT address share a counter.

State lives behind ``RateLimitStore``: ``InMemoryRateLimitStore`` for a
single process, ``RedisRateLimitStore`` when several instances must agree.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import BaseModel
from redis import asyncio as redis_asyncio

from portal.config import settings

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)
CLEANUP_INTERVAL = timedelta(minutes=5)
IDLE_RETENTION = timedelta(hours=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoginAttemptRecord(BaseModel):
    """Failure counter for one identifier."""

    attempts: int = 0
    locked_until: Optional[datetime] = None
    last_attempt: datetime
    associated_account: Optional[str] = None

    def is_locked_at(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now


@dataclass(frozen=True)
class LockStatus:
    locked: bool
    remaining_seconds: Optional[int] = None


@dataclass(frozen=True)
class AttemptResult:
    locked: bool
    attempts_remaining: int


class RateLimitStore(ABC):
    """Storage for ``LoginAttemptRecord`` keyed by identifier."""

    @abstractmethod
    async def get(self, identifier: str) -> Optional[LoginAttemptRecord]:
        ...

    @abstractmethod
    async def set(self, identifier: str, record: LoginAttemptRecord) -> None:
        ...

    @abstractmethod
    async def delete(self, identifier: str) -> bool:
        """Remove a record. Returns True if one existed."""

    @abstractmethod
    async def items(self) -> list[tuple[str, LoginAttemptRecord]]:
        ...

    async def close(self) -> None:
        return None


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store.

    Updates are serialised by the event loop; each method completes without
    awaiting, so no entry is ever seen half-written.
    """

    def __init__(self) -> None:
        self._records: dict[str, LoginAttemptRecord] = {}

    async def get(self, identifier: str) -> Optional[LoginAttemptRecord]:
        return self._records.get(identifier)

    async def set(self, identifier: str, record: LoginAttemptRecord) -> None:
        self._records[identifier] = record

    async def delete(self, identifier: str) -> bool:
        return self._records.pop(identifier, None) is not None

    async def items(self) -> list[tuple[str, LoginAttemptRecord]]:
        return list(self._records.items())


class RedisRateLimitStore(RateLimitStore):
    """
    Shared store backed by Redis.

    Each record is a JSON string under ``<prefix><identifier>``. Keys carry a
    TTL of lockout plus idle retention, so Redis also expires stale entries
    on its own.
    """

    def __init__(
        self,
        client,
        prefix: str = "login_attempts:",
        ttl: timedelta = LOCKOUT_DURATION + IDLE_RETENTION,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self.ttl_seconds = int(ttl.total_seconds())

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisRateLimitStore":
        return cls(redis_asyncio.from_url(url, decode_responses=True), **kwargs)

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}{identifier}"

    async def get(self, identifier: str) -> Optional[LoginAttemptRecord]:
        raw = await self.client.get(self._key(identifier))
        if raw is None:
            return None
        return LoginAttemptRecord.model_validate_json(raw)

    async def set(self, identifier: str, record: LoginAttemptRecord) -> None:
        await self.client.set(self._key(identifier), record.model_dump_json(), ex=self.ttl_seconds)

    async def delete(self, identifier: str) -> bool:
        return bool(await self.client.delete(self._key(identifier)))

    async def items(self) -> list[tuple[str, LoginAttemptRecord]]:
        result = []
        async for key in self.client.scan_iter(match=f"{self.prefix}*"):
            raw = await self.client.get(key)
            if raw is None:
                continue
            result.append((key[len(self.prefix):], LoginAttemptRecord.model_validate_json(raw)))
        return result

    async def close(self) -> None:
        await self.client.aclose()


class LoginRateLimiter:
    """
    Counts failed logins per identifier and locks it out at ``max_attempts``.

    Never raises for a lockout: callers get a ``LockStatus``/``AttemptResult``
    and turn ``locked=True`` into a 429 before checking any credential.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_attempts: int = MAX_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
        cleanup_interval: timedelta = CLEANUP_INTERVAL,
        idle_retention: timedelta = IDLE_RETENTION,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self.cleanup_interval = cleanup_interval
        self.idle_retention = idle_retention
        self.clock = clock
        self._cleanup_task: Optional[asyncio.Task] = None

    async def is_locked(self, identifier: str) -> LockStatus:
        """
        Check whether ``identifier`` is locked out.

        An expired lock is cleared here, so the next failure starts from one.
        """
        record = await self.store.get(identifier)
        if record is None or record.locked_until is None:
            return LockStatus(locked=False)

        now = self.clock()
        if record.locked_until > now:
            remaining = -(-(record.locked_until - now) // timedelta(seconds=1))
            return LockStatus(locked=True, remaining_seconds=int(remaining))

        await self.store.delete(identifier)
        return LockStatus(locked=False)

    async def record_failed_attempt(self, identifier: str, account: Optional[str] = None) -> AttemptResult:
        now = self.clock()
        record = await self.store.get(identifier)

        if record is None or (record.locked_until is not None and record.locked_until <= now):
            record = LoginAttemptRecord(last_attempt=now, associated_account=account)

        record.attempts += 1
        record.last_attempt = now
        if account:
            record.associated_account = account

        if record.is_locked_at(now):
            # Already locked: the lock window stays as it was.
            await self.store.set(identifier, record)
            return AttemptResult(locked=True, attempts_remaining=0)

        if record.attempts >= self.max_attempts:
            record.locked_until = now + self.lockout_duration
            await self.store.set(identifier, record)
            return AttemptResult(locked=True, attempts_remaining=0)

        await self.store.set(identifier, record)
        return AttemptResult(locked=False, attempts_remaining=self.max_attempts - record.attempts)

    async def record_successful_login(self, identifier: str) -> None:
        await self.store.delete(identifier)

    # ------------------------------------------------------------------
    # Admin functions
    # ------------------------------------------------------------------

    async def get_locked_identifiers(self) -> list[dict]:
        now = self.clock()
        locked = []
        for identifier, record in await self.store.items():
            if record.is_locked_at(now):
                locked.append({
                    "identifier": identifier,
                    "account": record.associated_account,
                    "attempts": record.attempts,
                    "locked_until": record.locked_until,
                    "remaining_minutes": int(-(-(record.locked_until - now) // timedelta(minutes=1))),
                })
        return locked

    async def get_all_attempts(self) -> list[dict]:
        rows = [
            {
                "identifier": identifier,
                "account": record.associated_account,
                "attempts": record.attempts,
                "locked_until": record.locked_until,
                "last_attempt": record.last_attempt,
            }
            for identifier, record in await self.store.items()
        ]
        return sorted(rows, key=lambda row: row["last_attempt"], reverse=True)

    async def unlock(self, identifier: str) -> bool:
        return await self.store.delete(identifier)

    async def get_stats(self) -> dict:
        now = self.clock()
        records = await self.store.items()
        return {
            "total_tracked": len(records),
            "currently_locked": sum(1 for _, record in records if record.is_locked_at(now)),
            "max_attempts": self.max_attempts,
            "lockout_minutes": int(self.lockout_duration.total_seconds() // 60),
        }

    # ------------------------------------------------------------------
    # Periodic sweep
    # ------------------------------------------------------------------

    async def cleanup(self) -> int:
        """
        Drop identifiers that are unlocked and idle.

        An entry goes only when its lock (if any) ended more than
        ``idle_retention`` ago AND its last attempt is older than that too.
        """
        cutoff = self.clock() - self.idle_retention
        removed = 0
        for identifier, record in await self.store.items():
            lock_stale = record.locked_until is None or record.locked_until < cutoff
            if lock_stale and record.last_attempt < cutoff:
                if await self.store.delete(identifier):
                    removed += 1
        if removed:
            logger.debug("Rate limiter sweep removed %d idle identifiers", removed)
        return removed

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval.total_seconds())
            try:
                await self.cleanup()
            except Exception:
                logger.exception("Rate limiter sweep failed")

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(), name="login-rate-limiter-sweep")

    async def stop(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        await self.store.close()


def build_rate_limiter() -> LoginRateLimiter:
    """Build the limiter described by the current settings."""
    if settings.rate_limit_backend == "redis":
        store: RateLimitStore = RedisRateLimitStore.from_url(settings.redis_url)
    else:
        store = InMemoryRateLimitStore()

    return LoginRateLimiter(
        store,
        max_attempts=settings.login_max_attempts,
        lockout_duration=timedelta(minutes=settings.login_lockout_minutes),
        cleanup_interval=timedelta(seconds=settings.login_cleanup_interval_seconds),
        idle_retention=timedelta(minutes=settings.login_idle_retention_minutes),
    )
