"""Tests for the per-source login lockout counter."""

from datetime import timedelta

import pytest

from portal.auth.rate_limiter import (
    InMemoryRateLimitStore,
    LoginAttemptRecord,
    LoginRateLimiter,
    RedisRateLimitStore,
)

IP = "10.0.0.1"


async def fail(limiter: LoginRateLimiter, times: int, identifier: str = IP):
    result = None
    for _ in range(times):
        result = await limiter.record_failed_attempt(identifier, "user@example.com")
    return result


class TestLockoutThreshold:
    async def test_attempts_remaining_counts_down(self, rate_limiter):
        remaining = [
            (await rate_limiter.record_failed_attempt(IP)).attempts_remaining
            for _ in range(4)
        ]
        assert remaining == [4, 3, 2, 1]
        assert (await rate_limiter.is_locked(IP)).locked is False

    async def test_fifth_failure_locks_for_fifteen_minutes(self, rate_limiter):
        result = await fail(rate_limiter, 5)

        assert result.locked is True
        assert result.attempts_remaining == 0

        status = await rate_limiter.is_locked(IP)
        assert status.locked is True
        assert 899 <= status.remaining_seconds <= 900

    async def test_failure_while_locked_does_not_move_the_lock(self, rate_limiter, clock):
        await fail(rate_limiter, 5)
        record_before = await rate_limiter.store.get(IP)

        clock.advance(minutes=5)
        result = await rate_limiter.record_failed_attempt(IP)

        assert result.locked is True
        assert result.attempts_remaining == 0
        record_after = await rate_limiter.store.get(IP)
        assert record_after.locked_until == record_before.locked_until
        assert (await rate_limiter.is_locked(IP)).remaining_seconds == 600

    async def test_identifiers_are_independent(self, rate_limiter):
        await fail(rate_limiter, 5)
        assert (await rate_limiter.is_locked("10.0.0.2")).locked is False

    async def test_is_locked_is_a_read(self, rate_limiter):
        await fail(rate_limiter, 2)
        await rate_limiter.is_locked(IP)
        await rate_limiter.is_locked(IP)
        assert (await rate_limiter.store.get(IP)).attempts == 2


class TestLockoutExpiry:
    async def test_expired_lock_clears_entry(self, rate_limiter, clock):
        await fail(rate_limiter, 5)
        clock.advance(minutes=15, seconds=1)

        assert (await rate_limiter.is_locked(IP)).locked is False
        assert await rate_limiter.store.get(IP) is None

    async def test_next_failure_after_expiry_counts_from_one(self, rate_limiter, clock):
        await fail(rate_limiter, 5)
        clock.advance(minutes=16)
        await rate_limiter.is_locked(IP)

        result = await rate_limiter.record_failed_attempt(IP)
        assert result.locked is False
        assert result.attempts_remaining == 4

    async def test_failure_on_expired_lock_without_read_starts_fresh(self, rate_limiter, clock):
        await fail(rate_limiter, 5)
        clock.advance(minutes=16)

        result = await rate_limiter.record_failed_attempt(IP)
        assert result.locked is False
        assert result.attempts_remaining == 4


class TestSuccessfulLogin:
    async def test_success_resets_partial_count(self, rate_limiter):
        await fail(rate_limiter, 3)
        await rate_limiter.record_successful_login(IP)

        assert await rate_limiter.store.get(IP) is None
        result = await rate_limiter.record_failed_attempt(IP)
        assert result.attempts_remaining == 4


class TestAdminReads:
    async def test_locked_identifiers_and_stats(self, rate_limiter, clock):
        await fail(rate_limiter, 5, "10.0.0.1")
        clock.advance(seconds=30)
        await fail(rate_limiter, 2, "10.0.0.2")

        locked = await rate_limiter.get_locked_identifiers()
        assert [row["identifier"] for row in locked] == ["10.0.0.1"]
        assert locked[0]["account"] == "user@example.com"
        assert locked[0]["remaining_minutes"] == 15

        tracked = await rate_limiter.get_all_attempts()
        assert [row["identifier"] for row in tracked] == ["10.0.0.2", "10.0.0.1"]

        assert await rate_limiter.get_stats() == {
            "total_tracked": 2,
            "currently_locked": 1,
            "max_attempts": 5,
            "lockout_minutes": 15,
        }

    async def test_unlock(self, rate_limiter):
        await fail(rate_limiter, 5)

        assert await rate_limiter.unlock(IP) is True
        assert (await rate_limiter.is_locked(IP)).locked is False
        assert await rate_limiter.unlock(IP) is False


class TestCleanup:
    async def test_sweep_needs_idle_attempt_and_stale_lock(self, rate_limiter, clock):
        await fail(rate_limiter, 1, "idle")
        await fail(rate_limiter, 5, "locked")
        clock.advance(minutes=61)
        await fail(rate_limiter, 1, "recent")

        removed = await rate_limiter.cleanup()

        assert removed == 1
        remaining = {identifier for identifier, _ in await rate_limiter.store.items()}
        # "locked": lock ended only 46 minutes ago
        assert remaining == {"locked", "recent"}

    async def test_sweep_drops_long_expired_locks(self, rate_limiter, clock):
        await fail(rate_limiter, 5)
        clock.advance(minutes=15 + 61)

        assert await rate_limiter.cleanup() == 1
        assert await rate_limiter.store.items() == []

    async def test_start_and_stop(self, clock):
        limiter = LoginRateLimiter(
            InMemoryRateLimitStore(),
            cleanup_interval=timedelta(seconds=3600),
            clock=clock,
        )
        limiter.start()
        assert limiter._cleanup_task is not None
        await limiter.stop()
        assert limiter._cleanup_task is None


class FakeRedis:
    """The few redis.asyncio calls the store makes, backed by a dict."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    async def scan_iter(self, match=None):
        prefix = match.rstrip("*") if match else ""
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def aclose(self):
        self.closed = True


class TestRedisStore:
    @pytest.fixture
    def redis(self):
        return FakeRedis()

    async def test_lockout_through_redis_store(self, redis, clock):
        limiter = LoginRateLimiter(RedisRateLimitStore(redis), clock=clock)

        result = await fail(limiter, 5)

        assert result.locked is True
        assert f"login_attempts:{IP}" in redis.data
        assert redis.expiry[f"login_attempts:{IP}"] == 75 * 60
        stored = LoginAttemptRecord.model_validate_json(redis.data[f"login_attempts:{IP}"])
        assert stored.attempts == 5
        assert stored.associated_account == "user@example.com"

    async def test_items_strip_prefix(self, redis, clock):
        limiter = LoginRateLimiter(RedisRateLimitStore(redis), clock=clock)
        await fail(limiter, 1, "192.168.1.9")
        redis.data["unrelated"] = "x"

        assert [identifier for identifier, _ in await limiter.store.items()] == ["192.168.1.9"]

    async def test_close(self, redis):
        store = RedisRateLimitStore(redis)
        await store.close()
        assert redis.closed is True
