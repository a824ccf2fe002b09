"""HTTP tests for the login lockout administration endpoints."""

from sqlalchemy import select

from portal.models import AuditLog

from tests.helpers import auth_headers


async def lock_out(rate_limiter, identifier: str = "203.0.113.7"):
    for _ in range(5):
        await rate_limiter.record_failed_attempt(identifier, "victim@example.com")


class TestLockoutAdmin:
    async def test_requires_admin(self, client, seed):
        response = await client.get("/api/admin/login-lockouts", headers=auth_headers(seed.owner))

        assert response.status_code == 403

    async def test_lists_locked_and_tracked(self, client, seed, rate_limiter):
        await lock_out(rate_limiter)
        await rate_limiter.record_failed_attempt("198.51.100.2")
        headers = auth_headers(seed.admin)

        locked = (await client.get("/api/admin/login-lockouts", headers=headers)).json()
        assert locked["total"] == 1
        assert locked["lockouts"][0]["identifier"] == "203.0.113.7"
        assert locked["lockouts"][0]["account"] == "victim@example.com"

        tracked = (await client.get("/api/admin/login-attempts/tracked", headers=headers)).json()
        assert tracked["total"] == 2

        stats = (await client.get("/api/admin/login-lockouts/stats", headers=headers)).json()
        assert stats == {"total_tracked": 2, "currently_locked": 1, "max_attempts": 5, "lockout_minutes": 15}

    async def test_unlock(self, client, seed, rate_limiter, session):
        await lock_out(rate_limiter)

        response = await client.post(
            "/api/admin/login-lockouts/203.0.113.7/unlock", headers=auth_headers(seed.admin)
        )

        assert response.status_code == 200
        assert response.json()["unlocked"] is True
        assert (await rate_limiter.is_locked("203.0.113.7")).locked is False

        event = (
            await session.execute(select(AuditLog).where(AuditLog.operation == "IP_UNLOCK"))
        ).scalar_one()
        assert event.record_id == "203.0.113.7"
        assert event.user_id == seed.admin.id

    async def test_unlock_unknown_identifier(self, client, seed):
        response = await client.post("/api/admin/login-lockouts/192.0.2.1/unlock", headers=auth_headers(seed.admin))

        assert response.status_code == 200
        assert response.json()["unlocked"] is False
