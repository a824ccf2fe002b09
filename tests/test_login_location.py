"""Tests for new-location login detection."""

from portal.auth.login_location import LoginLocationDetector
from portal.models import LoginAttempt
from portal.services.repository import PortalRepository

from sqlalchemy import func, select

EMAIL = "alice@example.com"


async def history_count(session) -> int:
    return (await session.execute(select(func.count()).select_from(LoginAttempt))).scalar_one()


class TestIsNewLocation:
    async def test_no_history_is_new(self, session):
        detector = LoginLocationDetector(PortalRepository(session))
        assert await detector.is_new_location(EMAIL, "10.0.0.1", "Firefox") is True

    async def test_exact_pair_is_known(self, session):
        repository = PortalRepository(session)
        await repository.log_login_attempt(EMAIL, True, "10.0.0.1", "Firefox")
        detector = LoginLocationDetector(repository)

        assert await detector.is_new_location(EMAIL, "10.0.0.1", "Firefox") is False
        assert await detector.is_new_location(EMAIL.upper(), "10.0.0.1", "Firefox") is False
        assert await detector.is_new_location(EMAIL, "10.0.0.2", "Firefox") is True
        assert await detector.is_new_location(EMAIL, "10.0.0.1", "Chrome") is True

    async def test_failed_attempts_are_not_history(self, session):
        repository = PortalRepository(session)
        await repository.log_login_attempt(EMAIL, False, "10.0.0.1", "Firefox", failure_reason="invalid_password")

        assert await LoginLocationDetector(repository).is_new_location(EMAIL, "10.0.0.1", "Firefox") is True

    async def test_check_does_not_write(self, session):
        repository = PortalRepository(session)
        detector = LoginLocationDetector(repository)

        await detector.is_new_location(EMAIL, "10.0.0.1", "Firefox")
        await detector.is_new_location(EMAIL, "10.0.0.1", "Firefox")

        assert await history_count(session) == 0
