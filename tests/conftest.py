"""
Shared fixtures: in-memory SQLite database, controllable clock, recording
notification dispatcher and an httpx client bound to the FastAPI app.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SENDGRID_API_KEY", "")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal.auth.rate_limit import limiter
from portal.auth.rate_limiter import InMemoryRateLimitStore, LoginRateLimiter
from portal.auth.utils import hash_password
from portal.database import Base, get_async_session
from portal.main import create_application
from portal.models import Case, MembershipRole, Organisation, OrganisationMembership, User
from portal.notifications import LoggingTransport, NotificationDispatcher, NotificationIntent

from tests.helpers import CLIENT_IP, PASSWORD, USER_AGENT


class FakeClock:
    """Manually advanced UTC clock for the rate limiter."""

    def __init__(self) -> None:
        self.now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every published intent instead of sending it."""

    def __init__(self) -> None:
        super().__init__(LoggingTransport())
        self.published: list[NotificationIntent] = []

    def publish(self, intent: NotificationIntent) -> bool:
        self.published.append(intent)
        return True


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock) -> LoginRateLimiter:
    return LoginRateLimiter(InMemoryRateLimitStore(), clock=clock)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def app(session_factory, rate_limiter, dispatcher):
    app = create_application()
    app.state.login_rate_limiter = rate_limiter
    app.state.notifications = dispatcher

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_session
    limiter.reset()
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, client=(CLIENT_IP, 51234))
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers={"User-Agent": USER_AGENT},
    ) as c:
        yield c


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

@dataclass
class Seed:
    organisation: Organisation
    other_organisation: Organisation
    owner: User
    members: list[User]
    admin: User
    outsider: User
    cases: list[Case]
    foreign_case: Case
    users: dict[str, User] = field(default_factory=dict)


PASSWORD_HASH = hash_password(PASSWORD)


def _user(email: str, first: str, last: str, **kwargs) -> User:
    kwargs.setdefault("password_hash", PASSWORD_HASH)
    return User(email=email, first_name=first, last_name=last, **kwargs)


@pytest_asyncio.fixture
async def seed(session) -> Seed:
    organisation = Organisation(name="Northwind Lettings", contact_email="accounts@northwind.example")
    other = Organisation(name="Harbour Mills")

    owner = _user("owner@example.com", "Olivia", "Owner")
    alice = _user("alice@example.com", "Alice", "Archer")
    bob = _user("bob@example.com", "Bob", "Baker")
    admin = _user("admin@acclaim.law", "Ada", "Admin", is_admin=True)
    outsider = _user("user@example.com", "Uma", "User")

    session.add_all([organisation, other, owner, alice, bob, admin, outsider])
    await session.flush()

    session.add_all([
        OrganisationMembership(organisation_id=organisation.id, user_id=owner.id, role=MembershipRole.OWNER),
        OrganisationMembership(organisation_id=organisation.id, user_id=alice.id, role=MembershipRole.MEMBER),
        OrganisationMembership(organisation_id=organisation.id, user_id=bob.id, role=MembershipRole.MEMBER),
        OrganisationMembership(organisation_id=organisation.id, user_id=admin.id, role=MembershipRole.MEMBER),
        OrganisationMembership(organisation_id=other.id, user_id=outsider.id, role=MembershipRole.OWNER),
    ])

    cases = [
        Case(account_number=f"NW{n:04d}", debtor_name=f"Debtor {n}", organisation_id=organisation.id)
        for n in range(1, 4)
    ]
    foreign_case = Case(account_number="HM0001", debtor_name="Harbour Debtor", organisation_id=other.id)
    session.add_all([*cases, foreign_case])
    await session.commit()

    for user in (owner, alice, bob, admin, outsider):
        await session.refresh(user)

    return Seed(
        organisation=organisation,
        other_organisation=other,
        owner=owner,
        members=[alice, bob],
        admin=admin,
        outsider=outsider,
        cases=cases,
        foreign_case=foreign_case,
        users={u.email: u for u in (owner, alice, bob, admin, outsider)},
    )
