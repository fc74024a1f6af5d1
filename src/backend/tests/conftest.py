"""
Pytest fixtures for E-Voting backend tests.

Service and API tests run against an in-memory SQLite database shared
through a StaticPool, with a frozen clock and fake delivery channels
injected in place of the process-wide resources.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENABLE_BACKGROUND_JOBS", "false")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("FIELD_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}
T0 = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


class FakeChannel:
    """Delivery channel that records what it was asked to send."""

    def __init__(self, name: str, label: str, attr: str, succeed: bool = True):
        self.name = name
        self.label = label
        self.attr = attr
        self.succeed = succeed
        self.error: Optional[Exception] = None
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def address_for(self, voter: Any) -> Optional[str]:
        return getattr(voter, self.attr) or None

    async def send(self, address: str, code: str, context: dict[str, Any]) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append((address, code, context))
        return self.succeed

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
async def engine() -> AsyncGenerator[Any, None]:
    """Fresh in-memory database per test."""
    import models  # noqa: F401
    from db.base import Base

    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: Any) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit_trail(session_factory: async_sessionmaker[AsyncSession]) -> Any:
    from services.audit_service import AuditTrail

    return AuditTrail(session_factory)


@pytest.fixture
def audit_entries(session_factory: async_sessionmaker[AsyncSession]) -> Any:
    """Async callable returning every stored audit entry, optionally filtered by action."""

    async def _load(action: Optional[str] = None) -> list[Any]:
        from sqlalchemy import select

        from models.audit_log import AuditLog

        query = select(AuditLog).order_by(AuditLog.created_at)
        if action is not None:
            query = query.where(AuditLog.action == action)
        async with session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    return _load


@pytest.fixture
def email_channel() -> FakeChannel:
    return FakeChannel("email", "Email", "email")


@pytest.fixture
def sms_channel() -> FakeChannel:
    return FakeChannel("sms", "SMS", "phone")


@pytest.fixture
async def dispatcher(email_channel: FakeChannel, sms_channel: FakeChannel, audit_trail: Any) -> AsyncGenerator[Any, None]:
    from services.notification_service import NotificationDispatcher

    notification_dispatcher = NotificationDispatcher([email_channel, sms_channel], audit_trail)
    yield notification_dispatcher
    await notification_dispatcher.aclose()


@pytest.fixture
async def election(db_session: AsyncSession) -> SimpleNamespace:
    """
    A small election at T0 (2026-03-10 09:00 UTC).

    - REG001: eligible, email + phone
    - REG002: eligible, email only
    - REG003: ineligible
    - REG004: eligible, no contact details
    - P1 "Guild President", P2 "Guild Secretary": voting 08:00-12:00 (open)
    - P3 "Sports Minister": voting closed the day before
    - C1, C3 approved for P1; C2 rejected for P1; C4 approved for P2; C5 approved for P3
    """
    from models.position import CandidateStatus
    from models.voter import VoterStatus
    from repositories.candidate_repository import CandidateRepository
    from repositories.position_repository import PositionRepository
    from repositories.user_repository import UserRepository
    from repositories.voter_repository import VoterRepository

    await VoterRepository(db_session).upsert(
        [
            {"reg_no": "REG001", "name": "Amina Nakato", "email": "amina@example.com", "phone": "0701234567"},
            {"reg_no": "REG002", "name": "Brian Okello", "email": "brian@example.com"},
            {"reg_no": "REG003", "name": "Carol Auma", "email": "carol@example.com", "status": VoterStatus.INELIGIBLE.value},
            {"reg_no": "REG004", "name": "David Mugisha"},
        ]
    )

    positions = PositionRepository(db_session)
    nomination = {
        "nomination_opens_at": T0 - timedelta(days=9),
        "nomination_closes_at": T0 - timedelta(days=2),
    }
    p1 = await positions.create(
        name="Guild President",
        seats=1,
        voting_opens_at=T0 - timedelta(hours=1),
        voting_closes_at=T0 + timedelta(hours=3),
        **nomination,
    )
    p2 = await positions.create(
        name="Guild Secretary",
        seats=1,
        voting_opens_at=T0 - timedelta(hours=1),
        voting_closes_at=T0 + timedelta(hours=3),
        **nomination,
    )
    p3 = await positions.create(
        name="Sports Minister",
        seats=1,
        voting_opens_at=T0 - timedelta(hours=23),
        voting_closes_at=T0 - timedelta(hours=13),
        **nomination,
    )

    users = UserRepository(db_session)
    candidates = CandidateRepository(db_session)
    created = {}
    for key, position, status in [
        ("c1", p1, CandidateStatus.APPROVED),
        ("c2", p1, CandidateStatus.REJECTED),
        ("c3", p1, CandidateStatus.APPROVED),
        ("c4", p2, CandidateStatus.APPROVED),
        ("c5", p3, CandidateStatus.APPROVED),
    ]:
        user = await users.create(email=f"{key}@example.com", name=f"Candidate {key.upper()}", program="BSc CS")
        candidate = await candidates.create(position_id=position.id, user_id=user.id, name=user.name, program="BSc CS")
        await candidates.set_status(candidate, status, reason="Incomplete documents" if status is CandidateStatus.REJECTED else None)
        created[key] = candidate.id

    await db_session.commit()

    return SimpleNamespace(p1=p1.id, p2=p2.id, p3=p3.id, **created)


@pytest.fixture
async def app(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FrozenClock,
    audit_trail: Any,
    dispatcher: Any,
) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the test database and resources."""
    from api.deps import get_audit_trail, get_clock, get_dispatcher
    from db.session import get_db
    from main import app as fastapi_app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_audit_trail] = lambda: audit_trail
    fastapi_app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
