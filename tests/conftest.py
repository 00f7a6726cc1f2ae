"""
Shared test fixtures for the LeaveDesk test suite.

Async throughout (aiosqlite + AsyncSession); Graph is replaced by an
in-memory fake that records every call.
"""

import itertools
import os
import sys
from datetime import date
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavedesk.api.v1.deps import get_current_active_user, get_db, get_graph_client
from leavedesk.core.security import create_access_token
from leavedesk.db.base import Base
from leavedesk.integrations.graph import GraphError
from leavedesk.main import app
from leavedesk.models.absence import Absence
from leavedesk.models.user import User

# A separate in-memory engine; the app's own engine is never touched.
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


# ── Graph fake ──────────────────────────────────────────────────────
class FakeGraphClient:
    """Stands in for ``GraphClient``; ``fail=True`` makes every call raise."""

    time_zone = "Europe/Berlin"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, tuple, dict]] = []

    async def _record(self, name: str, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.fail:
            raise GraphError(f"{name} unavailable", 503)

    def called(self, name: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    async def create_calendar_event(self, user_id, **kwargs):
        await self._record("create_calendar_event", user_id, **kwargs)
        return {"id": "event-1"}

    async def set_automatic_replies(self, user_id, setting):
        await self._record("set_automatic_replies", user_id, setting)

    async def send_mail(self, from_user, to_email, subject, html):
        await self._record("send_mail", from_user, to_email, subject, html)

    async def send_chat_message(self, user_id, html):
        await self._record("send_chat_message", user_id, html)
        return "chat-1"

    async def get_user_manager(self, user_id):
        await self._record("get_user_manager", user_id)
        return {"id": "remote-mgr", "displayName": "Remote Manager", "mail": "remote@example.com"}

    async def get_direct_reports(self, user_id):
        await self._record("get_direct_reports", user_id)
        return [
            {"id": "entra-emp", "displayName": "Max Mustermann", "mail": "max@example.com"},
            {"id": "remote-1", "displayName": "Rita Remote", "mail": "rita@example.com"},
        ]


@pytest.fixture
def fake_graph() -> FakeGraphClient:
    graph = FakeGraphClient()
    app.dependency_overrides[get_graph_client] = lambda: graph
    yield graph
    app.dependency_overrides.pop(get_graph_client, None)


# ── Sessions & clients ──────────────────────────────────────────────
@pytest.fixture
async def async_client(fake_graph) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Users ───────────────────────────────────────────────────────────
_user_ids = itertools.count(1)


async def make_user(session: AsyncSession, **overrides) -> User:
    index = overrides.pop("index", None) or next(_user_ids)
    values = {
        "entra_id": f"entra-{index}",
        "email": f"user{index}@example.com",
        "name": f"User {index}",
        "department": "Engineering",
        "role": "employee",
        "vacation_total": 30,
        "vacation_used": 0,
        "is_active": True,
    }
    values.update(overrides)
    user = User(**values)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_absence(session: AsyncSession, user: User, start: date, end: date, **overrides) -> Absence:
    values = {
        "user_id": user.id,
        "user_email": user.email,
        "user_name": user.name,
        "type": "vacation",
        "start_date": start,
        "end_date": end,
        "total_days": float((end - start).days + 1),
        "status": "approved",
    }
    values.update(overrides)
    absence = Absence(**values)
    session.add(absence)
    await session.commit()
    await session.refresh(absence)
    return absence


@pytest.fixture
async def manager(db_session: AsyncSession) -> User:
    return await make_user(
        db_session,
        index="mgr",
        entra_id="entra-mgr",
        email="manager@example.com",
        name="Maria Manager",
        role="manager",
    )


@pytest.fixture
async def employee(db_session: AsyncSession, manager: User) -> User:
    return await make_user(
        db_session,
        index="emp",
        entra_id="entra-emp",
        email="max@example.com",
        name="Max Mustermann",
        manager_id=manager.entra_id,
        manager_email=manager.email,
    )


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(
        db_session,
        index="adm",
        entra_id="entra-adm",
        email="admin@example.com",
        name="Ada Admin",
        role="admin",
    )


@pytest.fixture
def login_as():
    """Make the API treat the given user as the signed-in caller."""

    def _login(user: User) -> None:
        async def _current_user() -> User:
            async with TestingSessionLocal() as session:
                return await session.get(User, user.id)

        app.dependency_overrides[get_current_active_user] = _current_user

    yield _login
    app.dependency_overrides.pop(get_current_active_user, None)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def user_factory(db_session: AsyncSession):
    async def _make(**overrides) -> User:
        return await make_user(db_session, **overrides)

    return _make


@pytest.fixture
def absence_factory(db_session: AsyncSession):
    async def _make(user: User, start: date, end: date, **overrides) -> Absence:
        return await make_absence(db_session, user, start, end, **overrides)

    return _make


@pytest.fixture
def failing_graph() -> FakeGraphClient:
    return FakeGraphClient(fail=True)
