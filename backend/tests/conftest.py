from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leave_approval.db import get_session
from leave_approval.main import app
from leave_approval.models import SQLModel
from leave_approval.services.directory import (
    InMemoryGroupDirectory,
    InMemoryLeaveManagerCapability,
    InMemoryUserDirectory,
    UserInfo,
    set_group_directory,
    set_leave_manager_capability,
    set_user_directory,
)
from leave_approval.services.notification import (
    InMemoryNotificationTransport,
    LoggingNotificationTransport,
    set_notification_transport,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create an in-memory SQLite engine with all tables."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session shared with the app under test."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Directory of people used across workflow tests
# ---------------------------------------------------------------------------


class People:
    """Seeded users and groups: G1 = {a, b}, G2 = {b, c}; c is the president, hr observes, manager may proxy."""

    def __init__(self) -> None:
        self.requester = UserInfo(id=uuid.uuid4(), name="Rin", email="rin@example.com")
        self.a = UserInfo(id=uuid.uuid4(), name="Aoi", email="aoi@example.com")
        self.b = UserInfo(id=uuid.uuid4(), name="Ben", email="ben@example.com")
        self.c = UserInfo(id=uuid.uuid4(), name="Chiyo", email="chiyo@example.com", roles=["president"])
        self.hr = UserInfo(id=uuid.uuid4(), name="Hana", email="hana@example.com", roles=["hr"])
        self.manager = UserInfo(id=uuid.uuid4(), name="Mei", email="mei@example.com")
        self.admin = UserInfo(id=uuid.uuid4(), name="Ada", email="ada@example.com", roles=["admin"])
        self.outsider = UserInfo(id=uuid.uuid4(), name="Oscar", email="oscar@example.com")
        self.g1 = uuid.uuid4()
        self.g2 = uuid.uuid4()

        self.users = InMemoryUserDirectory()
        for user in (self.requester, self.a, self.b, self.c, self.hr, self.manager, self.admin, self.outsider):
            self.users.seed(user)

        self.groups = InMemoryGroupDirectory()
        self.groups.seed(self.g1, [self.a.id, self.b.id])
        self.groups.seed(self.g2, [self.b.id, self.c.id])

        self.capability = InMemoryLeaveManagerCapability()
        self.capability.grant(self.manager.id)

        self.transport = InMemoryNotificationTransport()

    @staticmethod
    def headers(user: UserInfo, role: str = "employee") -> dict[str, str]:
        """Dev auth headers for ``user``."""
        return {"X-User-Id": str(user.id), "X-User-Name": user.name, "X-Role": role}


@pytest.fixture
def people() -> Iterator[People]:
    """Seed the in-memory directories and notification transport for every workflow test."""
    seeded = People()
    set_user_directory(seeded.users)
    set_group_directory(seeded.groups)
    set_leave_manager_capability(seeded.capability)
    set_notification_transport(seeded.transport)
    yield seeded
    set_user_directory(InMemoryUserDirectory())
    set_group_directory(InMemoryGroupDirectory())
    set_leave_manager_capability(InMemoryLeaveManagerCapability())
    set_notification_transport(LoggingNotificationTransport())
