import os

# Налаштування до імпорту застосунку: settings читаються один раз
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hosteldesk.core.security import hash_password  # noqa: E402
from hosteldesk.db import models  # noqa: E402,F401
from hosteldesk.db.base import Base  # noqa: E402
from hosteldesk.db.models import (  # noqa: E402
    HostelBlock,
    RoleEnum as Role,
    StaffVertical,
    Ticket,
    TicketCategory as Category,
    TicketPriority as Priority,
    TicketStatus as Status,
    User,
)
from hosteldesk.db.session import get_session  # noqa: E402
from hosteldesk.main import app  # noqa: E402
from hosteldesk.services.auth import make_token_for_user  # noqa: E402

PASSWORD = "Passw0rd!"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest_asyncio.fixture
async def engine():
    db_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(role=Role.STUDENT, vertical=None, active=True, **kw) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=kw.pop("email", f"{role.value.lower()}{n}@example.com"),
            password_hash=_PASSWORD_HASH,
            first_name=kw.pop("first_name", role.value.title()),
            last_name=kw.pop("last_name", str(n)),
            role=role,
            staff_vertical=vertical,
            is_active=active,
            **kw,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_ticket(db):
    counter = {"n": 0}

    async def _make(creator: User, **kw) -> Ticket:
        counter["n"] += 1
        now = kw.pop("created_at", datetime.now(timezone.utc))
        t = Ticket(
            ticket_number=f"TKT-{now.year}-{counter['n']:03d}-test{counter['n']:02d}",
            title=kw.pop("title", "Leaking tap in bathroom"),
            description=kw.pop("description", "Water keeps dripping from the tap all night"),
            category=kw.pop("category", Category.PLUMBING_WATER),
            priority=kw.pop("priority", Priority.MEDIUM),
            status=kw.pop("status", Status.OPEN),
            created_by_id=creator.id,
            hostel_block=kw.pop("hostel_block", HostelBlock.BLOCK_A),
            created_at=now,
            updated_at=kw.pop("updated_at", now),
            **kw,
        )
        db.add(t)
        await db.commit()
        await db.refresh(t)
        return t

    return _make


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token_for_user(user)}"}


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(Role.ADMIN)


@pytest_asyncio.fixture
async def student(make_user):
    return await make_user(Role.STUDENT, room_number="A-101", hostel_block=HostelBlock.BLOCK_A)


@pytest_asyncio.fixture
async def plumber(make_user):
    return await make_user(Role.STAFF, StaffVertical.PLUMBING)


@pytest_asyncio.fixture
async def electrician(make_user):
    return await make_user(Role.STAFF, StaffVertical.ELECTRICAL)
