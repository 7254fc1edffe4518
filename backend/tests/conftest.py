# Shared pytest configuration and fixtures
import os
import tempfile
from datetime import datetime, timedelta, timezone

# settings are read at import time; point everything at local, broker-free backends
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUDIT_LOG_ENABLED"] = "true"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="marketplace-storage-")
os.environ["LOG_FILE"] = os.path.join(tempfile.mkdtemp(prefix="marketplace-logs-"), "app.log")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core import clock
from app.core.database import Base, get_db
from app.core.permissions import Role
from app.main import app
from app.services import expiry_scheduler, notification_service
from app.services.category_service import CategoryService
from app.services.plan_service import PlanService

from factories import create_product, create_store, create_user

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def db(session_factory):
    """Session for seeding and direct service calls."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def seeded(session_factory):
    """Default plans and categories, as the startup seeding would create them."""
    async with session_factory() as session:
        await PlanService(session).seed_defaults()
        await CategoryService(session).seed_defaults()


@pytest.fixture(autouse=True)
def scheduled(monkeypatch):
    """Capture delayed expiry submissions instead of talking to a broker."""
    calls = {"featured": [], "hot_deal": []}

    async def _featured(featured_id, finish_time):
        calls["featured"].append((featured_id, finish_time))
        return f"featured-{featured_id}"

    async def _hot_deal(hot_deal_id, deal_end_at):
        calls["hot_deal"].append((hot_deal_id, deal_end_at))
        return f"hot-deal-{hot_deal_id}"

    monkeypatch.setattr(expiry_scheduler, "schedule_featured_expiry", _featured)
    monkeypatch.setattr(expiry_scheduler, "schedule_hot_deal_expiry", _hot_deal)
    return calls


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture queued notification mails as {"to", "subject", "body"} dicts."""
    sent = []

    async def _dispatch(to_email, subject, body):
        sent.append({"to": to_email, "subject": subject, "body": body})
        return f"mail-{len(sent)}"

    monkeypatch.setattr(notification_service, "dispatch", _dispatch)
    return sent


class FrozenClock:
    """Controllable replacement for clock.utcnow."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def frozen_clock(monkeypatch):
    fake = FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))
    monkeypatch.setattr(clock, "utcnow", fake)
    return fake


@pytest_asyncio.fixture(scope="function")
async def client(session_factory):
    """HTTP client against the app, one database session per request."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


# ---------- actors ---------- #

@pytest_asyncio.fixture
async def admin(session_factory):
    return await create_user(session_factory, "admin@example.com", Role.SUPER_ADMIN, name="Site Admin")


@pytest_asyncio.fixture
async def buyer(session_factory):
    return await create_user(session_factory, "buyer@example.com", Role.BUYER, name="Ada Buyer")


@pytest_asyncio.fixture
async def seller(session_factory):
    return await create_user(session_factory, "seller@example.com", Role.STORE_OWNER, name="Sam Seller")


@pytest_asyncio.fixture
async def store(session_factory, seller):
    return await create_store(session_factory, seller)


@pytest_asyncio.fixture
async def product(session_factory, store):
    return await create_product(session_factory, store)
