"""
Pytest fixtures for all tests.

Provides:
- Per-test SQLite database (TEST_DATABASE_URL overrides)
- ASGI test client with the database dependency overridden
- Registered tenants, users and session tokens
- In-memory Redis replacement
"""

import os

# Must be set before educore is imported: settings and the bcrypt context
# are built at import time.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TOKEN_DENYLIST_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use-0123456789")

import time
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from educore.core.cache import cache_manager
from educore.core.database import Base, db_manager, get_db
from educore.main import create_application
from educore.models import Role, Tenant, TenantStatus, User
from tests.factories import TenantFactory, UserFactory
from tests.helpers import auth_headers


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'educore_test.db'}"


@pytest_asyncio.fixture
async def test_db_engine(database_url: str):
    """
    Create test database engine.

    Uses NullPool so every session gets its own connection, as concurrent
    requests would.
    """
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    """Factory for extra sessions, e.g. one per concurrent task."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for a test.

    Services commit their own work, so isolation comes from the per-test
    database rather than an outer transaction.
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(test_db_engine, session_factory, monkeypatch):
    """
    Create FastAPI test application.

    Each request gets its own session, like in production.
    """
    monkeypatch.setattr(db_manager, "_engine", test_db_engine)
    monkeypatch.setattr(db_manager, "_session_factory", session_factory)

    application = create_application()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for API tests.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/auth/me")
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test data
@pytest_asyncio.fixture
async def active_tenant(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, status=TenantStatus.ACTIVE.value)


@pytest_asyncio.fixture
async def pending_tenant(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, status=TenantStatus.PENDING.value)


@pytest_asyncio.fixture
async def school_admin(db_session: AsyncSession, active_tenant: Tenant) -> User:
    return await UserFactory.create(
        db_session,
        active_tenant,
        role=Role.SCHOOL_ADMIN.value,
        email="admin@alpha.edu",
        password="secret1",
    )


@pytest_asyncio.fixture
async def teacher(db_session: AsyncSession, active_tenant: Tenant) -> User:
    return await UserFactory.create(
        db_session,
        active_tenant,
        role=Role.TEACHER.value,
        email="teacher@alpha.edu",
        password="secret1",
    )


@pytest_asyncio.fixture
async def sys_admin(db_session: AsyncSession) -> User:
    return await UserFactory.create(
        db_session,
        None,
        role=Role.SYS_ADMIN.value,
        email="sysadmin@educore.com",
        password="admin123",
    )


@pytest.fixture
def sys_admin_headers(sys_admin: User) -> dict[str, str]:
    return auth_headers(sys_admin)


@pytest.fixture
def school_admin_headers(school_admin: User) -> dict[str, str]:
    return auth_headers(school_admin)


class FakeRedis:
    """
    In-memory stand-in for the redis.asyncio client.

    Covers the commands CacheManager uses. ``fail`` makes every command
    raise, to exercise outage handling.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis unavailable")

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    async def ping(self) -> bool:
        self._check()
        return True

    async def set(self, key: str, value, ex: int | None = None, nx: bool = False):
        self._check()
        if nx and self._alive(key):
            return None
        self.store[key] = str(value)
        if ex:
            self.expiry[key] = time.monotonic() + ex
        return True

    async def exists(self, key: str) -> int:
        self._check()
        return int(self._alive(key))

    async def incr(self, key: str) -> int:
        self._check()
        value = int(self.store.get(key, 0)) + 1 if self._alive(key) else 1
        self.store[key] = str(value)
        return value

    async def ttl(self, key: str) -> int:
        self._check()
        if not self._alive(key):
            return -2
        deadline = self.expiry.get(key)
        return -1 if deadline is None else int(deadline - time.monotonic())

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    async def aclose(self) -> None:
        pass


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self.redis = redis
        self.calls = []

    def set(self, *args, **kwargs):
        self.calls.append(("set", args, kwargs))
        return self

    def incr(self, *args, **kwargs):
        self.calls.append(("incr", args, kwargs))
        return self

    async def execute(self) -> list:
        results = []
        for name, args, kwargs in self.calls:
            results.append(await getattr(self.redis, name)(*args, **kwargs))
        self.calls = []
        return results


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    """Install an in-memory Redis behind the global cache manager."""
    redis = FakeRedis()
    monkeypatch.setattr(cache_manager, "_client", redis)
    return redis
