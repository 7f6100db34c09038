"""
Shared test fixtures.

- In-memory SQLite database (one shared connection via StaticPool)
- In-process async stand-in for the Redis client
- Service and ASGI client wired to both
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import time
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortlink.core.setting import ShortCodeConfig
from shortlink.db.sqlite_adapter import SQLiteAdapter
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.resolution_cache import ResolutionCache
from shortlink.services.url_service import URLShorteningService

TEST_BASE_URL = "https://sho.rt"
TEST_CACHE_TTL = 3600


class InMemoryRedis:
    """Async subset of the Redis client API used by ResolutionCache."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.ttls: dict[str, int] = {}

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.store.pop(key, None)
            self.expiry.pop(key, None)

    async def get(self, key: str) -> Optional[str]:
        self._purge(key)
        return self.store.get(key)

    async def set(self, key: str, value, ex: Optional[int] = None) -> bool:
        self.store[key] = str(value)
        self.expiry.pop(key, None)
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
            self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._purge(key)
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        self._purge(key)
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.store:
            return False
        self.expiry[key] = time.monotonic() + seconds
        self.ttls[key] = seconds
        return True

    async def ping(self) -> bool:
        return True


@pytest_asyncio.fixture
async def engine():
    engine = SQLiteAdapter().create_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


@pytest.fixture
def cache(fake_redis):
    return ResolutionCache(fake_redis, default_ttl=TEST_CACHE_TTL, timeout=1.0)


@pytest.fixture
def code_generator():
    return CodeGenerator(ShortCodeConfig())


@pytest.fixture
def url_service(session, cache, code_generator):
    return URLShorteningService(
        session,
        cache=cache,
        code_generator=code_generator,
        base_url=TEST_BASE_URL,
        cache_ttl=TEST_CACHE_TTL,
    )


@pytest_asyncio.fixture
async def client(session_maker, cache, code_generator, monkeypatch):
    from shortlink.api import endpoints
    from shortlink.core.rate_limit import limiter
    from shortlink.core.resource_manager import get_code_generator, get_resolution_cache
    from shortlink.db.session import get_session
    from shortlink.main import app
    from shortlink.services import background_tasks

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(endpoints.settings, "BASE_URL", TEST_BASE_URL)
    monkeypatch.setattr(endpoints.settings, "CACHE_TTL", TEST_CACHE_TTL)
    monkeypatch.setattr(background_tasks, "async_session_maker", session_maker)
    monkeypatch.setattr(limiter, "enabled", False)

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_resolution_cache] = lambda: cache
    app.dependency_overrides[get_code_generator] = lambda: code_generator

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
