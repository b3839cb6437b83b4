"""Shared pytest fixtures: a file-backed SQLite database per test and an in-memory Redis."""

import logging
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notekeeper.core.cache import NoteCache, get_note_cache
from notekeeper.core.models.user import User
from notekeeper.core.redis_client import get_redis_client
from notekeeper.database import build_engine, create_tables, get_db_session
from notekeeper.main import app
from notekeeper.security.password import hash_password

from fakes import FailingRedis, FakeRedis

logging.getLogger("aiosqlite").setLevel(logging.WARNING)

TEST_PASSWORD = "TestPassword123!"


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite file per test; writers serialize on BEGIN IMMEDIATE like production row locks."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'notekeeper.db'}", lock_timeout_ms=5000)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def failing_redis():
    return FailingRedis()


@pytest.fixture
def redis_client(fake_redis, monkeypatch):
    """The process-wide RedisClient, backed by the in-memory fake for the test's duration."""
    client = get_redis_client()
    monkeypatch.setattr(client, "redis", fake_redis)
    return client


@pytest.fixture
def cache(redis_client):
    return NoteCache(redis_client, default_ttl=300, search_ttl=120)


@pytest.fixture
def user_factory(session_factory):
    async def _create(username=None, password=TEST_PASSWORD):
        async with session_factory() as s:
            user = User(
                username=username or f"user_{uuid4().hex[:8]}",
                password_hash=hash_password(password),
                is_active=True,
            )
            s.add(user)
            await s.commit()
            return user

    return _create


@pytest.fixture
async def alice(user_factory):
    return await user_factory("alice")


@pytest.fixture
async def bob(user_factory):
    return await user_factory("bob")


@pytest.fixture
async def carol(user_factory):
    return await user_factory("carol")


@pytest.fixture
async def client(session_factory, cache):
    """HTTP client bound to the app, using the per-test database and fake Redis."""

    async def _override_db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db_session] = _override_db
    app.dependency_overrides[get_note_cache] = lambda: cache
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
