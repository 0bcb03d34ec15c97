"""
Test configuration and fixtures for FastAPI URL shortener.
This centralizes all test setup, making individual tests clean.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from main import app
from shortlink_app.cache.factory import CacheFactory
from shortlink_app.config import settings
from shortlink_app.database.connection import Base, get_db

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FrozenClock:
    """Manually advanced UTC clock"""

    def __init__(self, now: datetime = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakePipeline:
    """Queues commands and applies them on execute(), like a MULTI/EXEC block"""

    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def hset(self, key, mapping):
        self.commands.append(("hset", key, mapping))
        return self

    def pexpire(self, key, milliseconds):
        self.commands.append(("pexpire", key, milliseconds))
        return self

    def persist(self, key):
        self.commands.append(("persist", key))
        return self

    async def execute(self):
        await self.redis._before_call()
        for command, key, *args in self.commands:
            if command == "hset":
                self.redis.hashes[key] = {
                    field: value if isinstance(value, bytes) else str(value).encode()
                    for field, value in args[0].items()
                }
            elif command == "pexpire":
                self.redis.ttls[key] = args[0]
            elif command == "persist":
                self.redis.ttls.pop(key, None)
        self.commands = []


class FakeAsyncRedis:
    """
    Async Redis double for the commands RedisCache uses.
    
    Hashes live in a dict and come back as bytes. TTLs are recorded in
    milliseconds but not enforced. Set fail_with to make every call raise,
    or delay to make every call slow.
    """

    def __init__(self):
        self.hashes = {}
        self.ttls = {}
        self.fail_with = None
        self.delay = 0
        self.closed = False

    async def _before_call(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def ping(self):
        await self._before_call()
        return True

    async def hmget(self, key, *fields):
        await self._before_call()
        entry = self.hashes.get(key)
        return [None if entry is None else entry.get(field) for field in fields]

    async def pexpire(self, key, milliseconds):
        await self._before_call()
        if key not in self.hashes:
            return False
        self.ttls[key] = milliseconds
        return True

    async def delete(self, *keys):
        await self._before_call()
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def fake_redis():
    return FakeAsyncRedis()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)
    
    # Create session
    db = TestingSessionLocal()
    
    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """Session maker for tests that need one session per thread"""
    return TestingSessionLocal


def _client_for(db_session):
    def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    # Every client starts from a fresh backend decision
    CacheFactory.clear_instance()
    return TestClient(app)


@pytest.fixture(scope="function")
def client(db_session, monkeypatch):
    """
    Create a test client with database dependency overridden.
    No Redis is configured, so the in-memory cache is wired.
    """
    monkeypatch.setattr(settings, "redis_url", None)
    
    with _client_for(db_session) as test_client:
        yield test_client
    
    # Clean up overrides
    app.dependency_overrides.clear()
    CacheFactory.clear_instance()


@pytest.fixture(scope="function")
def distributed_client(db_session, fake_redis, monkeypatch):
    """Test client whose startup finds a reachable Redis (the fake)"""
    monkeypatch.setattr(settings, "redis_url", "redis://cache.test:6379/0")
    monkeypatch.setattr(
        "shortlink_app.cache.factory.aioredis.from_url",
        lambda *args, **kwargs: fake_redis,
    )
    
    with _client_for(db_session) as test_client:
        yield test_client
    
    app.dependency_overrides.clear()
    CacheFactory.clear_instance()


@pytest.fixture(scope="function")
def fallback_client(db_session, monkeypatch):
    """Test client whose startup finds Redis configured but unreachable"""
    # Nothing listens on port 1
    monkeypatch.setattr(settings, "redis_url", "redis://127.0.0.1:1/0")
    monkeypatch.setattr(settings, "cache_connect_timeout", 0.5)
    
    with _client_for(db_session) as test_client:
        yield test_client
    
    app.dependency_overrides.clear()
    CacheFactory.clear_instance()
