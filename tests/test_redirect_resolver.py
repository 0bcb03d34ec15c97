"""
Tests for cache-aside resolution and invalidation.
"""

import asyncio
from datetime import timedelta

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink_app.cache.policy import ExpirationPolicy
from shortlink_app.cache.strategies import InMemoryCache, RedisCache
from shortlink_app.exceptions import ExpiredError, NotFoundError
from shortlink_app.models.url import ShortUrl
from shortlink_app.schemas.cache import CachedUrl, decode_cached_url, encode_cached_url
from shortlink_app.services.redirect_resolver import RedirectResolver, cache_key
from shortlink_app.storage.url_store import SQLAlchemyUrlStore


class RecordingCache(InMemoryCache):
    """In-memory cache that also records the order of calls"""

    def __init__(self, calls, **kwargs):
        super().__init__(**kwargs)
        self.calls = calls

    async def remove(self, key, timeout=None):
        self.calls.append(("cache.remove", key))
        await super().remove(key, timeout)


class RecordingStore(SQLAlchemyUrlStore):

    def __init__(self, db, calls):
        super().__init__(db)
        self.calls = calls

    def delete(self, short_code):
        self.calls.append(("store.delete", short_code))
        return super().delete(short_code)


@pytest.fixture
def store(db_session):
    return SQLAlchemyUrlStore(db_session)


@pytest.fixture
def cache(clock):
    return InMemoryCache(clock=clock)


@pytest.fixture
def resolver(store, cache, clock):
    return RedirectResolver(store, cache, default_ttl=timedelta(hours=1), clock=clock)


def add_record(store, code="abc1234", url="https://example.com/a/b/c", expires_at=None):
    return store.add(ShortUrl(short_code=code, original_url=url, expires_at=expires_at))


class TestResolve:

    def test_miss_reads_store_and_populates_cache(self, resolver, store, cache):
        add_record(store)

        assert asyncio.run(resolver.resolve("abc1234")) == "https://example.com/a/b/c"

        entry = decode_cached_url(asyncio.run(cache.get(cache_key("abc1234"))))
        assert entry.code == "abc1234"
        assert entry.original_url == "https://example.com/a/b/c"

    def test_hit_does_not_touch_store(self, resolver, cache, clock):
        payload = encode_cached_url(CachedUrl(code="cached1", original_url="https://cached.example/"))
        asyncio.run(cache.set(cache_key("cached1"), payload, ExpirationPolicy.relative(timedelta(minutes=5), now=clock())))

        # Not in the store at all
        assert asyncio.run(resolver.resolve("cached1")) == "https://cached.example/"

    def test_unknown_code(self, resolver):
        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve("missing"))

    def test_expired_record(self, resolver, store, clock):
        add_record(store, expires_at=clock() - timedelta(minutes=1))

        with pytest.raises(ExpiredError):
            asyncio.run(resolver.resolve("abc1234"))

    def test_expired_error_is_not_found(self):
        assert issubclass(ExpiredError, NotFoundError)

    def test_stale_cache_entry_is_not_served(self, resolver, store, cache, clock):
        """Entry past its expiresAt is ignored even though the cache still holds it"""
        expires_at = clock() + timedelta(minutes=10)
        add_record(store, expires_at=expires_at)
        stale = CachedUrl(code="abc1234", original_url="https://example.com/a/b/c", expires_at=expires_at)
        # Cache entry that would outlive the record (backend not evicting yet)
        asyncio.run(cache.set(cache_key("abc1234"), encode_cached_url(stale), ExpirationPolicy()))

        clock.advance(minutes=11)

        with pytest.raises(ExpiredError):
            asyncio.run(resolver.resolve("abc1234"))
        assert asyncio.run(cache.get(cache_key("abc1234"))) is None

    def test_undecodable_entry_falls_back_to_store(self, resolver, store, cache):
        add_record(store)
        asyncio.run(cache.set(cache_key("abc1234"), b"not json", ExpirationPolicy()))

        assert asyncio.run(resolver.resolve("abc1234")) == "https://example.com/a/b/c"

    def test_cache_outage_is_invisible(self, store, fake_redis, clock):
        add_record(store)
        fake_redis.fail_with = RedisConnectionError("down")
        resolver = RedirectResolver(store, RedisCache(fake_redis, clock=clock), clock=clock)

        assert asyncio.run(resolver.resolve("abc1234")) == "https://example.com/a/b/c"


class TestPopulate:

    def test_policy_capped_at_record_expiry(self, resolver, store, cache, clock):
        record = add_record(store, expires_at=clock() + timedelta(minutes=10))

        asyncio.run(resolver.populate(record))

        clock.advance(minutes=10)
        assert asyncio.run(cache.get(cache_key("abc1234"))) is None

    def test_default_ttl_applies_without_record_expiry(self, resolver, store, cache, clock):
        record = add_record(store)

        asyncio.run(resolver.populate(record))

        clock.advance(minutes=59)
        assert asyncio.run(cache.get(cache_key("abc1234"))) is not None
        clock.advance(minutes=1)
        assert asyncio.run(cache.get(cache_key("abc1234"))) is None

    def test_expired_record_is_not_cached(self, resolver, store, cache, clock):
        record = add_record(store, expires_at=clock() - timedelta(seconds=1))

        asyncio.run(resolver.populate(record))

        assert len(cache) == 0

    def test_sliding_ttl_is_applied(self, store, cache, clock):
        resolver = RedirectResolver(
            store, cache, default_ttl=timedelta(hours=1), sliding_ttl=timedelta(minutes=5), clock=clock
        )
        record = add_record(store)

        asyncio.run(resolver.populate(record))

        clock.advance(minutes=6)
        assert asyncio.run(cache.get(cache_key("abc1234"))) is None


class TestInvalidate:

    def test_removes_cache_before_store(self, db_session, clock):
        calls = []
        store = RecordingStore(db_session, calls)
        cache = RecordingCache(calls, clock=clock)
        resolver = RedirectResolver(store, cache, clock=clock)
        add_record(store)
        asyncio.run(resolver.resolve("abc1234"))

        asyncio.run(resolver.invalidate("abc1234"))

        assert calls == [("cache.remove", "url:abc1234"), ("store.delete", "abc1234")]
        assert asyncio.run(cache.get("url:abc1234")) is None
        assert store.get("abc1234") is None

    def test_unknown_code(self, resolver):
        with pytest.raises(NotFoundError):
            asyncio.run(resolver.invalidate("missing"))

    def test_second_invalidate_is_not_found(self, resolver, store):
        add_record(store)
        asyncio.run(resolver.invalidate("abc1234"))

        with pytest.raises(NotFoundError):
            asyncio.run(resolver.invalidate("abc1234"))
