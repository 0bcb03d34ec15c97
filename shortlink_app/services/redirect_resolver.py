"""
Cache-aside resolution of short codes.

The cache is a disposable projection of the store: losing an entry only
costs a miss, and a cached copy never outlives the record it came from.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from shortlink_app.cache.policy import ExpirationPolicy
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.exceptions import ExpiredError, NotFoundError
from shortlink_app.models.url import ShortUrl
from shortlink_app.schemas.cache import CachedUrl, decode_cached_url, encode_cached_url
from shortlink_app.storage.url_store import UrlStore
from shortlink_app.utils import is_expired, utcnow

logger = logging.getLogger(__name__)


def cache_key(short_code: str) -> str:
    return f"url:{short_code}"


class RedirectResolver:
    """
    Resolves short codes through the cache, falling back to the store.
    
    Holds no locks: concurrent resolves of the same code may both miss and
    both populate the cache, and the last write wins. Both writes carry
    the same record, so that is harmless.
    """
    
    def __init__(
        self,
        store: UrlStore,
        cache: CacheStrategy,
        default_ttl: timedelta = timedelta(hours=1),
        sliding_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: Durable store (system of record)
            cache: Cache instance selected at startup
            default_ttl: Upper bound on how long an entry may live in the cache
            sliding_ttl: Optional idle timeout for cache entries
            clock: Source of the current UTC time
        """
        self.store = store
        self.cache = cache
        self.default_ttl = default_ttl
        self.sliding_ttl = sliding_ttl
        self.clock = clock
    
    async def resolve(self, short_code: str) -> str:
        """
        Get the original URL for short_code.
        
        Flow:
        1. Check cache first; a cached copy past its expires_at is ignored
        2. On miss, read the store
        3. Populate the cache for next time
        
        Raises:
            NotFoundError: unknown short code
            ExpiredError: record exists but has expired
            StoreError: database failure
        """
        key = cache_key(short_code)
        now = self.clock()
        
        raw = await self.cache.get(key)
        if raw is not None:
            entry = decode_cached_url(raw)
            if entry is not None and not entry.is_expired(now):
                return entry.original_url
            # Stale or unreadable: drop it and go to the store
            await self.cache.remove(key)
        
        record = self.store.get(short_code)
        if record is None:
            raise NotFoundError(short_code)
        if is_expired(record.expires_at, now):
            raise ExpiredError(short_code)
        
        await self.populate(record)
        return record.original_url
    
    async def populate(self, record: ShortUrl) -> None:
        """
        Cache record for at most default_ttl and never past its expires_at.
        
        Expired records are not cached.
        """
        now = self.clock()
        if is_expired(record.expires_at, now):
            return
        
        policy = ExpirationPolicy.relative(
            self.default_ttl, sliding=self.sliding_ttl, now=now
        ).capped_at(record.expires_at)
        payload = encode_cached_url(CachedUrl.from_record(record))
        await self.cache.set(cache_key(record.short_code), payload, policy)
    
    async def invalidate(self, short_code: str) -> None:
        """
        Delete short_code everywhere.
        
        The cache entry goes first. If the process dies between the two
        steps the record survives uncached instead of a deleted record
        staying cached.
        
        Raises:
            NotFoundError: short_code was not in the store
            StoreError: database failure
        """
        await self.cache.remove(cache_key(short_code))
        if not self.store.delete(short_code):
            raise NotFoundError(short_code)
        logger.info("Deleted short code %s", short_code)
