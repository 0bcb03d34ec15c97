"""
Cache strategies using Strategy Pattern.
Two interchangeable backends behind one async contract:
Redis (distributed) and an in-process fallback.

Both are pure byte stores: they never look inside the values they hold.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from cachetools import LRUCache
from redis.exceptions import RedisError

from shortlink_app.cache.policy import ExpirationPolicy
from shortlink_app.exceptions import CacheBackendError
from shortlink_app.utils import utcnow

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.
    
    This is the Strategy Pattern interface - the resolver talks to this
    contract only and never knows which backend was wired at startup.
    
    All methods are async because the distributed backend does network I/O.
    No method raises on a backend failure: get() degrades to a miss and the
    mutators degrade to no-ops, after logging the failure.
    
    The optional timeout (seconds) bounds a single call; backends that can
    block give up after it and report a miss.
    """
    
    @abstractmethod
    async def get(self, key: str, timeout: Optional[float] = None) -> Optional[bytes]:
        """
        Get value from cache.
        
        Reading an entry with a sliding window counts as an access and
        resets its sliding clock.
        
        Returns:
            Cached bytes or None on miss, expiry or backend failure
        """
        pass
    
    @abstractmethod
    async def set(
        self,
        key: str,
        value: bytes,
        policy: ExpirationPolicy,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Store value under key, replacing any existing entry and its clock.
        
        A policy whose absolute expiration already passed removes the key.
        """
        pass
    
    @abstractmethod
    async def remove(self, key: str, timeout: Optional[float] = None) -> None:
        """Remove key. Removing an absent key is not an error."""
        pass
    
    @abstractmethod
    async def refresh(self, key: str, timeout: Optional[float] = None) -> None:
        """
        Reset the sliding clock of key without touching its value.
        
        No-op when the key is absent or has no sliding window.
        """
        pass

    async def close(self) -> None:
        """Release backend resources (called once at shutdown)"""
        return None


def _to_millis(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def _epoch_millis(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


class RedisCache(CacheStrategy):
    """
    Redis cache implementation (distributed backend).
    
    Entry layout - one hash per key:
        data    raw bytes
        absexp  absolute expiration, epoch milliseconds (-1 if unset)
        sldexp  sliding window, milliseconds (-1 if unset)
    
    The Redis TTL of the hash is the current window of the entry, so Redis
    evicts it on its own. get() and refresh() re-arm the TTL for sliding
    entries, never past absexp.
    
    Every call runs under a timeout. Timeouts and connection errors are
    logged and absorbed: the caller sees a miss and falls through to the
    durable store. An entry that outlives Redis' view of it is harmless,
    losing one only costs a miss.
    """
    
    DATA_FIELD = "data"
    ABSOLUTE_FIELD = "absexp"
    SLIDING_FIELD = "sldexp"
    NOT_PRESENT = -1
    
    def __init__(
        self,
        redis_client,
        instance_name: str = "",
        operation_timeout: float = 0.5,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize Redis cache.
        
        Args:
            redis_client: redis.asyncio.Redis instance (decode_responses=False)
            instance_name: Prefix isolating this service's keys
            operation_timeout: Default per-call timeout in seconds
            clock: Source of the current UTC time
        """
        self.redis = redis_client
        self.instance_name = instance_name
        self.operation_timeout = operation_timeout
        self.clock = clock
    
    def _key(self, key: str) -> str:
        return f"{self.instance_name}:{key}" if self.instance_name else key
    
    async def _execute(self, operation: str, key: str, awaitable: Awaitable, timeout: Optional[float]):
        """Run one backend call under a timeout, normalizing failures"""
        if timeout is None:
            timeout = self.operation_timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        # ValueError: hash fields that are not integers (foreign or corrupt entry)
        except (asyncio.TimeoutError, RedisError, OSError, ValueError) as e:
            raise CacheBackendError(operation, key, e) from e
    
    async def get(self, key: str, timeout: Optional[float] = None) -> Optional[bytes]:
        try:
            return await self._execute("get", key, self._read(self._key(key)), timeout)
        except CacheBackendError as e:
            logger.warning("%s; treating as cache miss", e)
            return None
    
    async def set(
        self,
        key: str,
        value: bytes,
        policy: ExpirationPolicy,
        timeout: Optional[float] = None,
    ) -> None:
        try:
            await self._execute("set", key, self._write(self._key(key), value, policy), timeout)
        except CacheBackendError as e:
            logger.warning("%s; entry not cached", e)
    
    async def remove(self, key: str, timeout: Optional[float] = None) -> None:
        try:
            await self._execute("remove", key, self.redis.delete(self._key(key)), timeout)
        except CacheBackendError as e:
            logger.warning("%s", e)
    
    async def refresh(self, key: str, timeout: Optional[float] = None) -> None:
        try:
            await self._execute("refresh", key, self._refresh(self._key(key)), timeout)
        except CacheBackendError as e:
            logger.warning("%s", e)
    
    async def close(self) -> None:
        await self.redis.aclose()
    
    async def _read(self, redis_key: str) -> Optional[bytes]:
        absolute, sliding, data = await self.redis.hmget(
            redis_key, self.ABSOLUTE_FIELD, self.SLIDING_FIELD, self.DATA_FIELD
        )
        if data is None:
            return None
        
        absolute_ms = int(absolute) if absolute is not None else self.NOT_PRESENT
        sliding_ms = int(sliding) if sliding is not None else self.NOT_PRESENT
        now_ms = _epoch_millis(self.clock())
        
        # Redis expires keys on its own, but only to the millisecond it was told
        if absolute_ms != self.NOT_PRESENT and absolute_ms <= now_ms:
            return None
        if sliding_ms != self.NOT_PRESENT:
            await self._rearm(redis_key, absolute_ms, sliding_ms, now_ms)
        return data
    
    async def _write(self, redis_key: str, value: bytes, policy: ExpirationPolicy) -> None:
        ttl = policy.time_to_live(self.clock())
        if ttl is not None and ttl <= timedelta(0):
            await self.redis.delete(redis_key)
            return
        
        absolute_ms = (
            _epoch_millis(policy.absolute_expiration)
            if policy.absolute_expiration is not None
            else self.NOT_PRESENT
        )
        sliding_ms = (
            _to_millis(policy.sliding_expiration)
            if policy.sliding_expiration is not None
            else self.NOT_PRESENT
        )
        
        # Value, metadata and TTL change together
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                redis_key,
                mapping={
                    self.DATA_FIELD: value,
                    self.ABSOLUTE_FIELD: absolute_ms,
                    self.SLIDING_FIELD: sliding_ms,
                },
            )
            if ttl is None:
                pipe.persist(redis_key)
            else:
                pipe.pexpire(redis_key, max(_to_millis(ttl), 1))
            await pipe.execute()
    
    async def _refresh(self, redis_key: str) -> None:
        absolute, sliding = await self.redis.hmget(redis_key, self.ABSOLUTE_FIELD, self.SLIDING_FIELD)
        if sliding is None or int(sliding) == self.NOT_PRESENT:
            return
        absolute_ms = int(absolute) if absolute is not None else self.NOT_PRESENT
        await self._rearm(redis_key, absolute_ms, int(sliding), _epoch_millis(self.clock()))
    
    async def _rearm(self, redis_key: str, absolute_ms: int, sliding_ms: int, now_ms: int) -> None:
        ttl_ms = sliding_ms
        if absolute_ms != self.NOT_PRESENT:
            ttl_ms = min(ttl_ms, absolute_ms - now_ms)
        if ttl_ms > 0:
            await self.redis.pexpire(redis_key, ttl_ms)


@dataclass
class _LocalEntry:
    value: bytes
    absolute_expiration: Optional[datetime]
    sliding_expiration: Optional[timedelta]
    last_access: datetime
    
    def is_expired(self, now: datetime) -> bool:
        if self.absolute_expiration is not None and now >= self.absolute_expiration:
            return True
        if self.sliding_expiration is not None and now - self.last_access >= self.sliding_expiration:
            return True
        return False


class InMemoryCache(CacheStrategy):
    """
    In-process cache implementation (local fallback backend).
    
    Wired when no Redis is configured or Redis is unreachable at startup.
    Same contract and expiration semantics as RedisCache:
    - absolute expiration maps to an absolute instant on the entry
    - sliding expiration maps to a window measured from the last access
    
    Expired entries are dropped lazily, when touched. With max_entries set,
    the least recently used entry is evicted to make room.
    
    Cons:
    - Not distributed (each process has its own cache)
    - Lost on restart
    
    Note: Async for interface consistency, but operations are instant.
    None of the coroutines ever suspend. A lock guards the table so the
    instance can also be shared with threadpool code.
    """
    
    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize in-memory cache.
        
        Args:
            max_entries: Upper bound on stored entries (None for unbounded)
            clock: Source of the current UTC time
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.clock = clock
        # LRUCache evicts the least recently used entry once maxsize is reached
        self._entries = LRUCache(maxsize=max_entries if max_entries is not None else math.inf)
        self._lock = threading.Lock()
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
    
    async def get(self, key: str, timeout: Optional[float] = None) -> Optional[bytes]:
        """Get value from memory (instant, but async for interface)"""
        now = self.clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                return None
            entry.last_access = now
            return entry.value
    
    async def set(
        self,
        key: str,
        value: bytes,
        policy: ExpirationPolicy,
        timeout: Optional[float] = None,
    ) -> None:
        """Set value in memory (instant, but async for interface)"""
        now = self.clock()
        with self._lock:
            if policy.is_expired(now):
                self._entries.pop(key, None)
                return
            self._entries[key] = _LocalEntry(
                value=value,
                absolute_expiration=policy.absolute_expiration,
                sliding_expiration=policy.sliding_expiration,
                last_access=now,
            )
    
    async def remove(self, key: str, timeout: Optional[float] = None) -> None:
        """Delete key from memory (instant, but async for interface)"""
        with self._lock:
            self._entries.pop(key, None)
    
    async def refresh(self, key: str, timeout: Optional[float] = None) -> None:
        """Reset the sliding clock (instant, but async for interface)"""
        now = self.clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is not None and entry.sliding_expiration is not None:
                entry.last_access = now
    
    def _live_entry(self, key: str, now: datetime) -> Optional[_LocalEntry]:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._entries[key]
            return None
        return entry
