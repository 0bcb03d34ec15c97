"""
Factory for creating the process-wide cache instance.

The backend is chosen once, at startup, and never re-evaluated: a Redis
server that goes away later keeps being called and its failures are
absorbed by RedisCache as misses.
"""

import logging
from enum import Enum
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .strategies import CacheStrategy, RedisCache, InMemoryCache
from shortlink_app.config import settings

logger = logging.getLogger(__name__)


class BackendMode(Enum):
    """Which cache backend is wired for the lifetime of the process"""
    DISTRIBUTED = "distributed"
    LOCAL_FALLBACK = "local_fallback"


class CacheFactory:
    """
    Simple factory for creating cache instances.
    
    Uses Singleton Pattern - creates instance once, reuses it.
    Gets configuration from settings (not passed as parameters).
    """
    
    _instance: Optional[CacheStrategy] = None  # Single cached instance
    _mode: Optional[BackendMode] = None
    
    @classmethod
    async def create(cls) -> CacheStrategy:
        """
        Create or return cached cache instance.
        
        Redis is wired when redis_url is configured and the server answers
        PING; otherwise the in-memory fallback is wired.
        
        Returns:
            Singleton cache instance
        """
        # Return cached instance if exists
        if cls._instance is not None:
            return cls._instance
        
        if settings.redis_url:
            cls._instance = await cls._create_redis_cache(settings.redis_url)
        else:
            logger.info("No Redis URL configured")
        
        if cls._instance is not None:
            cls._mode = BackendMode.DISTRIBUTED
            logger.info("Redis cache initialized")
        else:
            cls._instance = InMemoryCache(max_entries=settings.local_cache_max_entries)
            cls._mode = BackendMode.LOCAL_FALLBACK
            logger.info("In-memory cache initialized (fallback)")
        
        return cls._instance
    
    @classmethod
    async def _create_redis_cache(cls, redis_url: str) -> Optional[RedisCache]:
        client = None
        try:
            client = aioredis.from_url(
                redis_url,
                decode_responses=False,
                socket_connect_timeout=settings.cache_connect_timeout,
                socket_timeout=settings.cache_connect_timeout,
            )
            # Test connection immediately
            await client.ping()
        except (RedisError, OSError, ValueError) as e:
            logger.warning("Redis connection failed: %s. Falling back to in-memory cache", e)
            if client is not None:
                await client.aclose()
            return None
        
        return RedisCache(
            client,
            instance_name=settings.cache_instance_name,
            operation_timeout=settings.cache_timeout,
        )
    
    @classmethod
    def mode(cls) -> Optional[BackendMode]:
        """Backend chosen at startup (None before create() ran)"""
        return cls._mode
    
    @classmethod
    async def close(cls):
        """Release the backend at shutdown"""
        if cls._instance is not None:
            await cls._instance.close()
        cls.clear_instance()
    
    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
        cls._mode = None
