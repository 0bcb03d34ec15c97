"""
Cache module for URL shortener.
Implements Strategy Pattern for interchangeable cache backends.
"""

from .policy import ExpirationPolicy
from .strategies import CacheStrategy, RedisCache, InMemoryCache
from .factory import BackendMode, CacheFactory

__all__ = [
    "ExpirationPolicy",
    "CacheStrategy",
    "RedisCache",
    "InMemoryCache",
    "BackendMode",
    "CacheFactory",
]
