"""
Database models for URL shortener.

Only the short URL mapping is persisted; cache entries are disposable
projections of these rows.
"""

from .url import ShortUrl

__all__ = ["ShortUrl"]
