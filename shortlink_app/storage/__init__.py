"""
Durable storage for short URL records.
"""

from .url_store import UrlStore, SQLAlchemyUrlStore

__all__ = [
    "UrlStore",
    "SQLAlchemyUrlStore",
]
