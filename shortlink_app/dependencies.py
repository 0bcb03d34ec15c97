"""
FastAPI dependencies for dependency injection.

The cache instance is built once by CacheFactory in the application
lifespan and kept on app.state; every request receives that same
instance. Nothing on the request path decides which backend to use.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (inject mocks)
- One backend decision per process
"""

from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.services.short_code_factory import ShortCodeFactory
from shortlink_app.services.short_code_generator import ShortCodeGenerator
from shortlink_app.services.url_service import URLService
from shortlink_app.storage.url_store import SQLAlchemyUrlStore


def get_cache(request: Request) -> CacheStrategy:
    """
    Get the process-wide cache instance.
    
    Returns:
        CacheStrategy selected at startup
    """
    return request.app.state.cache


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
) -> URLService:
    """
    Get URLService with all dependencies injected.
    
    - Controller depends on service
    - Service depends on infrastructure (store, cache)
    """
    store = SQLAlchemyUrlStore(db)
    generator = ShortCodeGenerator(
        store,
        ShortCodeFactory.create_strategy(),
        max_retries=settings.short_code_max_retries,
        alias_min_length=settings.custom_code_min_length,
        alias_max_length=settings.custom_code_max_length,
        max_url_length=settings.max_url_length,
    )
    sliding = timedelta(seconds=settings.cache_sliding_ttl) if settings.cache_sliding_ttl else None
    resolver = RedirectResolver(
        store,
        cache,
        default_ttl=timedelta(seconds=settings.cache_ttl),
        sliding_ttl=sliding,
    )
    return URLService(store=store, generator=generator, resolver=resolver)
