"""
Short code reservation.

A code is only handed out after its record is committed, so every code a
caller receives already resolves. Uniqueness is never pre-checked: the
insert itself is the check, which keeps two concurrent requests for the
same alias from both succeeding.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError as PydanticValidationError

from shortlink_app.exceptions import CodeGenerationExhaustedError, ConflictError, ValidationError
from shortlink_app.models.url import ShortUrl
from shortlink_app.services.short_code_strategies import ShortCodeStrategy
from shortlink_app.storage.url_store import UrlStore
from shortlink_app.utils import ensure_utc

logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Aliases that would be shadowed by other routes
RESERVED_ALIASES = frozenset({"api", "health", "docs", "redoc", "openapi.json"})

_url_adapter = TypeAdapter(HttpUrl)


class ShortCodeGenerator:
    """
    Reserves short codes in the durable store.
    
    Two modes:
    - custom alias: validated, inserted once; a taken alias is a ConflictError
    - generated: candidates from the strategy, inserted until one sticks or
      the retry budget runs out
    """
    
    def __init__(
        self,
        store: UrlStore,
        strategy: ShortCodeStrategy,
        max_retries: int = 5,
        alias_min_length: int = 3,
        alias_max_length: int = 32,
        max_url_length: int = 2048,
    ):
        self.store = store
        self.strategy = strategy
        self.max_retries = max_retries
        self.alias_min_length = alias_min_length
        self.alias_max_length = alias_max_length
        self.max_url_length = max_url_length
    
    async def generate(
        self,
        original_url: str,
        custom_alias: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ShortUrl:
        """
        Reserve a short code for original_url and persist the record.
        
        Args:
            original_url: Absolute http(s) URL
            custom_alias: Caller-chosen code; generated when None
            expires_at: Optional instant after which the code stops resolving.
                        Past instants are accepted and resolve as expired.
        
        Returns:
            The committed ShortUrl record
        
        Raises:
            ValidationError: malformed URL or alias
            ConflictError: custom alias already taken
            CodeGenerationExhaustedError: no free generated code within max_retries
            StoreError: database failure
        """
        original_url = self.validate_url(original_url)
        expires_at = ensure_utc(expires_at)
        
        if custom_alias is not None:
            alias = self.validate_alias(custom_alias)
            # No fallback to a generated code: a taken alias is the caller's problem
            return self.store.add(self._new_record(alias, original_url, expires_at))
        
        for attempt in range(1, self.max_retries + 1):
            short_code = self.strategy.candidate()
            try:
                return self.store.add(self._new_record(short_code, original_url, expires_at))
            except ConflictError:
                logger.info("Short code collision on attempt %d/%d", attempt, self.max_retries)
        
        logger.error("Short code generation exhausted after %d attempts", self.max_retries)
        raise CodeGenerationExhaustedError(self.max_retries)
    
    def validate_url(self, original_url: str) -> str:
        """Return the URL unchanged if it is an absolute http(s) URL"""
        original_url = (original_url or "").strip()
        if not original_url:
            raise ValidationError("Original URL must not be empty")
        if len(original_url) > self.max_url_length:
            raise ValidationError(f"Original URL exceeds {self.max_url_length} characters")
        try:
            _url_adapter.validate_python(original_url)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid URL: {original_url}") from e
        return original_url
    
    def validate_alias(self, alias: str) -> str:
        alias = alias.strip()
        if not self.alias_min_length <= len(alias) <= self.alias_max_length:
            raise ValidationError(
                f"Custom short code must be {self.alias_min_length}-{self.alias_max_length} characters long"
            )
        if not ALIAS_PATTERN.match(alias):
            raise ValidationError("Custom short code may only contain letters, digits, '-' and '_'")
        if alias.lower() in RESERVED_ALIASES:
            raise ValidationError(f"'{alias}' is reserved")
        return alias
    
    @staticmethod
    def _new_record(short_code: str, original_url: str, expires_at: Optional[datetime]) -> ShortUrl:
        return ShortUrl(
            short_code=short_code,
            original_url=original_url,
            expires_at=expires_at,
            click_count=0,
        )
