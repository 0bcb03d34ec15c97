"""
Error taxonomy for the URL shortener.

Routes translate these into HTTP status codes; cache failures are the one
category that never reaches a route (see CacheBackendError).
"""


class ShortenerError(Exception):
    """Base class for all URL shortener errors"""


class ValidationError(ShortenerError):
    """Malformed original URL or custom alias (400)"""


class ConflictError(ShortenerError):
    """Short code already taken (409)"""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' is already in use")


class NotFoundError(ShortenerError):
    """Unknown short code (404)"""

    def __init__(self, short_code: str, message: str = None):
        self.short_code = short_code
        super().__init__(message or f"Short URL '{short_code}' not found")


class ExpiredError(NotFoundError):
    """Short code exists but its expiration date has passed (410)"""

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Short URL '{short_code}' has expired")


class CacheBackendError(ShortenerError):
    """
    Transient cache backend failure.
    
    Raised inside cache strategies only. Strategies log it and degrade to a
    miss, so callers never see it.
    """

    def __init__(self, operation: str, key: str, cause: BaseException = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {type(cause).__name__}: {cause}" if cause is not None else ""
        super().__init__(f"Cache {operation} failed for key '{key}'{detail}")


class StoreError(ShortenerError):
    """Durable store failure (500). Not retried by the cache layer."""


class CodeGenerationExhaustedError(ShortenerError):
    """No free short code found within the retry budget (500)"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate unique short code after {attempts} attempts")
