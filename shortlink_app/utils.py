"""
Time helpers.

All instants in the service are timezone-aware UTC. SQLite returns naive
datetimes even for DateTime(timezone=True) columns, so values read back from
the store go through ensure_utc().
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and convert aware ones to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when expires_at is set and not in the future"""
    if expires_at is None:
        return False
    now = now or utcnow()
    return ensure_utc(expires_at) <= now
