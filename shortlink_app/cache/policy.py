"""
Expiration policy carried by every cache write.

An entry may have an absolute instant, a sliding window, both, or neither.
When both are set, whichever fires first wins.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from shortlink_app.utils import ensure_utc, utcnow


@dataclass(frozen=True)
class ExpirationPolicy:
    absolute_expiration: Optional[datetime] = None
    sliding_expiration: Optional[timedelta] = None

    def __post_init__(self):
        if self.sliding_expiration is not None and self.sliding_expiration <= timedelta(0):
            raise ValueError("sliding_expiration must be positive")
        # Normalize to aware UTC so comparisons never mix naive and aware values
        object.__setattr__(self, "absolute_expiration", ensure_utc(self.absolute_expiration))

    @classmethod
    def relative(
        cls,
        ttl: timedelta,
        sliding: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> "ExpirationPolicy":
        """Absolute expiration ttl from now, plus an optional sliding window"""
        now = now or utcnow()
        return cls(absolute_expiration=now + ttl, sliding_expiration=sliding)

    def capped_at(self, instant: Optional[datetime]) -> "ExpirationPolicy":
        """
        Return a policy that never outlives instant.
        
        Used to keep a cached copy from living longer than the record it
        was taken from.
        """
        if instant is None:
            return self
        instant = ensure_utc(instant)
        if self.absolute_expiration is not None and self.absolute_expiration <= instant:
            return self
        return ExpirationPolicy(absolute_expiration=instant, sliding_expiration=self.sliding_expiration)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.absolute_expiration is None:
            return False
        return self.absolute_expiration <= (now or utcnow())

    def time_to_live(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """
        Initial lifetime of an entry written at now.
        
        Returns None when the entry never expires. May be zero or negative
        when the absolute instant has already passed.
        """
        windows = []
        if self.sliding_expiration is not None:
            windows.append(self.sliding_expiration)
        if self.absolute_expiration is not None:
            windows.append(self.absolute_expiration - (now or utcnow()))
        return min(windows) if windows else None
