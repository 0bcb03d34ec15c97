"""
Short code candidate strategies for URL shortener.
Uses Strategy Pattern to allow different generation algorithms.

Strategies only propose candidates. Whether a candidate is free is decided
by the store's unique constraint when the record is inserted.
"""

import secrets
import string
import uuid
from abc import ABC, abstractmethod


BASE62_CHARS = string.digits + string.ascii_lowercase + string.ascii_uppercase


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""
    
    def __init__(self, length: int = 7):
        if length < 1:
            raise ValueError("Short code length must be at least 1")
        self.length = length
        self.characters = BASE62_CHARS
    
    @abstractmethod
    def candidate(self) -> str:
        """
        Propose a short code.
        
        Returns:
            A string of exactly self.length characters from self.characters
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random generation strategy.
    Draws every character independently from a CSPRNG.
    
    Pros: Unpredictable, uniform over the whole code space
    Cons: Collisions possible (resolved by retrying on insert)
    
    With the default length of 7 there are 62^7 (~3.5 trillion) codes, so
    even with ten million stored links a single candidate collides with
    probability ~3e-6.
    """
    
    def candidate(self) -> str:
        """Generate a random string of the configured length"""
        return ''.join(secrets.choice(self.characters) for _ in range(self.length))


class UUIDShortCodeStrategy(ShortCodeStrategy):
    """
    UUID-derived strategy.
    Encodes a uuid4 in Base62 and keeps its last `length` characters.
    
    Pros: Uses the platform's UUID source
    Cons: Same collision profile as the random strategy
    """
    
    def candidate(self) -> str:
        encoded = self._base62_encode(uuid.uuid4().int)
        # A 122-bit random number is always long enough; pad for tiny values anyway
        return encoded[-self.length:].rjust(self.length, self.characters[0])
    
    def _base62_encode(self, number: int) -> str:
        """
        Convert integer to Base62 string.
        
        Base62 uses: 0-9 (10) + a-z (26) + A-Z (26) = 62 characters
        This is more compact than Base10 and URL-safe.
        """
        if number == 0:
            return self.characters[0]
        
        result = ""
        while number > 0:
            result = self.characters[number % 62] + result
            number //= 62
        
        return result
