"""
Short code generation strategies.
Uses Strategy Pattern so the allocator can be handed any code source.
"""

import secrets
import string
from abc import ABC, abstractmethod


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    def generate(self) -> str:
        """
        Produce one candidate short code.

        Candidates are not guaranteed unique; the allocator checks them
        against the store with create-if-absent.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Uniform random codes over A-Z, a-z, 0-9.

    62^6 ≈ 5.6e10 codes at the default length, so collisions stay rare
    at realistic table sizes. Holds no mutable state and is safe to call
    from any number of concurrent requests.
    """

    ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

    def __init__(self, length: int = 6):
        if length < 1:
            raise ValueError(f"Short code length must be positive, got {length}")
        self.length = length

    def generate(self) -> str:
        """Generate a random string of the configured length"""
        return ''.join(secrets.choice(self.ALPHABET) for _ in range(self.length))
