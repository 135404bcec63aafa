"""
Link store module.

Implements the Strategy Pattern for the persistent link store: every
backend offers atomic create-if-absent and atomic click increment.
"""

from .models import ShortLink
from .strategies import LinkStoreStrategy, SQLLinkStore, RedisLinkStore, InMemoryLinkStore
from .factory import LinkStoreFactory, LinkStoreBackend

__all__ = [
    "ShortLink",
    "LinkStoreStrategy",
    "SQLLinkStore",
    "RedisLinkStore",
    "InMemoryLinkStore",
    "LinkStoreFactory",
    "LinkStoreBackend",
]
