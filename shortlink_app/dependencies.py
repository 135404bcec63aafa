"""
FastAPI dependencies for dependency injection.

One link store per process, built from settings on first use. Services
are cheap and created per request with the store and clock injected.

Tests swap the store by overriding ``get_link_store`` and control time
by overriding ``get_clock``.
"""

from functools import lru_cache

from fastapi import Depends

from shortlink_app.config import settings
from shortlink_app.services.link_allocator import Clock, LinkAllocator, utc_now
from shortlink_app.services.link_resolver import LinkResolver
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy
from shortlink_app.store.factory import LinkStoreFactory, LinkStoreBackend
from shortlink_app.store.strategies import LinkStoreStrategy


@lru_cache()
def get_link_store() -> LinkStoreStrategy:
    """
    Get link store instance (singleton).

    @lru_cache ensures the store (and its connection pool) is built once.
    """
    backend = LinkStoreBackend(settings.link_store_backend)
    return LinkStoreFactory.create(backend, settings)


def get_clock() -> Clock:
    return utc_now


def get_allocator(
    store: LinkStoreStrategy = Depends(get_link_store),
    clock: Clock = Depends(get_clock)
) -> LinkAllocator:
    return LinkAllocator(
        store=store,
        code_strategy=RandomShortCodeStrategy(length=settings.short_code_length),
        max_attempts=settings.max_allocation_attempts,
        clock=clock,
    )


def get_resolver(
    store: LinkStoreStrategy = Depends(get_link_store),
    clock: Clock = Depends(get_clock)
) -> LinkResolver:
    return LinkResolver(store=store, clock=clock)
