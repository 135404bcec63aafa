import asyncio
import time
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from shortlink_app.exceptions import (
    AllocationExhaustedError,
    CodeTakenError,
    InvalidCodeError,
    InvalidUrlError,
    InvalidValidityError,
    OperationTimeoutError,
    StoreUnavailableError,
)
from shortlink_app.services.link_allocator import LinkAllocator
from shortlink_app.services.short_code_strategies import ShortCodeStrategy
from shortlink_app.store.strategies import InMemoryLinkStore, LinkStoreStrategy


class SequenceStrategy(ShortCodeStrategy):
    """Hands out a fixed sequence of codes, to force collisions"""

    def __init__(self, codes):
        self.codes = list(codes)
        self.calls = 0

    def generate(self) -> str:
        code = self.codes[min(self.calls, len(self.codes) - 1)]
        self.calls += 1
        return code


class SlowStore(InMemoryLinkStore):
    async def create_if_absent(self, link):
        await asyncio.sleep(1)
        return await super().create_if_absent(link)


def spy_store():
    """A mock store that records every call"""
    return AsyncMock(spec=LinkStoreStrategy)


class TestCreate:
    """Allocation through the in-memory and SQL stores"""

    def test_round_trip_with_validity(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://example.com/path", owner_id="u1", validity_minutes=30))
        stored = asyncio.run(store.get(link.code))

        assert stored.original_url == "https://example.com/path"
        assert stored.created_at == clock.now
        assert stored.expires_at == stored.created_at + timedelta(minutes=30)
        assert stored.clicks == 0
        assert stored.owner_id == "u1"

    def test_generated_code_shape(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://example.com", owner_id="u1"))

        assert len(link.code) == 6
        assert link.code.isalnum()

    def test_never_expires(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://example.com", owner_id="u1", validity_minutes="never"))

        assert link.expires_at is None
        assert asyncio.run(store.get(link.code)).expires_at is None

    def test_none_validity_means_never(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://example.com", owner_id="u1", validity_minutes=None))

        assert link.expires_at is None

    def test_custom_code(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://a.com", owner_id="u1", custom_code="mycode"))

        assert link.code == "mycode"
        assert asyncio.run(store.get("mycode")).original_url == "https://a.com"

    def test_custom_code_is_trimmed(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://a.com", owner_id="u1", custom_code="  my-code "))

        assert link.code == "my-code"

    def test_blank_custom_code_falls_back_to_generation(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://a.com", owner_id="u1", custom_code="   "))

        assert len(link.code) == 6

    def test_custom_code_taken(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)
        asyncio.run(allocator.create("https://a.com", owner_id="u1", custom_code="mycode"))

        with pytest.raises(CodeTakenError) as exc_info:
            asyncio.run(allocator.create("https://b.com", owner_id="u2", custom_code="mycode"))

        assert exc_info.value.code == "mycode"
        assert asyncio.run(store.get("mycode")).original_url == "https://a.com"

    def test_custom_code_taken_by_generated_code(self, store, clock):
        allocator = LinkAllocator(store, code_strategy=SequenceStrategy(["Xy12Ab"]), clock=clock)
        asyncio.run(allocator.create("https://a.com", owner_id="u1"))

        with pytest.raises(CodeTakenError):
            asyncio.run(allocator.create("https://b.com", owner_id="u1", custom_code="Xy12Ab"))

    def test_collision_redraws(self, store, clock):
        strategy = SequenceStrategy(["taken1", "taken1", "taken1", "free01"])
        allocator = LinkAllocator(store, code_strategy=strategy, clock=clock)
        first = asyncio.run(allocator.create("https://a.com", owner_id="u1"))

        second = asyncio.run(allocator.create("https://b.com", owner_id="u1"))

        assert first.code == "taken1"
        assert second.code == "free01"
        assert strategy.calls == 4

    def test_exhaustion(self, store, clock):
        strategy = SequenceStrategy(["same01"])
        allocator = LinkAllocator(store, code_strategy=strategy, max_attempts=5, clock=clock)
        asyncio.run(allocator.create("https://a.com", owner_id="u1"))
        strategy.calls = 0

        with pytest.raises(AllocationExhaustedError) as exc_info:
            asyncio.run(allocator.create("https://b.com", owner_id="u1"))

        assert exc_info.value.attempts == 5
        assert strategy.calls == 5

    def test_shortest_validity_expires_after_creation(self, store, clock):
        allocator = LinkAllocator(store, clock=clock)

        link = asyncio.run(allocator.create("https://a.com", owner_id="u1", validity_minutes=1))

        assert link.expires_at > link.created_at
        assert not link.is_expired(clock.now)


class TestValidationBeforeStore:
    """Bad input is rejected without touching the store"""

    def test_invalid_url(self):
        store = spy_store()
        allocator = LinkAllocator(store)

        with pytest.raises(InvalidUrlError):
            asyncio.run(allocator.create("not-a-url", owner_id="u1"))

        assert store.mock_calls == []

    def test_invalid_custom_code(self):
        store = spy_store()
        allocator = LinkAllocator(store)

        with pytest.raises(InvalidCodeError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1", custom_code="a b"))

        assert store.mock_calls == []

    def test_custom_code_too_long(self):
        store = spy_store()
        allocator = LinkAllocator(store)

        with pytest.raises(InvalidCodeError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1", custom_code="a" * 11))

        assert store.mock_calls == []

    def test_negative_validity(self):
        store = spy_store()
        allocator = LinkAllocator(store)

        with pytest.raises(InvalidValidityError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1", validity_minutes=-5))

        assert store.mock_calls == []

    def test_zero_validity(self):
        store = spy_store()
        allocator = LinkAllocator(store)

        with pytest.raises(InvalidValidityError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1", validity_minutes=0))

        assert store.mock_calls == []


class TestStoreFailures:

    def test_store_unavailable_propagates_without_retry(self):
        store = spy_store()
        store.create_if_absent.side_effect = StoreUnavailableError("down")
        allocator = LinkAllocator(store)

        with pytest.raises(StoreUnavailableError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1"))

        assert store.create_if_absent.await_count == 1

    def test_timeout(self):
        allocator = LinkAllocator(SlowStore())

        with pytest.raises(OperationTimeoutError):
            asyncio.run(allocator.create("https://example.com", owner_id="u1", timeout=0.05))

    def test_generous_timeout_succeeds(self, memory_store):
        allocator = LinkAllocator(memory_store)

        link = asyncio.run(allocator.create("https://example.com", owner_id="u1", timeout=5))

        assert asyncio.run(memory_store.get(link.code)) is not None

    def test_hung_sql_insert_times_out(self, sql_store, slow_sql, clock):
        slow_sql(0.5)
        allocator = LinkAllocator(sql_store, clock=clock)

        async def timed_create():
            start = time.perf_counter()
            with pytest.raises(OperationTimeoutError):
                await allocator.create("https://example.com", owner_id="u1", timeout=0.05)
            return time.perf_counter() - start

        assert asyncio.run(timed_create()) < 0.4
