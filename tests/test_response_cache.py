"""
Tests for ResponseCache TTL semantics and the background sweeper.
"""

import asyncio

import pytest

from eurotir.src.core.response_cache import ResponseCache


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(ttl_seconds=300, sweep_interval=60, clock=clock)


class TestResponseCache:

    def test_miss_on_empty(self, cache):
        assert cache.get("hello") is None

    def test_set_then_get_returns_same_object(self, cache):
        value = {"answer": "hi"}
        cache.set("hello", value)
        assert cache.get("hello") is value

    def test_entry_valid_up_to_ttl(self, cache, clock):
        cache.set("hello", "hi")
        clock.advance(300)
        assert cache.get("hello") == "hi"

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set("hello", "hi")
        clock.advance(301)
        assert cache.get("hello") is None
        assert len(cache) == 0

    def test_overwrite_resets_timestamp(self, cache, clock):
        cache.set("hello", "old")
        clock.advance(200)
        cache.set("hello", "new")
        clock.advance(200)
        assert cache.get("hello") == "new"

    def test_sweep_removes_only_expired(self, cache, clock):
        cache.set("old", 1)
        clock.advance(200)
        cache.set("fresh", 2)
        clock.advance(150)
        assert cache.sweep() == 1
        assert "fresh" in cache
        assert "old" not in cache

    def test_invalidate_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0


class TestSweeper:

    def test_start_and_stop(self):
        cache = ResponseCache(ttl_seconds=300, sweep_interval=60)

        async def scenario():
            cache.start()
            assert cache.is_sweeping
            cache.start()
            await cache.stop()
            assert not cache.is_sweeping

        asyncio.run(scenario())

    def test_sweeper_evicts_in_background(self, clock):
        cache = ResponseCache(ttl_seconds=1, sweep_interval=0.01, clock=clock)

        async def scenario():
            cache.set("a", 1)
            clock.advance(5)
            cache.start()
            for _ in range(100):
                if len(cache) == 0:
                    break
                await asyncio.sleep(0.01)
            await cache.stop()

        asyncio.run(scenario())
        assert len(cache) == 0

    def test_stop_without_start_is_noop(self, cache):
        asyncio.run(cache.stop())
        assert not cache.is_sweeping
