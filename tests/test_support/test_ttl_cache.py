"""Tests for TTLCache."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from evidence_trust.cache.ttl_cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for expiry, eviction and statistics."""

    def test_get_and_set(self):
        cache: TTLCache[int] = TTLCache(ttl_seconds=10)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert "a" in cache
        assert len(cache) == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache: TTLCache[int] = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.now = 10.5
        assert cache.get("a") is None
        assert "a" not in cache

    def test_oldest_inserted_is_evicted(self):
        cache: TTLCache[int] = TTLCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")  # reads do not refresh position
        cache.set("c", 3)
        assert "a" not in cache
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_reinsert_moves_key_to_newest(self):
        cache: TTLCache[int] = TTLCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)
        assert "b" not in cache
        assert cache.get("a") == 10

    def test_stats_and_clear(self):
        cache: TTLCache[int] = TTLCache(ttl_seconds=5, max_size=3)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)
        assert stats.hit_rate == pytest.approx(0.5)

        cache.clear()
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TTLCache(max_size=0)

    def test_resize_evicts_oldest_and_applies_ttl(self):
        clock = FakeClock()
        cache: TTLCache[int] = TTLCache(ttl_seconds=60, max_size=3, clock=clock)
        for i, key in enumerate("abc"):
            cache.set(key, i)

        cache.resize(ttl_seconds=5, max_size=1)
        assert len(cache) == 1
        assert "c" in cache
        assert cache.stats().max_size == 1

        clock.now = 5.5
        assert cache.get("c") is None
        with pytest.raises(ValueError):
            cache.resize(ttl_seconds=5, max_size=0)

    def test_concurrent_writers_respect_bound(self):
        cache: TTLCache[int] = TTLCache(max_size=50)
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda i: cache.set(f"k{i}", i), range(500)))
        assert len(cache) == 50
