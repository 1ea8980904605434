"""
PlazaNetInsights - Result Cache Tests

Tests the in-memory TTL cache with an injected clock.
"""

import threading

import pytest

from plazanet.cache.result_cache import CacheTTLPolicy, NullCache, ResultCache


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestResultCache:
    """Tests for ResultCache."""

    @pytest.fixture
    def clock(self):
        """Create a fake clock."""
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        """Create a cache on the fake clock."""
        return ResultCache(CacheTTLPolicy(fast=120, trend=300, narrative=None), clock=clock)

    def test_set_then_get_hits(self, cache):
        """Test that an immediate read returns the value."""
        cache.set("site-capacity:all", {"sites": []}, ttl=60)
        assert cache.get("site-capacity:all") == ({"sites": []}, True)

    def test_miss_on_absent_key(self, cache):
        """Test that an unknown key misses."""
        assert cache.get("nothing") == (None, False)

    def test_expires_after_ttl(self, cache, clock):
        """Test lazy expiry strictly after expires_at."""
        cache.set("k", "v", ttl=60)
        clock.advance(60)
        assert cache.get("k") == ("v", True)
        clock.advance(0.001)
        assert cache.get("k") == (None, False)
        assert cache.get_stats()["entries"] == 0

    def test_data_class_defaults(self, cache, clock):
        """Test per-class default TTLs."""
        cache.set("fast", 1)
        cache.set("trend", 2, data_class="trend")
        cache.set("narrative", 3, data_class="narrative")

        assert cache.get_time_remaining("fast") == pytest.approx(120)
        assert cache.get_time_remaining("trend") == pytest.approx(300)
        assert cache.get_time_remaining("narrative") == float("inf")

        clock.advance(10_000)
        assert cache.get("fast")[1] is False
        assert cache.get("trend")[1] is False
        assert cache.get("narrative") == (3, True)

    def test_set_overwrites(self, cache):
        """Test that set replaces the previous value."""
        cache.set("k", "old")
        cache.set("k", "new")
        assert cache.get("k") == ("new", True)
        assert cache.get_stats()["entries"] == 1

    def test_invalidate_by_key_and_prefix(self, cache):
        """Test both invalidation modes."""
        cache.set("critical-sites:10:75", 1)
        cache.set("critical-sites:5:80", 2)
        cache.set("cost-analysis:monthly", 3)

        assert cache.invalidate(key="cost-analysis:monthly") == 1
        assert cache.invalidate(key="cost-analysis:monthly") == 0
        assert cache.invalidate(prefix="critical-sites:") == 2
        assert cache.get_stats()["entries"] == 0

    def test_invalidate_requires_argument(self, cache):
        """Test that a bare invalidate is rejected."""
        with pytest.raises(ValueError):
            cache.invalidate()

    def test_stats_counters(self, cache):
        """Test hit/miss counters and prefix counts."""
        cache.set("telemetry:devices", [])
        cache.get("telemetry:devices")
        cache.get("missing")
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["keys"] == {"telemetry": 1}

    def test_concurrent_writers(self, cache):
        """Test that concurrent set/get from threads keeps one value per key."""
        def worker(index):
            for _ in range(200):
                cache.set(f"k{index % 4}", index)
                cache.get(f"k{index % 4}")

        threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cache.get_stats()["entries"] == 4


class TestNullCache:
    """Tests for NullCache."""

    def test_never_stores(self):
        """Test that the null cache always misses."""
        cache = NullCache()
        cache.set("k", "v")
        assert cache.get("k") == (None, False)
        assert cache.invalidate(prefix="k") == 0
        assert cache.is_enabled() is False
