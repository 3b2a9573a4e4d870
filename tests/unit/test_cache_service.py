"""
Unit tests for TTLCache.
"""

from services.cache_service import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestTTLCache:

    def test_get_returns_value_before_expiry(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl_seconds=10)

        clock.advance(9.9)

        assert cache.get("a") == 1

    def test_entry_expires_at_ttl(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl_seconds=10)

        clock.advance(10)

        assert cache.get("a") is None
        assert len(cache) == 0

    def test_missing_key_returns_none(self):
        assert TTLCache().get("nope") is None

    def test_set_overwrites_and_resets_ttl(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl_seconds=10)
        clock.advance(8)
        cache.set("a", 2, ttl_seconds=10)
        clock.advance(8)

        assert cache.get("a") == 2

    def test_delete_prefix_only_drops_matching_keys(self):
        cache = TTLCache()
        cache.set("forecast:p1:30", "x", 60)
        cache.set("forecast:p2:30", "y", 60)
        cache.set("history:365", "z", 60)

        removed = cache.delete_prefix("forecast:")

        assert removed == 2
        assert cache.get("history:365") == "z"
        assert cache.get("forecast:p1:30") is None

    def test_delete_and_clear(self):
        cache = TTLCache()
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)

        cache.delete("a")
        assert cache.get("a") is None
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    def test_zero_ttl_is_never_served(self):
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1, ttl_seconds=0)

        assert cache.get("a") is None
