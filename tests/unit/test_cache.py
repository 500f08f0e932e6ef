"""Unit tests for the provider response cache."""

from app.services.ifsc_client.cache import TTLCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTTLCache:
    """Test the TTLCache class."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = TTLCache(60, clock=self.clock)

    def test_hit_within_ttl(self):
        self.cache.set("url", {"id": 1})
        self.clock.now += 59

        assert self.cache.get("url") == {"id": 1}

    def test_expired_entry_is_evicted_on_read(self):
        self.cache.set("url", {"id": 1})
        self.clock.now += 60

        assert self.cache.get("url") is None
        assert len(self.cache) == 0

    def test_expired_entries_stay_until_read(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.clock.now += 120

        assert len(self.cache) == 2
        self.cache.get("a")
        assert len(self.cache) == 1

    def test_set_refreshes_expiry(self):
        self.cache.set("url", 1)
        self.clock.now += 50
        self.cache.set("url", 2)
        self.clock.now += 50

        assert self.cache.get("url") == 2

    def test_zero_ttl_disables_caching(self):
        cache = TTLCache(0, clock=self.clock)
        cache.set("url", 1)

        assert cache.get("url") is None

    def test_invalidate_and_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)

        self.cache.invalidate("a")
        self.cache.invalidate("missing")
        assert self.cache.get("a") is None
        assert self.cache.get("b") == 2

        self.cache.clear()
        assert len(self.cache) == 0
