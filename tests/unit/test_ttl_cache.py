import asyncio

import pytest

from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache


@pytest.mark.unit
class TestTTLCache:

    def test_get_before_expiry_returns_value(self, cache, clock):
        cache.set("k", {"price": 100})
        clock.advance(14.9)
        assert cache.get("k") == {"price": 100}
        assert cache.stats().hits == 1

    def test_get_after_expiry_is_miss_and_removes_entry(self, cache, clock):
        cache.set("k", "v")
        clock.advance(15)
        assert cache.get("k") is None
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.keys == 0

    def test_missing_key_counts_as_miss(self, cache):
        assert cache.get("nope") is None
        assert cache.stats().misses == 1

    def test_ttl_override(self, cache, clock):
        cache.set("short", 1, ttl=2)
        cache.set("default", 2)
        clock.advance(3)
        assert cache.get("short") is None
        assert cache.get("default") == 2

    def test_values_are_isolated_from_caller_mutation(self, cache):
        original = {"stocks": [1, 2]}
        cache.set("k", original)
        original["stocks"].append(3)

        first = cache.get("k")
        assert first == {"stocks": [1, 2]}
        first["stocks"].clear()

        assert cache.get("k") == {"stocks": [1, 2]}

    def test_get_does_not_extend_ttl(self, cache, clock):
        cache.set("k", "v")
        clock.advance(10)
        assert cache.get("k") == "v"
        clock.advance(5)
        assert cache.get("k") is None

    def test_has_delete_flush(self, cache, clock):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.has("a")
        assert cache.delete("a") == 1
        assert cache.delete("a") == 0
        assert not cache.has("a")

        clock.advance(20)
        assert not cache.has("b")

        cache.set("c", 3)
        cache.flush()
        assert cache.stats().keys == 0

    def test_has_does_not_touch_counters(self, cache):
        cache.set("a", 1)
        cache.has("a")
        cache.has("zzz")
        stats = cache.stats()
        assert (stats.hits, stats.misses) == (0, 0)

    def test_prune_expired_only_drops_stale_entries(self, cache, clock):
        cache.set("old", 1, ttl=1)
        cache.set("new", 2, ttl=30)
        clock.advance(5)
        assert cache.prune_expired() == 1
        assert cache.stats().keys == 1
        assert cache.get("new") == 2

    def test_default_check_period_is_fraction_of_ttl(self):
        assert TTLCache(default_ttl=15).check_period == pytest.approx(3.0)

    def test_invalid_ttl_rejected(self, cache):
        with pytest.raises(ValueError):
            TTLCache(default_ttl=0)
        with pytest.raises(ValueError):
            cache.set("k", 1, ttl=-1)

    @pytest.mark.asyncio
    async def test_sweeper_evicts_in_background(self, clock):
        cache = TTLCache(default_ttl=1, check_period=0.01, clock=clock)
        cache.set("k", "v")
        clock.advance(2)

        task = asyncio.create_task(cache.run_sweeper())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert cache.stats().keys == 0
        # eviction by the sweeper is not a read miss
        assert cache.stats().misses == 0
