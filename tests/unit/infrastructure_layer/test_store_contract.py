"""
CacheStore Contract Tests

Every test here runs against both RemoteStore (over FakeRedis) and
LocalStore; the two must be observably identical.
"""

import pytest

from tagcache.core.config.constants import CacheTag
from tagcache.core.interfaces.cache import BatchEntry, CacheStats, CacheStore


@pytest.mark.unit
class TestBasicOperations:
    def test_implements_protocol(self, store):
        assert isinstance(store, CacheStore)

    async def test_get_missing_key_returns_none(self, store):
        assert await store.get("missing") is None

    async def test_set_then_get(self, store):
        await store.set("product:42", {"id": "42", "title": "Shirt"}, ttl=60)
        assert await store.get("product:42") == {"id": "42", "title": "Shirt"}

    async def test_set_overwrites(self, store):
        await store.set("k", 1, ttl=60)
        await store.set("k", 2, ttl=60)
        assert await store.get("k") == 2

    async def test_cached_copy_is_isolated_from_caller(self, store):
        value = {"items": [1, 2]}
        await store.set("k", value, ttl=60)

        value["items"].append(3)

        assert await store.get("k") == {"items": [1, 2]}

    async def test_none_reads_as_miss(self, store):
        await store.set("k", None, ttl=60)
        assert await store.get("k") is None

    async def test_delete_is_idempotent(self, store):
        await store.set("k", "v", ttl=60)

        await store.delete("k")
        await store.delete("k")

        assert await store.get("k") is None

    async def test_exists(self, store):
        await store.set("k", "v", ttl=60)

        assert await store.exists("k") is True
        assert await store.exists("other") is False

    async def test_clear_drops_everything(self, store):
        await store.set("a", 1, ttl=60, tags=["X"])
        await store.set("b", 2, ttl=60)

        await store.clear()

        assert await store.get("a") is None
        assert await store.get("b") is None
        assert await store.invalidate_by_tag("X") == 0

    async def test_unserializable_value_is_dropped(self, store):
        await store.set("k", {"handle": object()}, ttl=60)
        assert await store.get("k") is None


@pytest.mark.unit
class TestTtl:
    async def test_value_expires_after_ttl(self, store, manual_clock):
        await store.set("k", "v", ttl=30)

        manual_clock.advance(29)
        assert await store.get("k") == "v"

        manual_clock.advance(2)
        assert await store.get("k") is None

    async def test_none_ttl_uses_default(self, store, manual_clock):
        await store.set("k", "v")

        manual_clock.advance(3599)
        assert await store.get("k") == "v"

        manual_clock.advance(2)
        assert await store.get("k") is None

    @pytest.mark.parametrize("ttl", [0, -5])
    async def test_non_positive_ttl_is_clamped_to_one_second(self, store, manual_clock, ttl):
        await store.set("k", "v", ttl=ttl)

        assert await store.get("k") == "v"
        manual_clock.advance(1.5)
        assert await store.get("k") is None

    async def test_expire_extends_lifetime(self, store, manual_clock):
        await store.set("k", "v", ttl=10)

        assert await store.expire("k", 100) is True
        manual_clock.advance(50)

        assert await store.get("k") == "v"

    async def test_expire_on_missing_key_returns_false(self, store):
        assert await store.expire("missing", 100) is False

    async def test_expired_key_does_not_exist(self, store, manual_clock):
        await store.set("k", "v", ttl=5)
        manual_clock.advance(6)
        assert await store.exists("k") is False


@pytest.mark.unit
class TestTagInvalidation:
    async def test_tag_fan_out(self, store):
        await store.set("a", 1, ttl=60, tags=["X"])
        await store.set("b", 2, ttl=60, tags=["X"])
        await store.set("c", 3, ttl=60, tags=["Y"])

        await store.invalidate_by_tag("X")

        assert await store.get("a") is None
        assert await store.get("b") is None
        assert await store.get("c") == 3

    async def test_repeated_invalidation_is_a_no_op(self, store):
        await store.set("a", 1, ttl=60, tags=["X"])
        await store.set("c", 3, ttl=60, tags=["Y"])

        assert await store.invalidate_by_tag("X") == 1
        assert await store.invalidate_by_tag("X") == 0

        assert await store.get("a") is None
        assert await store.get("c") == 3

    async def test_key_with_several_tags_is_cleared_by_any(self, store):
        await store.set("listing", [1], ttl=60, tags=[CacheTag.PRODUCTS, CacheTag.CATEGORIES])

        await store.invalidate_by_tag(CacheTag.CATEGORIES)

        assert await store.get("listing") is None

    async def test_enum_and_string_tags_are_the_same_tag(self, store):
        await store.set("p", 1, ttl=60, tags=[CacheTag.PRODUCTS])

        assert await store.invalidate_by_tag("products") == 1
        assert await store.get("p") is None

    async def test_invalidation_tolerates_expired_members(self, store, manual_clock):
        await store.set("short", 1, ttl=5, tags=["X"])
        await store.set("long", 2, ttl=500, tags=["X"])
        manual_clock.advance(10)

        assert await store.invalidate_by_tag("X") == 2
        assert await store.get("long") is None

    async def test_tag_outlives_its_longest_member(self, store, manual_clock):
        month = 30 * 24 * 3600
        await store.set("long", 1, ttl=month, tags=["X"])
        await store.set("short", 2, ttl=60, tags=["X"])
        manual_clock.advance(8 * 24 * 3600)

        assert await store.invalidate_by_tag("X") == 2
        assert await store.get("long") is None

    async def test_unknown_tag_returns_zero(self, store):
        assert await store.invalidate_by_tag("never-used") == 0

    async def test_prune_tag_removes_expired_members(self, store, manual_clock):
        await store.set("short", 1, ttl=5, tags=["X"])
        await store.set("long", 2, ttl=500, tags=["X"])
        manual_clock.advance(10)

        assert await store.prune_tag("X") == 1
        assert await store.invalidate_by_tag("X") == 1


@pytest.mark.unit
class TestBatchOperations:
    async def test_mset_then_mget(self, store):
        await store.mset([BatchEntry("k1", "v1", ttl=60), BatchEntry("k2", "v2", ttl=60)])
        assert await store.mget(["k1", "k2"]) == ["v1", "v2"]

    async def test_batch_equals_sequential(self, store):
        await store.set("s1", {"n": 1}, ttl=60)
        await store.set("s2", {"n": 2}, ttl=60)
        sequential = [await store.get("s1"), await store.get("s2")]

        await store.mset([BatchEntry("b1", {"n": 1}, ttl=60), BatchEntry("b2", {"n": 2}, ttl=60)])
        batched = await store.mget(["b1", "b2"])

        assert batched == sequential

    async def test_mget_preserves_order_with_misses(self, store):
        await store.set("b", 2, ttl=60)
        assert await store.mget(["a", "b", "c"]) == [None, 2, None]

    async def test_mget_empty(self, store):
        assert await store.mget([]) == []

    async def test_mset_registers_tags(self, store):
        await store.mset(
            [
                BatchEntry("product:1", {"id": "1"}, ttl=60, tags=("products",)),
                BatchEntry("product:2", {"id": "2"}, ttl=60, tags=("products",)),
            ]
        )

        assert await store.invalidate_by_tag("products") == 2
        assert await store.mget(["product:1", "product:2"]) == [None, None]

    async def test_mset_later_entry_wins(self, store):
        await store.mset([BatchEntry("k", 1, ttl=60), BatchEntry("k", 2, ttl=60)])
        assert await store.get("k") == 2


@pytest.mark.unit
class TestStatsAccounting:
    async def test_one_miss_one_hit(self, store):
        await store.get("absent")
        await store.set("present", 1, ttl=60)
        await store.get("present")

        stats = await store.get_stats()

        assert stats == CacheStats(hits=1, misses=1)
        assert stats.hit_rate == 0.5

    async def test_mget_counts_each_key(self, store):
        await store.set("a", 1, ttl=60)
        await store.mget(["a", "b", "c"])

        stats = await store.get_stats()
        assert (stats.hits, stats.misses) == (1, 2)

    async def test_expired_read_counts_as_miss(self, store, manual_clock):
        await store.set("k", "v", ttl=1)
        manual_clock.advance(2)
        await store.get("k")

        assert (await store.get_stats()).misses == 1


@pytest.mark.unit
class TestHealth:
    async def test_health_check_reports_backend(self, store):
        health = await store.health_check()

        assert health["status"] == "healthy"
        assert health["backend"] == store.backend
