"""
Unit Tests for RemoteStore

Redis-specific behaviour: command layout, round trips, tag-set TTLs, and
degradation when the backing store fails.
"""

from unittest.mock import patch

import pytest
from redis.exceptions import ResponseError

from tagcache.core.config.constants import TAG_SET_TTL
from tagcache.core.exceptions import CacheOperationError
from tagcache.core.interfaces.cache import BatchEntry
from tagcache.core.resilience.retry import RetryPolicy
from tagcache.infrastructure.cache.remote_store import RemoteStore


@pytest.mark.unit
class TestRedisLayout:
    async def test_value_stored_as_json_text_with_ttl(self, remote_store, fake_redis):
        await remote_store.set("product:42", {"id": "42"}, ttl=1800)

        assert fake_redis.data["product:42"] == '{"id":"42"}'
        assert fake_redis.ttl_of("product:42") == 1800

    async def test_tag_set_holds_key_names(self, remote_store, fake_redis):
        await remote_store.set("product:42", {"id": "42"}, ttl=60, tags=["products"])

        assert fake_redis.data["tag:products"] == {"product:42"}

    async def test_tag_set_outlives_members(self, remote_store, fake_redis):
        await remote_store.set("short", 1, ttl=60, tags=["X"])
        assert fake_redis.ttl_of("tag:X") == TAG_SET_TTL

        await remote_store.set("very-long", 1, ttl=TAG_SET_TTL * 2, tags=["X"])
        assert fake_redis.ttl_of("tag:X") == TAG_SET_TTL * 2

    async def test_invalidation_deletes_the_tag_set(self, remote_store, fake_redis):
        await remote_store.set("a", 1, ttl=60, tags=["X"])

        await remote_store.invalidate_by_tag("X")

        assert "tag:X" not in fake_redis.data

    async def test_corrupt_value_reads_as_miss(self, remote_store, fake_redis):
        fake_redis.data["product:42"] = "{truncated"

        assert await remote_store.get("product:42") is None
        assert (await remote_store.get_stats()).misses == 1


@pytest.mark.unit
class TestRoundTrips:
    async def test_set_with_tags_is_one_round_trip(self, remote_store, fake_redis):
        await remote_store.set("k", 1, ttl=60, tags=["X", "Y"])
        assert fake_redis.round_trips == 1

    async def test_mset_is_one_round_trip(self, remote_store, fake_redis):
        entries = [BatchEntry(f"product:{i}", {"id": i}, ttl=60, tags=("products",)) for i in range(25)]

        await remote_store.mset(entries)

        assert fake_redis.round_trips == 1
        assert fake_redis.calls == ["PIPELINE"]

    async def test_mget_is_one_round_trip(self, remote_store, fake_redis):
        await remote_store.mget(["a", "b", "c"])
        assert fake_redis.calls == ["MGET"]

    async def test_mset_skips_unserializable_entries_only(self, remote_store):
        await remote_store.mset(
            [BatchEntry("good", 1, ttl=60), BatchEntry("bad", {"x": object()}, ttl=60)]
        )

        assert await remote_store.mget(["good", "bad"]) == [1, None]

    async def test_mset_with_nothing_to_write_skips_the_network(self, remote_store, fake_redis):
        await remote_store.mset([])
        assert fake_redis.round_trips == 0


@pytest.mark.unit
class TestFaultTransparency:
    """A backing store that fails every call never surfaces an error."""

    async def test_get_returns_none(self, failing_store):
        assert await failing_store.get("k") is None

    async def test_get_counts_a_miss(self, failing_store):
        await failing_store.get("k")
        assert (await failing_store.get_stats()).misses == 1

    async def test_writes_complete_without_raising(self, failing_store):
        await failing_store.set("k", {"v": 1}, ttl=60, tags=["X"])
        await failing_store.delete("k")
        await failing_store.mset([BatchEntry("a", 1), BatchEntry("b", 2)])
        await failing_store.clear()

    async def test_degraded_results(self, failing_store):
        assert await failing_store.exists("k") is False
        assert await failing_store.expire("k", 60) is False
        assert await failing_store.invalidate_by_tag("X") == 0
        assert await failing_store.prune_tag("X") == 0
        assert await failing_store.mget(["a", "b"]) == [None, None]

    async def test_each_call_uses_the_retry_budget(self, failing_store, failing_redis):
        await failing_store.get("k")
        assert failing_redis.attempts == 3

    async def test_health_check_reports_unhealthy(self, failing_store):
        health = await failing_store.health_check()

        assert health["status"] == "unhealthy"
        assert health["backend"] == "redis"
        assert "Connection refused" in health["error"]

    async def test_non_transient_errors_degrade_without_retry(self, fake_redis, stats):
        async def wrong_type(key):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

        fake_redis.get = wrong_type
        store = RemoteStore(fake_redis, retry_policy=RetryPolicy(3, 0.0, 0.0), stats=stats)

        assert await store.get("tag:products") is None


@pytest.mark.unit
class TestUnexpectedClientErrors:
    """Errors outside the redis exception hierarchy degrade the same way."""

    async def test_reads_degrade_to_misses(self, closed_loop_store):
        assert await closed_loop_store.get("k") is None
        assert await closed_loop_store.mget(["a", "b"]) == [None, None]
        assert await closed_loop_store.exists("k") is False

    async def test_writes_complete_without_raising(self, closed_loop_store):
        await closed_loop_store.set("k", {"v": 1}, ttl=60, tags=["X"])
        await closed_loop_store.mset([BatchEntry("a", 1), BatchEntry("b", 2)])
        await closed_loop_store.delete("k")
        await closed_loop_store.clear()

    async def test_tag_and_expiry_calls_degrade(self, closed_loop_store):
        assert await closed_loop_store.expire("k", 60) is False
        assert await closed_loop_store.invalidate_by_tag("X") == 0
        assert await closed_loop_store.prune_tag("X") == 0

    async def test_health_check_reports_unhealthy(self, closed_loop_store):
        health = await closed_loop_store.health_check()

        assert health["status"] == "unhealthy"
        assert health["error"] == "Event loop is closed"

    async def test_not_retried(self, closed_loop_store, closed_loop_redis):
        await closed_loop_store.get("k")
        assert closed_loop_redis.attempts == 1

    async def test_miss_is_counted(self, closed_loop_store):
        await closed_loop_store.get("k")
        assert (await closed_loop_store.get_stats()).misses == 1


@pytest.mark.unit
class TestOperationErrors:
    """Failures are wrapped in CacheOperationError before degrading."""

    async def test_exhausted_retries_are_wrapped(self, failing_store):
        with patch.object(RemoteStore, "_degraded") as mock_degraded:
            await failing_store.get("k")

        operation, error = mock_degraded.call_args.args
        assert operation == "GET"
        assert isinstance(error, CacheOperationError)
        assert error.details["original_error"] == "ConnectionError"
        assert error.details["attempts"] == 3

    async def test_unexpected_error_is_wrapped(self, closed_loop_store):
        with patch.object(RemoteStore, "_degraded") as mock_degraded:
            await closed_loop_store.delete("k")

        operation, error = mock_degraded.call_args.args
        assert operation == "DEL"
        assert isinstance(error, CacheOperationError)
        assert error.details["original_error"] == "RuntimeError"
        assert error.message == "DEL failed: Event loop is closed"


@pytest.mark.unit
class TestLifecycle:
    async def test_close_closes_the_client(self, remote_store, fake_redis):
        await remote_store.close()
        assert fake_redis.closed is True

    def test_backend_name(self, remote_store):
        assert remote_store.backend == "redis"
