"""
Pytest Configuration and Shared Test Fixtures

This module provides reusable fixtures for all tests. All fixtures defined
here are automatically available to all test files.

Infrastructure doubles:
- FakeRedis: in-memory stand-in speaking the redis-py command subset the
  stores use, with TTLs driven by a manual clock
- FailingRedis: every command raises a connection error
- ManualClock: monotonic clock advanced explicitly by tests
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tagcache.application.services.cache_service import reset_cache_service
import tagcache.core.config.settings as settings_module
from tagcache.core.config.settings import reload_settings
from tagcache.core.resilience.retry import RetryPolicy
from tagcache.infrastructure.cache.local_store import LocalStore
from tagcache.infrastructure.cache.remote_store import RemoteStore
from tagcache.infrastructure.cache.stats import StatsCollector

CACHE_ENV_VARS = (
    "CACHE_REDIS_URL",
    "CACHE_REDIS_TOKEN",
    "CACHE_DEFAULT_TTL",
    "CACHE_SINGLE_FLIGHT",
    "CACHE_RETRY_ATTEMPTS",
    "CACHE_RETRY_BASE_DELAY",
    "ADMIN_SECRET",
    "LOG_LEVEL",
)


# ============================================================================
# Test Doubles
# ============================================================================


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Queues commands and runs them in order on execute()."""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._commands = []

    def __getattr__(self, name):
        command = getattr(self._redis, name)

        def queue(*args, **kwargs):
            self._commands.append((command, args, kwargs))
            return self

        return queue

    async def execute(self):
        self._redis.round_trips += 1
        self._redis.calls.append("PIPELINE")
        commands, self._commands = self._commands, []
        return [await command(*args, _pipelined=True, **kwargs) for command, args, kwargs in commands]


class FakeRedis:
    """
    In-memory Redis stub for testing.

    Strings and sets share one keyspace; each key may carry an expiry
    evaluated lazily against the injected clock.
    """

    def __init__(self, clock: ManualClock | None = None):
        self.clock = clock or ManualClock()
        self.data: dict[str, object] = {}
        self.expires: dict[str, float] = {}
        self.calls: list[str] = []
        self.round_trips = 0
        self.closed = False

    # Helpers -----------------------------------------------------------------

    def _track(self, name: str, pipelined: bool) -> None:
        if not pipelined:
            self.round_trips += 1
            self.calls.append(name)

    def _alive(self, key: str) -> bool:
        if key in self.expires and self.clock() >= self.expires[key]:
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return key in self.data

    def ttl_of(self, key: str) -> float | None:
        if not self._alive(key) or key not in self.expires:
            return None
        return self.expires[key] - self.clock()

    # Commands ----------------------------------------------------------------

    async def ping(self, _pipelined=False):
        self._track("PING", _pipelined)
        return True

    async def get(self, key, _pipelined=False):
        self._track("GET", _pipelined)
        return self.data[key] if self._alive(key) else None

    async def set(self, key, value, ex=None, _pipelined=False):
        self._track("SET", _pipelined)
        self.data[key] = value
        self.expires.pop(key, None)
        if ex is not None:
            self.expires[key] = self.clock() + ex
        return True

    async def mget(self, keys, _pipelined=False):
        self._track("MGET", _pipelined)
        return [self.data[key] if self._alive(key) else None for key in keys]

    async def delete(self, *keys, _pipelined=False):
        self._track("DEL", _pipelined)
        deleted = 0
        for key in keys:
            if self._alive(key):
                deleted += 1
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return deleted

    async def exists(self, *keys, _pipelined=False):
        self._track("EXISTS", _pipelined)
        return sum(1 for key in keys if self._alive(key))

    async def expire(self, key, seconds, nx=False, gt=False, _pipelined=False):
        self._track("EXPIRE", _pipelined)
        if not self._alive(key):
            return False
        new_expiry = self.clock() + seconds
        current = self.expires.get(key)
        if nx and current is not None:
            return False
        # GT treats a key without a TTL as infinite
        if gt and (current is None or new_expiry <= current):
            return False
        self.expires[key] = new_expiry
        return True

    async def sadd(self, key, *members, _pipelined=False):
        self._track("SADD", _pipelined)
        current = self.data.get(key) if self._alive(key) else None
        current = current if isinstance(current, set) else set()
        added = len(set(members) - current)
        current.update(members)
        self.data[key] = current
        return added

    async def smembers(self, key, _pipelined=False):
        self._track("SMEMBERS", _pipelined)
        return set(self.data[key]) if self._alive(key) else set()

    async def srem(self, key, *members, _pipelined=False):
        self._track("SREM", _pipelined)
        if not self._alive(key):
            return 0
        current = self.data[key]
        removed = len(current & set(members))
        current.difference_update(members)
        return removed

    async def flushdb(self, _pipelined=False):
        self._track("FLUSHDB", _pipelined)
        self.data.clear()
        self.expires.clear()
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


class FailingRedis:
    """
    Redis stub whose every command fails.

    Raises a connection error by default; pass `error` to fail with
    anything else (e.g. the RuntimeError of a closed event loop).
    """

    def __init__(self, error: BaseException | None = None):
        self.error = error or RedisConnectionError("Connection refused")
        self.attempts = 0
        self.closed = False

    async def _fail(self, *args, **kwargs):
        self.attempts += 1
        raise self.error

    get = set = mget = delete = exists = expire = _fail
    sadd = smembers = srem = flushdb = ping = _fail

    def pipeline(self, transaction=True):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=self._fail)
        return pipe

    async def aclose(self):
        self.closed = True


# ============================================================================
# Environment Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """
    Clear cache-related environment variables and singletons per test.
    """
    for name in CACHE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_settings()
    reset_cache_service()

    yield

    reset_cache_service()
    # monkeypatch restores the environment after this teardown; the next
    # get_settings() call rebuilds from it
    settings_module._settings = None


# ============================================================================
# Infrastructure Fixtures
# ============================================================================


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def fake_redis(manual_clock):
    return FakeRedis(manual_clock)


@pytest.fixture
def failing_redis():
    return FailingRedis()


@pytest.fixture
def fast_retry():
    """Three attempts, no backoff sleep."""
    return RetryPolicy(attempts=3, base_delay=0.0, increment=0.0)


@pytest.fixture
def stats():
    return StatsCollector()


@pytest.fixture
def remote_store(fake_redis, fast_retry, stats):
    return RemoteStore(fake_redis, retry_policy=fast_retry, stats=stats, default_ttl=3600)


@pytest.fixture
def failing_store(failing_redis, fast_retry, stats):
    return RemoteStore(failing_redis, retry_policy=fast_retry, stats=stats)


@pytest.fixture
def closed_loop_redis():
    """Client failing the way redis-py does once its event loop has closed."""
    return FailingRedis(RuntimeError("Event loop is closed"))


@pytest.fixture
def closed_loop_store(closed_loop_redis, fast_retry, stats):
    return RemoteStore(closed_loop_redis, retry_policy=fast_retry, stats=stats)


@pytest.fixture
def local_store(manual_clock, stats):
    return LocalStore(max_entries=100, default_ttl=3600, clock=manual_clock, stats=stats)


@pytest.fixture(params=["remote", "local"])
def store(request, remote_store, local_store):
    """Each CacheStore implementation, for contract tests."""
    return remote_store if request.param == "remote" else local_store
