"""
Store Selection

Picks the CacheStore for this process:

    credentials present and client builds  ->  RemoteStore
    credentials missing                    ->  LocalStore + one warning
    client construction fails              ->  LocalStore + one warning
    (connect_store only) PING fails        ->  LocalStore + one warning

Neither function raises: a cache that cannot reach its backing store must
never stop the application from starting.
"""

from tagcache.core.config.settings import Settings, get_settings
from tagcache.core.exceptions import CacheConnectionError, ConfigurationError
from tagcache.core.interfaces.cache import CacheStore
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.core.resilience.retry import RetryPolicy
from tagcache.infrastructure.cache.local_store import LocalStore
from tagcache.infrastructure.cache.redis_client import ConnectionManager
from tagcache.infrastructure.cache.remote_store import RemoteStore
from tagcache.infrastructure.cache.stats import StatsCollector

logger = get_logger(__name__)


def _local_store(settings: Settings, stats: StatsCollector | None, reason: str, **context) -> LocalStore:
    log_stage(
        logger,
        "CACHE.FALLBACK",
        "Backing store unavailable, using in-process cache (single process only)",
        level="warning",
        reason=reason,
        **context,
    )
    cache_settings = settings.cache
    return LocalStore(
        max_entries=cache_settings.CACHE_LOCAL_MAX_ENTRIES,
        default_ttl=cache_settings.CACHE_DEFAULT_TTL,
        stats=stats,
    )


def _remote_store(
    manager: ConnectionManager, settings: Settings, stats: StatsCollector | None
) -> RemoteStore:
    cache_settings = settings.cache
    return RemoteStore(
        manager.create_client(),
        retry_policy=RetryPolicy(
            attempts=cache_settings.CACHE_RETRY_ATTEMPTS,
            base_delay=cache_settings.CACHE_RETRY_BASE_DELAY,
            increment=cache_settings.CACHE_RETRY_BASE_DELAY,
        ),
        stats=stats,
        default_ttl=cache_settings.CACHE_DEFAULT_TTL,
    )


def create_store(
    settings: Settings | None = None, stats: StatsCollector | None = None
) -> CacheStore:
    """
    Build the store without any network I/O.

    STAGE-CACHE.0: Store selection
    """
    settings = settings or get_settings()

    if not settings.redis.configured:
        return _local_store(settings, stats, reason="credentials_missing")

    try:
        store = _remote_store(ConnectionManager(settings), settings, stats)
    except ConfigurationError as e:
        return _local_store(settings, stats, reason="client_construction_failed", error=e.message)

    log_stage(logger, "CACHE.0", "Remote cache store selected")
    return store


async def connect_store(
    settings: Settings | None = None, stats: StatsCollector | None = None
) -> CacheStore:
    """
    Build the store and verify the backing store answers PING.

    STAGE-CACHE.0: Store selection with connection check
    """
    settings = settings or get_settings()

    if not settings.redis.configured:
        return _local_store(settings, stats, reason="credentials_missing")

    manager = ConnectionManager(settings)
    try:
        await manager.connect()
    except ConfigurationError as e:
        return _local_store(settings, stats, reason="client_construction_failed", error=e.message)
    except CacheConnectionError as e:
        await manager.disconnect()
        return _local_store(settings, stats, reason="connection_failed", error=e.message)

    log_stage(logger, "CACHE.0", "Remote cache store connected")
    return _remote_store(manager, settings, stats)
