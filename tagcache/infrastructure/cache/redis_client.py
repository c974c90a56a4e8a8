"""
Redis Client Construction

Builds the async Redis client for the backing store from an endpoint URL and
an access token, and verifies it can be reached.

Architecture:
    ConnectionManager
        ├── create_client()  sync, no I/O; raises ConfigurationError
        ├── connect()        PING; raises CacheConnectionError
        └── disconnect()     closes the connection pool

Construction never touches the network, so the facade can be built lazily on
first use; reachability is checked separately by `connect()`.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from tagcache.core.config.settings import Settings
from tagcache.core.exceptions import CacheConnectionError, ConfigurationError
from tagcache.core.logging.logger import get_logger

logger = get_logger(__name__)


def build_redis_client(settings: Settings) -> redis.Redis:
    """
    Create a Redis client for the configured endpoint.

    STAGE-REDIS.1: Client construction

    The access token is sent as the Redis password and overrides any
    password embedded in the URL.

    Raises:
        ConfigurationError: If URL or token is missing, or the URL is malformed
    """
    redis_settings = settings.redis

    if not redis_settings.configured:
        raise ConfigurationError(
            "Backing-store credentials missing",
            details={
                "url_set": bool(redis_settings.CACHE_REDIS_URL),
                "token_set": bool(redis_settings.CACHE_REDIS_TOKEN),
            },
        )

    try:
        return redis.from_url(
            redis_settings.CACHE_REDIS_URL,
            password=redis_settings.CACHE_REDIS_TOKEN,
            decode_responses=True,  # Return strings instead of bytes
            socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
        )
    except (ValueError, TypeError) as e:
        raise ConfigurationError.from_exception(e, message="Invalid backing-store URL")


class ConnectionManager:
    """
    Manages the Redis client lifecycle.

    Responsibility: client construction, reachability check and cleanup.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: redis.Redis | None = None
        self._is_connected = False

    def create_client(self) -> redis.Redis:
        """
        Build the client without connecting.

        Raises:
            ConfigurationError: If credentials are missing or invalid
        """
        if self._client is None:
            self._client = build_redis_client(self._settings)
        return self._client

    async def connect(self) -> redis.Redis:
        """
        Build the client if needed and verify it with PING.

        STAGE-REDIS.2: Connection establishment

        Raises:
            ConfigurationError: If credentials are missing or invalid
            CacheConnectionError: If the endpoint cannot be reached
        """
        client = self.create_client()
        if self._is_connected:
            return client

        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError.from_exception(
                e, message=f"Failed to connect to Redis: {e}"
            )

        self._is_connected = True
        logger.info("Redis connected successfully", stage="REDIS.2")
        return client

    async def disconnect(self) -> None:
        """
        Close the client and its connection pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client is not None:
            await self._client.aclose()

        self._client = None
        self._is_connected = False
        logger.info("Redis disconnected", stage="REDIS.3")

    def get_client(self) -> redis.Redis | None:
        return self._client

    def is_connected(self) -> bool:
        return self._is_connected
