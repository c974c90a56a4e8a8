#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

Type-safe, environment-based configuration for the cache layer. Values are
loaded from environment variables or a `.env` file and validated at startup.

Missing backing-store credentials are NOT a validation error: the cache layer
falls back to the in-process store when CACHE_REDIS_URL or CACHE_REDIS_TOKEN
is absent.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tagcache.core.config.constants import (
    DEFAULT_TTL,
    LOCAL_STORE_MAX_ENTRIES,
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
)


class RedisSettings(BaseSettings):
    """
    Backing-store connection configuration.

    STAGE-0.1: Redis connection configuration
    """

    CACHE_REDIS_URL: str | None = Field(default=None, description="Backing-store endpoint URL")
    CACHE_REDIS_TOKEN: str | None = Field(default=None, description="Backing-store access token")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def configured(self) -> bool:
        """True when both endpoint and credential are present."""
        return bool(self.CACHE_REDIS_URL) and bool(self.CACHE_REDIS_TOKEN)


class CacheSettings(BaseSettings):
    """
    Cache behaviour configuration.

    STAGE-2: Cache TTL and resilience configuration
    """

    CACHE_DEFAULT_TTL: int = Field(default=DEFAULT_TTL, description="TTL when none is given")
    CACHE_LOCAL_MAX_ENTRIES: int = Field(
        default=LOCAL_STORE_MAX_ENTRIES, description="In-process store LRU bound"
    )
    CACHE_RETRY_ATTEMPTS: int = Field(default=RETRY_ATTEMPTS, description="Attempts per remote call")
    CACHE_RETRY_BASE_DELAY: float = Field(
        default=RETRY_BASE_DELAY, description="First linear backoff step in seconds"
    )
    CACHE_SINGLE_FLIGHT: bool = Field(
        default=True, description="Coalesce concurrent misses for the same key"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Tagged Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ADMIN_SECRET: str | None = Field(default=None, description="Bearer token for admin routes")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from tagcache.core.config.settings import get_settings

        settings = get_settings()
        url = settings.redis.CACHE_REDIS_URL
        ttl = settings.cache.CACHE_DEFAULT_TTL
    """

    # Backing store
    CACHE_REDIS_URL: str | None = Field(default=None, description="Backing-store endpoint URL")
    CACHE_REDIS_TOKEN: str | None = Field(default=None, description="Backing-store access token")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Cache behaviour
    CACHE_DEFAULT_TTL: int = Field(default=DEFAULT_TTL, description="TTL when none is given")
    CACHE_LOCAL_MAX_ENTRIES: int = Field(
        default=LOCAL_STORE_MAX_ENTRIES, description="In-process store LRU bound"
    )
    CACHE_RETRY_ATTEMPTS: int = Field(default=RETRY_ATTEMPTS, description="Attempts per remote call")
    CACHE_RETRY_BASE_DELAY: float = Field(
        default=RETRY_BASE_DELAY, description="First linear backoff step in seconds"
    )
    CACHE_SINGLE_FLIGHT: bool = Field(
        default=True, description="Coalesce concurrent misses for the same key"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Tagged Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ADMIN_SECRET: str | None = Field(default=None, description="Bearer token for admin routes")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_RETRY_ATTEMPTS")
    @classmethod
    def validate_retry_attempts(cls, v):
        """At least one attempt is always made."""
        return max(1, v)

    # Nested configuration objects
    @property
    def redis(self) -> RedisSettings:
        """Get backing-store settings."""
        return RedisSettings(
            CACHE_REDIS_URL=self.CACHE_REDIS_URL,
            CACHE_REDIS_TOKEN=self.CACHE_REDIS_TOKEN,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache behaviour settings."""
        return CacheSettings(
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_LOCAL_MAX_ENTRIES=self.CACHE_LOCAL_MAX_ENTRIES,
            CACHE_RETRY_ATTEMPTS=self.CACHE_RETRY_ATTEMPTS,
            CACHE_RETRY_BASE_DELAY=self.CACHE_RETRY_BASE_DELAY,
            CACHE_SINGLE_FLIGHT=self.CACHE_SINGLE_FLIGHT,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            ADMIN_SECRET=self.ADMIN_SECRET,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
