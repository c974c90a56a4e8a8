#!/usr/bin/env python3
"""
Structured Logging Module using structlog

Production-grade structured logging for the cache layer:
- JSON formatting for log aggregation
- Stage identifiers on every cache event (CACHE.GET, CACHE.TAG, ...)
- Cache keys truncated before they reach a log line
- Context-variable merging so callers can bind request fields
"""

import logging
import sys
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from tagcache.core.config.constants import LOG_KEY_MAX_LENGTH
from tagcache.core.config.settings import get_settings


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.1: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def truncate_cache_keys(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Shorten `cache_key` fields.

    STAGE-L.2: Key truncation

    Search keys embed raw user queries; only a prefix is logged.
    """
    key = event_dict.get("cache_key")
    if isinstance(key, str) and len(key) > LOG_KEY_MAX_LENGTH:
        event_dict["cache_key"] = key[:LOG_KEY_MAX_LENGTH] + "..."
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Upper-case the log level.

    STAGE-L.3: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            truncate_cache_keys,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="CACHE.GET")
    """
    return structlog.get_logger(name)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Usage:
        log_stage(logger, "CACHE.TAG", "Tag invalidated", tag="products", keys=12)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)
