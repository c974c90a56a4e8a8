"""
Bounded Retry Policy

Wraps backing-store calls in a fixed retry budget so a transient network blip
is smoothed over while every call still resolves in bounded time.

Retry Strategy:
- tenacity with a fixed attempt budget (default 3)
- Linear backoff: base, base + increment, ...
- Only transient errors are retried (connection reset, timeout)
- The last error is re-raised once the budget is spent; callers decide how
  to degrade
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_incrementing

from tagcache.core.config.constants import (
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_DELAY_INCREMENT,
)
from tagcache.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# builtin ConnectionError and TimeoutError are OSError subclasses
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    RedisConnectionError,
    RedisTimeoutError,
    OSError,
)


def is_transient_error(exc: BaseException) -> bool:
    """True for failures worth another attempt."""
    return isinstance(exc, TRANSIENT_ERRORS)


class RetryPolicy:
    """
    Fixed-budget retry with linear backoff.

    Usage:
        policy = RetryPolicy(attempts=3, base_delay=0.1)
        value = await policy.call("GET", client.get, "product:42")

    Worst case per call: attempts * socket timeout + sum of backoff steps.
    """

    def __init__(
        self,
        attempts: int = RETRY_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY,
        increment: float = RETRY_DELAY_INCREMENT,
    ):
        self.attempts = max(1, attempts)
        self.base_delay = max(0.0, base_delay)
        self.increment = max(0.0, increment)

    async def call(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run `func(*args, **kwargs)` under the retry budget.

        Args:
            operation: Command name for logging (e.g. "GET", "PIPELINE")
            func: Coroutine function to call

        Raises:
            The last exception once attempts are exhausted, or immediately
            for a non-transient error
        """

        @retry(
            stop=stop_after_attempt(self.attempts),
            wait=wait_incrementing(start=self.base_delay, increment=self.increment),
            retry=retry_if_exception(is_transient_error),
            before_sleep=lambda retry_state: logger.info(
                "Retrying cache operation",
                stage="CACHE.RETRY",
                operation=operation,
                attempt=retry_state.attempt_number,
                delay=round(retry_state.next_action.sleep, 3),
            ),
            reraise=True,
        )
        async def _attempt() -> T:
            return await func(*args, **kwargs)

        return await _attempt()
