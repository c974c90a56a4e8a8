"""
Resilience Module

Bounded retry for backing-store calls.
"""

from tagcache.core.resilience.retry import TRANSIENT_ERRORS, RetryPolicy, is_transient_error

__all__ = [
    "RetryPolicy",
    "TRANSIENT_ERRORS",
    "is_transient_error",
]
