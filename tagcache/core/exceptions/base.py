"""
Base Exception Class

The root of the cache layer's exception hierarchy. Specialized exceptions live
in their themed modules.
"""

from typing import Any


class TagCacheError(Exception):
    """
    Base exception for all cache layer errors.

    Attributes:
        message: Error message
        details: Additional error details (dict)

    Example:
        raise CacheOperationError(
            "SMEMBERS failed after retries",
            details={"tag": "products", "attempts": 3}
        )
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def with_context(self, **context) -> "TagCacheError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        return f"{self.__class__.__name__}(message='{self.message}'{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        message: str | None = None,
        **details
    ) -> "TagCacheError":
        """
        Wrap a third-party exception with additional context.

        Example:
            >>> try:
            ...     await client.ping()
            ... except redis.ConnectionError as e:
            ...     raise CacheConnectionError.from_exception(e, url="redis://cache:6379")
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, details=error_details)


class ConfigurationError(TagCacheError):
    """Raised when configuration is invalid or missing."""
    pass
