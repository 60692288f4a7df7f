"""
Response Cache Store Exceptions

Domain-specific exceptions for the Redis-backed response cache.
Request-path failures are logged and degrade to a cache miss;
only deletion failures are surfaced to the caller.
"""

from typing import Optional, Any, Dict, Sequence, Union


class CacheStoreException(Exception):
    """Base exception for cache store errors.

    All store operations raise this or its subclasses.
    The original redis-py error is kept as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if original_error:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        if original_error:
            self.__cause__ = original_error


class CacheConnectionException(CacheStoreException):
    """Raised when the Redis endpoint cannot be reached."""

    def __init__(
        self,
        message: str = "Redis connection failed",
        redis_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if redis_url:
            details["redis_url"] = redis_url

        super().__init__(
            message=message,
            error_code="CACHE_CONNECTION_ERROR",
            details=details,
            original_error=original_error,
        )


class CacheLookupException(CacheStoreException):
    """Raised when a cached entry cannot be read or decoded."""

    def __init__(
        self,
        key: str,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message or f"Cache lookup failed for key: {key}",
            error_code="CACHE_LOOKUP_ERROR",
            details={"key": key},
            original_error=original_error,
        )


class CacheWriteException(CacheStoreException):
    """Raised when a response body cannot be written to the cache."""

    def __init__(
        self,
        key: str,
        ttl: int,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=f"Cache write failed for key: {key}",
            error_code="CACHE_WRITE_ERROR",
            details={"key": key, "ttl": ttl},
            original_error=original_error,
        )


class CacheDeletionException(CacheStoreException):
    """Raised when cached keys cannot be deleted."""

    def __init__(
        self,
        keys: Union[str, Sequence[str]],
        original_error: Optional[Exception] = None,
    ):
        key_list = [keys] if isinstance(keys, str) else list(keys)

        super().__init__(
            message=f"Cache deletion failed for {len(key_list)} key(s)",
            error_code="CACHE_DELETION_ERROR",
            details={"keys": key_list},
            original_error=original_error,
        )


class CacheConfigurationException(CacheStoreException):
    """Raised when the response cache is constructed with invalid settings."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = str(config_value)

        super().__init__(
            message=message, error_code="CACHE_CONFIGURATION_ERROR", details=details
        )
