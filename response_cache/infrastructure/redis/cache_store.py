"""
Redis Cache Store

Thin async wrapper over ``redis.asyncio`` exposing the four commands the
response cache needs (PING, GET, SETEX, DEL). Redis errors are translated
into the cache exception taxonomy; connection failures are delivered to an
error-notification callback instead of being raised.
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence, Union
from urllib.parse import urlparse

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError, RedisError

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .exceptions import (
    CacheStoreException,
    CacheConnectionException,
    CacheLookupException,
    CacheWriteException,
    CacheDeletionException,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ErrorCallback = Callable[[CacheStoreException], None]


def _redacted(redis_url: str) -> str:
    """Drop credentials from a Redis URL before it reaches the logs."""
    parsed = urlparse(redis_url)
    if not parsed.hostname:
        return f"{parsed.scheme}://{parsed.path}"
    host = parsed.hostname
    port = parsed.port or 6379
    return f"{parsed.scheme}://{host}:{port}{parsed.path}"


class RedisCacheStore:
    """
    Redis store for cached response bodies.

    Values are stored and returned as raw bytes (``decode_responses=False``)
    so a cached body is byte-identical to what was written.
    """

    def __init__(
        self,
        redis_url: str,
        client: Optional[Redis] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.redis_url = redis_url
        self._client = client or Redis.from_url(redis_url, decode_responses=False)
        self._on_error = on_error
        self._connected = False
        self._connect_task: Optional[asyncio.Task] = None

    @property
    def client(self) -> Redis:
        return self._client

    @property
    def is_connected(self) -> bool:
        """Whether the last connection attempt or command reached Redis."""
        return self._connected

    def start_connect(self) -> Optional[asyncio.Task]:
        """
        Schedule ``connect()`` on the running event loop.

        Returns the scheduled task, or None when no loop is running yet; in
        that case the connection is established on first use.
        """
        if self._connect_task is not None:
            return self._connect_task

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None

        self._connect_task = loop.create_task(self.connect())
        return self._connect_task

    async def ensure_connected(self) -> None:
        """Await the pending connection attempt, starting one if needed."""
        task = self.start_connect()
        if task is not None:
            await task

    async def reconnect(self) -> bool:
        """
        Run a fresh connection attempt, joining one that is still in flight.

        Returns:
            True if Redis answered, False otherwise
        """
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.get_running_loop().create_task(self.connect())
        return await self._connect_task

    async def connect(self) -> bool:
        """
        Verify connectivity with PING.

        Never raises: failures are logged and passed to the error callback.

        Returns:
            True if Redis answered, False otherwise
        """
        with tracer.start_as_current_span("redis.ping") as span:
            try:
                await self._client.ping()
            except (RedisError, OSError) as e:
                self._connected = False
                span.set_status(Status(StatusCode.ERROR, str(e)))
                self._notify_error(
                    CacheConnectionException(
                        message=f"Redis connection failed: {e}",
                        redis_url=_redacted(self.redis_url),
                        original_error=e,
                    )
                )
                return False

            self._connected = True
            span.set_status(Status(StatusCode.OK))

        logger.info(
            "Redis cache connected",
            extra={"redis_url": _redacted(self.redis_url)},
        )
        return True

    async def get(self, key: str) -> Optional[bytes]:
        """
        Read a cached body.

        Raises:
            CacheLookupException: If the GET command fails
        """
        with tracer.start_as_current_span("redis.get") as span:
            span.set_attribute("cache.key", key)
            try:
                value = await self._client.get(key)
            except (RedisError, OSError) as e:
                self._track_failure(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise CacheLookupException(key=key, original_error=e)

            self._connected = True
            span.set_attribute("cache.hit", value is not None)
            return value

    async def setex(self, key: str, ttl: int, value: Union[bytes, str]) -> None:
        """
        Write a body with a time-to-live in seconds.

        Raises:
            CacheWriteException: If the SETEX command fails
        """
        with tracer.start_as_current_span("redis.setex") as span:
            span.set_attribute("cache.key", key)
            span.set_attribute("cache.ttl", ttl)
            try:
                await self._client.setex(key, ttl, value)
            except (RedisError, OSError) as e:
                self._track_failure(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise CacheWriteException(key=key, ttl=ttl, original_error=e)

            self._connected = True

    async def delete(self, keys: Union[str, Sequence[str]]) -> int:
        """
        Delete one or more keys.

        Returns:
            Number of keys that existed and were removed

        Raises:
            CacheDeletionException: If the DEL command fails
        """
        key_list = [keys] if isinstance(keys, str) else list(keys)
        if not key_list:
            return 0

        with tracer.start_as_current_span("redis.delete") as span:
            span.set_attribute("cache.key_count", len(key_list))
            try:
                deleted = await self._client.delete(*key_list)
            except (RedisError, OSError) as e:
                self._track_failure(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise CacheDeletionException(keys=key_list, original_error=e)

            self._connected = True
            return int(deleted)

    async def close(self) -> None:
        """Release the client's connection pool."""
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        await self._client.aclose()
        self._connected = False
        logger.info("Redis cache store closed")

    def _track_failure(self, error: Exception) -> None:
        if not isinstance(error, (RedisConnectionError, OSError)):
            return

        # Notify once per connected -> disconnected transition.
        was_connected = self._connected
        self._connected = False
        if was_connected:
            self._notify_error(
                CacheConnectionException(
                    message=f"Redis connection lost: {error}",
                    redis_url=_redacted(self.redis_url),
                    original_error=error,
                )
            )

    def _notify_error(self, error: CacheStoreException) -> None:
        logger.error(
            f"Redis client error: {error.message}",
            extra={"error_code": error.error_code, "details": error.details},
        )
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as callback_error:
            logger.warning(f"Redis error callback raised: {callback_error}")
