"""
Response Cache Service

Caches JSON response bodies in Redis under an integrator-defined key.
A hit short-circuits the request with the stored body; a miss lets the
request through and stores whatever body the downstream handler produced.
Every store failure on the request path degrades to a miss.
"""

import json
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Optional,
    Sequence,
    Union,
)

import structlog
from redis.asyncio import Redis
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import Response

from ..core.config import Settings, get_settings
from ..infrastructure.redis.cache_store import ErrorCallback, RedisCacheStore
from ..infrastructure.redis.exceptions import (
    CacheStoreException,
    CacheLookupException,
    CacheConfigurationException,
)
from .emitter import persist_then_forward

logger = structlog.get_logger(__name__)

KeyFunction = Callable[[Request], str]
CallNext = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True)
class ResponseCacheConfig:
    """Fixed configuration of one response cache instance."""

    redis_url: str
    ttl: int
    key_function: KeyFunction

    def __post_init__(self) -> None:
        if not isinstance(self.redis_url, str) or not self.redis_url:
            raise CacheConfigurationException(
                "Redis URL must be a non-empty string",
                config_key="redis_url",
                config_value=self.redis_url,
            )
        if isinstance(self.ttl, bool) or not isinstance(self.ttl, int) or self.ttl <= 0:
            raise CacheConfigurationException(
                "TTL must be a positive integer number of seconds",
                config_key="ttl",
                config_value=self.ttl,
            )
        if not callable(self.key_function):
            raise CacheConfigurationException(
                "Key function must be callable",
                config_key="key_function",
                config_value=self.key_function,
            )


async def _single_chunk(body: bytes) -> AsyncIterator[bytes]:
    yield body


async def _read_body(response: Response) -> bytes:
    """Drain a downstream response into bytes."""
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is None:
        return bytes(response.body)

    chunks = []
    async for chunk in body_iterator:
        chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)
    return b"".join(chunks)


class ResponseCache:
    """
    Redis-backed response cache.

    Usage:
        cache = ResponseCache("redis://localhost:6379", 60, lambda r: r.url.path)
        app = FastAPI(middleware=[cache.cache()])

        # Invalidate after a write:
        await cache.remove(["/items", "/items/1"])
    """

    def __init__(
        self,
        redis_url: str,
        ttl: int,
        key_function: KeyFunction,
        *,
        on_error: Optional[ErrorCallback] = None,
        client: Optional[Redis] = None,
    ):
        """
        Initialize the cache and start connecting to Redis.

        Args:
            redis_url: Redis connection URL
            ttl: Seconds each cached body lives
            key_function: Maps a request to its cache key
            on_error: Receives connection failures; they are never raised
            client: Pre-built ``redis.asyncio.Redis`` to use instead of ``redis_url``

        Raises:
            CacheConfigurationException: If ``ttl``, ``redis_url`` or ``key_function`` is invalid
        """
        self.config = ResponseCacheConfig(
            redis_url=redis_url, ttl=ttl, key_function=key_function
        )
        self.store = RedisCacheStore(redis_url, client=client, on_error=on_error)
        self.store.start_connect()

    @classmethod
    def from_settings(
        cls,
        key_function: KeyFunction,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "ResponseCache":
        """Build a cache from ``REDIS_URL`` and ``CACHE_TTL_SECONDS``."""
        settings = settings or get_settings()
        return cls(
            settings.REDIS_URL, settings.CACHE_TTL_SECONDS, key_function, **kwargs
        )

    @property
    def ttl(self) -> int:
        return self.config.ttl

    @property
    def key_function(self) -> KeyFunction:
        return self.config.key_function

    async def connect(self) -> bool:
        """Connect now, e.g. from an application lifespan. Never raises."""
        return await self.store.reconnect()

    async def close(self) -> None:
        await self.store.close()

    def cache(self, **options: Any) -> Middleware:
        """
        Middleware entry for ``Starlette(middleware=[...])`` or ``FastAPI(middleware=[...])``.

        Keyword options are passed to ``ResponseCacheMiddleware``.
        """
        from ..middleware.response_cache import ResponseCacheMiddleware

        return Middleware(ResponseCacheMiddleware, cache=self, **options)

    def install(self, app: Any, **options: Any) -> None:
        """Add the caching middleware to an existing application."""
        from ..middleware.response_cache import ResponseCacheMiddleware

        app.add_middleware(ResponseCacheMiddleware, cache=self, **options)

    def key_for(self, request: Request) -> str:
        """Compute the cache key, rejecting empty or non-string keys."""
        key = self.key_function(request)
        if not isinstance(key, str) or not key:
            raise ValueError(f"Cache key must be a non-empty string, got {key!r}")
        return key

    async def handle(self, request: Request, call_next: CallNext) -> Response:
        """
        Serve ``request`` from cache or let it through and capture the body.

        Args:
            request: Incoming request
            call_next: Continuation running downstream handling

        Returns:
            The cached response on a hit, otherwise the downstream response
        """
        try:
            key = self.key_for(request)
        except Exception as e:
            logger.error("Cache key function failed", path=request.url.path, error=str(e))
            return await call_next(request)

        await self.store.ensure_connected()

        try:
            cached = await self.lookup(key)
        except CacheStoreException as e:
            logger.error(
                "Redis middleware error",
                key=key,
                error_code=e.error_code,
                error=e.message,
            )
            return await call_next(request)

        if cached is not None:
            logger.debug("Cache hit", key=key)
            return Response(content=cached, media_type="application/json")

        logger.debug("Cache miss", key=key)
        response = await call_next(request)

        async def persist(body: bytes) -> None:
            await self._persist(key, body)

        async def forward(body: bytes) -> Response:
            response.body_iterator = _single_chunk(body)
            return response

        emit = persist_then_forward(persist, forward)
        return await emit(await _read_body(response))

    async def lookup(self, key: str) -> Optional[bytes]:
        """
        Fetch a cached body and check that it is JSON.

        Raises:
            CacheLookupException: If the GET fails or the stored body is not JSON
        """
        cached = await self.store.get(key)
        if cached is None:
            return None

        try:
            json.loads(cached)
        except ValueError as e:
            raise CacheLookupException(
                key=key,
                message=f"Cached body for key {key} is not valid JSON",
                original_error=e,
            )
        return cached

    async def remove(self, keys: Union[str, Sequence[str]]) -> int:
        """
        Delete cached entries.

        Args:
            keys: One key or a collection of keys

        Returns:
            Number of keys actually removed; absent keys are not counted

        Raises:
            CacheDeletionException: If Redis rejects the deletion
        """
        try:
            deleted = await self.store.delete(keys)
        except CacheStoreException as e:
            logger.error(
                "Redis delete error",
                error_code=e.error_code,
                error=e.message,
                details=e.details,
            )
            raise

        logger.info(f"Deleted {deleted} keys")
        return deleted

    async def _persist(self, key: str, body: bytes) -> None:
        try:
            await self.store.setex(key, self.ttl, body)
        except CacheStoreException as e:
            logger.error(
                "Redis middleware error",
                key=key,
                error_code=e.error_code,
                error=e.message,
            )
