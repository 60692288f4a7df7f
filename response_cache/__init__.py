"""
Redis Response Cache

Starlette / FastAPI middleware that caches JSON response bodies in Redis
under an integrator-defined key, with a fixed TTL and bulk invalidation.
"""

from .infrastructure.redis import (
    RedisCacheStore,
    CacheStoreException,
    CacheConnectionException,
    CacheLookupException,
    CacheWriteException,
    CacheDeletionException,
    CacheConfigurationException,
)
from .keys import path_key, path_and_query_key, hashed_key
from .middleware import ResponseCacheMiddleware
from .services import ResponseCache, ResponseCacheConfig, persist_then_forward

__version__ = "0.1.0"

__all__ = [
    "ResponseCache",
    "ResponseCacheConfig",
    "ResponseCacheMiddleware",
    "RedisCacheStore",
    "persist_then_forward",
    "path_key",
    "path_and_query_key",
    "hashed_key",
    "CacheStoreException",
    "CacheConnectionException",
    "CacheLookupException",
    "CacheWriteException",
    "CacheDeletionException",
    "CacheConfigurationException",
]
