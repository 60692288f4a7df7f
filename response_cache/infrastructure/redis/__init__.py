"""
Redis Infrastructure Module

Redis-backed store for cached response bodies and its exception taxonomy.
"""

from .cache_store import RedisCacheStore
from .exceptions import (
    CacheStoreException,
    CacheConnectionException,
    CacheLookupException,
    CacheWriteException,
    CacheDeletionException,
    CacheConfigurationException,
)

__all__ = [
    "RedisCacheStore",
    "CacheStoreException",
    "CacheConnectionException",
    "CacheLookupException",
    "CacheWriteException",
    "CacheDeletionException",
    "CacheConfigurationException",
]
