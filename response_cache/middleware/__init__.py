"""
Middleware Package

Starlette middleware for the Redis response cache.
"""

from .response_cache import ResponseCacheMiddleware

__all__ = ["ResponseCacheMiddleware"]
