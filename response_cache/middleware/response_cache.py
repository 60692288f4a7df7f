"""
Response Cache Middleware

Starlette middleware that answers requests from the Redis response cache
and stores the body of uncached responses.
"""

from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from opentelemetry import trace

if TYPE_CHECKING:
    from ..services.response_cache import ResponseCache

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """
    Serve cached JSON responses and capture uncached ones.

    Paths in ``exclude_paths`` and a disabled middleware bypass Redis
    entirely.
    """

    def __init__(
        self,
        app: ASGIApp,
        cache: "ResponseCache",
        exclude_paths: Optional[Iterable[str]] = None,
        enabled: bool = True,
    ):
        """
        Initialize response cache middleware.

        Args:
            app: ASGI application
            cache: Response cache holding the store, TTL and key function
            exclude_paths: Paths that are never cached
            enabled: Whether caching is enabled
        """
        super().__init__(app)
        self.cache = cache
        self.exclude_paths = set(exclude_paths or [])
        self.enabled = enabled

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """
        Process request through the response cache.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware in chain

        Returns:
            Cached response on a hit, downstream response otherwise
        """
        if not self.enabled or request.url.path in self.exclude_paths:
            return await call_next(request)

        with tracer.start_as_current_span("response_cache.dispatch") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.path", request.url.path)
            return await self.cache.handle(request, call_next)

    def add_excluded_path(self, path: str) -> None:
        """Add path to caching exclusion list."""
        self.exclude_paths.add(path)
        logger.debug("Added path to cache exclusions", path=path)

    def remove_excluded_path(self, path: str) -> None:
        """Remove path from caching exclusion list."""
        self.exclude_paths.discard(path)
        logger.debug("Removed path from cache exclusions", path=path)

    def enable(self) -> None:
        self.enabled = True
        logger.info("Response cache middleware enabled")

    def disable(self) -> None:
        self.enabled = False
        logger.info("Response cache middleware disabled")
