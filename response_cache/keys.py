"""
Ready-made cache key functions.

Any ``Callable[[Request], str]`` works as a key function; these cover the
common cases.
"""

import hashlib
from typing import Callable, Iterable, Optional

from starlette.requests import Request


def path_key(request: Request) -> str:
    """Key on the URL path only."""
    return request.url.path


def path_and_query_key(request: Request) -> str:
    """Key on the path plus the query parameters in sorted order."""
    query = "&".join(
        f"{name}={value}" for name, value in sorted(request.query_params.multi_items())
    )
    return f"{request.url.path}?{query}" if query else request.url.path


def hashed_key(
    prefix: str = "response",
    vary_headers: Optional[Iterable[str]] = None,
) -> Callable[[Request], str]:
    """
    Build a key function hashing method, path, query and selected headers.

    Example:
        >>> key_function = hashed_key("api", vary_headers=["accept-language"])
        >>> key_function(request)  # "api:GET:3f1c9a..."
    """
    headers = sorted(h.lower() for h in (vary_headers or []))

    def key_function(request: Request) -> str:
        parts = [path_and_query_key(request)]
        for header in headers:
            parts.append(f"{header}={request.headers.get(header, '')}")
        digest = hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()
        return f"{prefix}:{request.method}:{digest}"

    return key_function
