"""
Main pytest configuration for response cache tests.

Provides an in-memory Redis double with a controllable clock and
request/app factories shared by unit and integration tests.
"""

from typing import Dict, List, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.requests import Request


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` (PING/GET/SETEX/DEL)."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: Dict[str, Tuple[bytes, float]] = {}
        self.down = False
        self.gets: List[str] = []
        self.writes: List[Tuple[str, int, bytes]] = []
        self.closed = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def _live(self, key: str) -> Optional[bytes]:
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self.data[key]
            return None
        return value

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> Optional[bytes]:
        self._check()
        self.gets.append(key)
        return self._live(key)

    async def setex(self, key: str, ttl: int, value) -> bool:
        self._check()
        if isinstance(value, str):
            value = value.encode("utf-8")
        self.data[key] = (value, self.clock() + ttl)
        self.writes.append((key, ttl, value))
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                del self.data[key]
                deleted += 1
        return deleted

    async def aclose(self) -> None:
        self.closed = True


def make_request(
    path: str = "/items",
    method: str = "GET",
    query_string: bytes = b"",
    headers: Optional[List[Tuple[bytes, bytes]]] = None,
) -> Request:
    """Build a bare Starlette request for key-function and handler tests."""
    return Request(
        {
            "type": "http",
            "method": method,
            "scheme": "http",
            "server": ("testserver", 80),
            "root_path": "",
            "path": path,
            "query_string": query_string,
            "headers": headers or [],
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def request_factory():
    return make_request
