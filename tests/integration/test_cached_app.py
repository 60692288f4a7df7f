"""
Integration tests: FastAPI application behind the response cache.

Requests go through the real middleware stack via httpx's ASGI
transport; Redis is the in-memory double from conftest.
"""

import httpx
import pytest
from fastapi import FastAPI

from response_cache import ResponseCache, path_and_query_key, path_key


class ItemsApp:
    """FastAPI app counting downstream invocations per path."""

    def __init__(self, cache: ResponseCache, **options):
        self.calls = {}
        self.app = FastAPI(middleware=[cache.cache(**options)])

        @self.app.get("/items")
        async def list_items(page: int = 1):
            self._count("/items")
            return {"id": 1} if page == 1 else {"id": page}

        @self.app.get("/health")
        async def health():
            self._count("/health")
            return {"status": "healthy"}

    def _count(self, path: str) -> None:
        self.calls[path] = self.calls.get(path, 0) + 1

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app), base_url="http://testserver"
        )


@pytest.fixture
def cache(fake_redis):
    return ResponseCache("redis://localhost:6379", 60, path_key, client=fake_redis)


@pytest.mark.asyncio
async def test_items_example_round_trip(cache, fake_redis):
    items = ItemsApp(cache)

    async with items.client() as client:
        first = await client.get("/items")
        second = await client.get("/items")

    assert first.status_code == 200
    assert first.content == b'{"id":1}'
    assert fake_redis.writes == [("/items", 60, b'{"id":1}')]
    assert second.status_code == 200
    assert second.content == first.content
    assert second.headers["content-type"] == "application/json"
    assert items.calls["/items"] == 1


@pytest.mark.asyncio
async def test_connects_on_first_request(cache, fake_redis):
    items = ItemsApp(cache)
    assert cache.store.is_connected is False

    async with items.client() as client:
        await client.get("/items")

    assert cache.store.is_connected is True


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(cache, fake_redis, clock):
    items = ItemsApp(cache)

    async with items.client() as client:
        await client.get("/items")
        clock.advance(59)
        await client.get("/items")
        assert items.calls["/items"] == 1

        clock.advance(1)
        await client.get("/items")

    assert items.calls["/items"] == 2
    assert len(fake_redis.writes) == 2


@pytest.mark.asyncio
async def test_remove_invalidates_entry(cache):
    items = ItemsApp(cache)

    async with items.client() as client:
        await client.get("/items")
        assert await cache.remove(["/items"]) == 1
        await client.get("/items")

    assert items.calls["/items"] == 2


@pytest.mark.asyncio
async def test_store_down_behaves_as_permanent_miss(cache, fake_redis):
    fake_redis.down = True
    items = ItemsApp(cache)

    async with items.client() as client:
        responses = [await client.get("/items") for _ in range(3)]

    assert [r.status_code for r in responses] == [200, 200, 200]
    assert all(r.content == b'{"id":1}' for r in responses)
    assert items.calls["/items"] == 3
    assert fake_redis.writes == []
    assert cache.store.is_connected is False


@pytest.mark.asyncio
async def test_caching_resumes_when_store_recovers(cache, fake_redis):
    fake_redis.down = True
    items = ItemsApp(cache)

    async with items.client() as client:
        await client.get("/items")
        fake_redis.down = False
        await client.get("/items")
        await client.get("/items")

    assert items.calls["/items"] == 2
    assert cache.store.is_connected is True


@pytest.mark.asyncio
async def test_excluded_paths_never_touch_store(cache, fake_redis):
    items = ItemsApp(cache, exclude_paths=["/health"])

    async with items.client() as client:
        await client.get("/health")
        await client.get("/health")

    assert items.calls["/health"] == 2
    assert fake_redis.gets == []


@pytest.mark.asyncio
async def test_disabled_cache_passes_through(cache, fake_redis):
    items = ItemsApp(cache, enabled=False)

    async with items.client() as client:
        await client.get("/items")
        await client.get("/items")

    assert items.calls["/items"] == 2
    assert fake_redis.data == {}


@pytest.mark.asyncio
async def test_key_function_separates_queries(fake_redis):
    cache = ResponseCache(
        "redis://localhost:6379", 30, path_and_query_key, client=fake_redis
    )
    items = ItemsApp(cache)

    async with items.client() as client:
        page_one = await client.get("/items", params={"page": 1})
        page_two = await client.get("/items", params={"page": 2})
        page_two_again = await client.get("/items", params={"page": 2})

    assert page_one.json() == {"id": 1}
    assert page_two.json() == {"id": 2}
    assert page_two_again.content == page_two.content
    assert items.calls["/items"] == 2
    assert set(fake_redis.data) == {"/items?page=1", "/items?page=2"}


@pytest.mark.asyncio
async def test_install_on_existing_app(fake_redis):
    cache = ResponseCache("redis://localhost:6379", 60, path_key, client=fake_redis)
    app = FastAPI()
    calls = []

    @app.get("/items")
    async def list_items():
        calls.append(1)
        return {"id": 1}

    cache.install(app)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        await client.get("/items")
        await client.get("/items")

    assert len(calls) == 1
