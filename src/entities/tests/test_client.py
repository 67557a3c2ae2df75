"""Tests for the async metadata client."""

import asyncio

import httpx
import pytest

from src.entities.client import FetchError, MetadataClient, backoff_seconds


def _run(coro):
    return asyncio.run(coro)


def test_get_sends_api_key_and_decodes_json():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": [{"id": 1}]})

    async def scenario():
        async with MetadataClient("secret", transport=httpx.MockTransport(handler), min_interval=0) as client:
            return await client.search("company", "pixar")

    data = _run(scenario())

    assert data == {"results": [{"id": 1}]}
    assert seen[0].url.path.endswith("/search/company")
    assert seen[0].url.params["api_key"] == "secret"
    assert seen[0].url.params["query"] == "pixar"


def test_retries_after_rate_limit():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(200, json={"ok": True})

    async def scenario():
        async with MetadataClient("k", transport=httpx.MockTransport(handler), min_interval=0) as client:
            return await client.get("/genre/movie/list")

    assert _run(scenario()) == {"ok": True}
    assert calls["count"] == 2


def test_error_status_raises_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"status_message": "not found"})

    async def scenario():
        async with MetadataClient("k", transport=httpx.MockTransport(handler), min_interval=0) as client:
            await client.company(99)

    with pytest.raises(FetchError) as excinfo:
        _run(scenario())
    assert excinfo.value.status == 404


def test_non_json_body_raises_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>", headers={"Content-Type": "text/html"})

    async def scenario():
        async with MetadataClient("k", transport=httpx.MockTransport(handler), min_interval=0) as client:
            await client.search("company", "disney")

    with pytest.raises(FetchError) as excinfo:
        _run(scenario())
    assert excinfo.value.status == 200
    assert "invalid JSON" in str(excinfo.value)


def test_detail_lookups_are_cached_per_session():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(200, json={"id": 7, "name": "Collection"})

    async def scenario():
        async with MetadataClient("k", transport=httpx.MockTransport(handler), min_interval=0) as client:
            first = await client.collection(7)
            second = await client.collection(7)
            return first, second, len(client.cache)

    first, second, cached = _run(scenario())
    assert first == second
    assert calls["count"] == 1
    assert cached == 1


def test_cache_is_discarded_on_close():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 1})

    async def scenario():
        client = MetadataClient("k", transport=httpx.MockTransport(handler), min_interval=0)
        async with client:
            await client.person(1)
            assert client.cache
        return client

    client = _run(scenario())
    assert client.cache == {}


def test_backoff_grows_and_caps():
    assert backoff_seconds(3) == 2
    assert backoff_seconds(2) == 4
    assert backoff_seconds(1) == 8
    assert backoff_seconds(0) == 8
