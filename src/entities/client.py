"""Async metadata client for the TMDb API."""

import asyncio
import logging
import os
import time
from typing import Any

import httpx

log = logging.getLogger(__name__)

BASE_URL = "https://api.themoviedb.org/3"
USER_AGENT = "entity-intel/0.1 (+catalog builder)"
CONNECT_TIMEOUT_SECONDS = 5.0
READ_TIMEOUT_SECONDS = 20.0
MIN_REQUEST_INTERVAL_SECONDS = 0.025
MAX_RETRIES = 3
MAX_BACKOFF_SECONDS = 8.0


class FetchError(RuntimeError):
    """A single provider lookup failed."""

    def __init__(self, path: str, status: int | None, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.status = status


def _cache_key(path: str, params: dict[str, Any] | None) -> str:
    if not params:
        return path
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{path}?{query}"


def backoff_seconds(retries_left: int) -> float:
    """Exponential backoff used when no Retry-After header is present."""
    return min(2 ** (4 - retries_left), MAX_BACKOFF_SECONDS)


class MetadataClient:
    """Per-build provider session.

    Owns the HTTP client, the rate-limit window and the detail cache. Use it
    as an async context manager so all three are discarded with the build.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = BASE_URL,
        min_interval: float = MIN_REQUEST_INTERVAL_SECONDS,
        max_retries: int = MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or os.environ.get("TMDB_API_KEY", "")
        self.base_url = base_url
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.cache: dict[str, Any] = {}
        self.request_count = 0
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._next_slot = 0.0

    async def __aenter__(self) -> "MetadataClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
            timeout=httpx.Timeout(READ_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS),
            trust_env=False,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.cache.clear()

    async def _wait_for_slot(self) -> None:
        # Reserve the slot before sleeping so concurrent callers queue up.
        now = time.monotonic()
        slot = max(now, self._next_slot)
        self._next_slot = slot + self.min_interval
        if slot > now:
            await asyncio.sleep(slot - now)

    async def get(
        self, path: str, params: dict[str, Any] | None = None, *, cached: bool = False
    ) -> dict[str, Any]:
        """GET a provider path and return decoded JSON."""
        if self._client is None:
            raise RuntimeError("MetadataClient used outside of 'async with'")

        key = _cache_key(path, params)
        if cached and key in self.cache:
            return self.cache[key]

        query = dict(params or {})
        if self.api_key:
            query["api_key"] = self.api_key

        retries_left = self.max_retries
        while True:
            await self._wait_for_slot()
            self.request_count += 1
            try:
                response = await self._client.get(path, params=query)
            except httpx.HTTPError as e:
                raise FetchError(path, None, str(e)) from e

            if response.status_code == 429 and retries_left > 0:
                retry_after = response.headers.get("Retry-After")
                delay = (
                    float(retry_after)
                    if retry_after and retry_after.replace(".", "", 1).isdigit()
                    else backoff_seconds(retries_left)
                )
                log.warning(f"Rate limited on {path}, retrying in {delay:.2f}s")
                retries_left -= 1
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise FetchError(path, response.status_code, f"HTTP {response.status_code}")

            try:
                data = response.json()
            except ValueError as e:
                raise FetchError(path, response.status_code, "invalid JSON") from e
            log.debug(f"GET {path} -> {response.status_code}")
            if cached:
                self.cache[key] = data
            return data

    async def search(self, kind: str, query: str, page: int = 1) -> dict[str, Any]:
        return await self.get(f"/search/{kind}", {"query": query, "page": page})

    async def company(self, company_id: int) -> dict[str, Any]:
        return await self.get(f"/company/{company_id}", cached=True)

    async def company_movies(self, company_id: int, page: int = 1) -> dict[str, Any]:
        return await self.get(
            "/discover/movie",
            {"with_companies": company_id, "sort_by": "popularity.desc", "page": page},
            cached=True,
        )

    async def collection(self, collection_id: int) -> dict[str, Any]:
        return await self.get(f"/collection/{collection_id}", cached=True)

    async def genre_list(self, media: str) -> dict[str, Any]:
        return await self.get(f"/genre/{media}/list", cached=True)

    async def person(self, person_id: int) -> dict[str, Any]:
        return await self.get(f"/person/{person_id}", cached=True)

    async def person_credits(self, person_id: int) -> dict[str, Any]:
        return await self.get(f"/person/{person_id}/movie_credits", cached=True)

    async def keyword_movies(self, keyword_id: int) -> dict[str, Any]:
        return await self.get(f"/keyword/{keyword_id}/movies", cached=True)
