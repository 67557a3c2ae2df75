"""Shared gathering helpers for entity processors."""

import asyncio
from collections import Counter
from datetime import date
import logging
import re
from typing import Any, Iterable, Protocol, Sequence

from .client import FetchError, MetadataClient
from .model import COUNTRY_NAMES, GENRE_NAMES, Entity, EntityKind, _parse_year

log = logging.getLogger(__name__)

NAME_SUFFIXES = ("pictures", "studios", "entertainment", "productions", "films", "media")
_WORD_SPLIT_RE = re.compile(r"\s+")


class EntityProcessor(Protocol):
    """One processor per entity kind; all expose the same gather capability."""

    kind: EntityKind

    async def gather(
        self, client: MetadataClient, terms: Sequence[str], limit: int
    ) -> dict[str, Entity]:
        ...


def clamp_popularity(value: float) -> float:
    """Round and clamp a popularity score into [0, 100]."""
    return float(max(0, min(100, round(value))))


def current_year(today: date | None = None) -> int:
    return (today or date.today()).year


async def search_pages(
    client: MetadataClient, kind: str, term: str, max_pages: int
) -> list[dict[str, Any]]:
    """Collect search results for one term across bounded pages."""
    results: list[dict[str, Any]] = []
    for page in range(1, max_pages + 1):
        try:
            response = await client.search(kind, term, page)
        except FetchError as e:
            log.warning(f"Search {kind} '{term}' page {page} failed: {e}")
            break

        page_results = response.get("results") or []
        if not page_results:
            break
        results.extend(page_results)
        if page >= int(response.get("total_pages") or 1):
            break
    return results


async def gather_terms(
    terms: Iterable[str],
    limit: int,
    process_term,
    *,
    delay: float,
    label: str,
) -> dict[str, Entity]:
    """Run ``process_term`` for each term until ``limit`` entities exist.

    ``process_term(term, seen)`` returns entities for one term; ``seen`` is
    the set of entity ids already collected so processors can skip repeat
    detail lookups. A failing term is logged and skipped.
    """
    collected: dict[str, Entity] = {}
    for term in terms:
        if len(collected) >= limit:
            break
        try:
            found = await process_term(term, set(collected))
        except FetchError as e:
            log.warning(f"Failed to process {label} term '{term}': {e}")
            continue

        for entity in found:
            if len(collected) >= limit:
                break
            collected.setdefault(entity.id, entity)

        # Cooperative pause between terms for the provider rate limit
        await asyncio.sleep(delay)

    log.info(f"Collected {len(collected)} {label} entities")
    return collected


def dedupe_by_source_id(results: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: set[Any] = set()
    unique = []
    for result in results:
        source_id = result.get("id")
        if source_id is None or source_id in seen:
            continue
        seen.add(source_id)
        unique.append(result)
    return unique


def genre_frequency(movies: Iterable[dict[str, Any]]) -> Counter:
    counts: Counter = Counter()
    for movie in movies:
        for genre_id in movie.get("genre_ids") or ():
            name = GENRE_NAMES.get(genre_id)
            if name:
                counts[name] += 1
        for genre in movie.get("genres") or ():
            if isinstance(genre, dict) and genre.get("name"):
                counts[genre["name"]] += 1
    return counts


def top_genres(movies: Iterable[dict[str, Any]], n: int) -> list[str]:
    counts = genre_frequency(movies)
    return [name for name, _ in sorted(counts.items(), key=lambda x: (-x[1], x[0]))[:n]]


def movie_years(movies: Iterable[dict[str, Any]]) -> list[int]:
    years = [_parse_year(m.get("release_date")) for m in movies]
    return sorted(y for y in years if y > 1900)


def release_span(movies: Iterable[dict[str, Any]]) -> dict[str, int] | None:
    years = movie_years(movies)
    if not years:
        return None
    return {"start": years[0], "end": years[-1], "span": years[-1] - years[0] + 1}


def average_rating(movies: Sequence[dict[str, Any]]) -> float:
    if not movies:
        return 0.0
    return sum(m.get("vote_average") or 0.0 for m in movies) / len(movies)


def name_keywords(name: str) -> set[str]:
    """Lowercased name, its words longer than two chars, and suffix-less base."""
    lowered = name.lower().strip()
    keywords = {lowered} if lowered else set()
    keywords.update(w for w in _WORD_SPLIT_RE.split(lowered) if len(w) > 2)
    for suffix in NAME_SUFFIXES:
        if suffix in lowered:
            base = lowered.replace(suffix, "").strip()
            if len(base) > 2:
                keywords.add(base)
    return keywords


def country_keywords(code: str | None) -> set[str]:
    if not code:
        return set()
    return {code.lower(), COUNTRY_NAMES.get(code, code).lower()}


def sorted_keywords(keywords: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted(k for k in keywords if k and len(k) > 1))
