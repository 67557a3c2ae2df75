"""Movie collection (franchise) processor."""

from datetime import date
import logging
import math
import re
from typing import Any, Sequence

from .base import (
    average_rating,
    clamp_popularity,
    current_year,
    dedupe_by_source_id,
    gather_terms,
    movie_years,
    search_pages,
    sorted_keywords,
    top_genres,
)
from .client import FetchError, MetadataClient
from .model import Entity, EntityKind, _parse_year

log = logging.getLogger(__name__)

DEFAULT_COLLECTION_TERMS = (
    "batman", "superman", "spider-man", "x-men", "avengers", "marvel",
    "star wars", "star trek", "james bond", "fast and furious", "mission impossible",
    "harry potter", "lord of the rings", "hobbit", "pirates of the caribbean",
    "transformers", "jurassic park", "alien", "predator", "terminator",
    "rocky", "rambo", "indiana jones", "back to the future", "toy story",
    "halloween", "friday the 13th", "nightmare on elm street", "saw", "scream",
    "conjuring", "insidious", "paranormal activity", "final destination",
    "american pie", "meet the parents", "rush hour", "hangover", "anchorman",
    "shrek", "madagascar", "ice age", "despicable me", "how to train your dragon",
)

FRANCHISE_TYPES: dict[str, tuple[str, ...]] = {
    "superhero": ("batman", "superman", "spider-man", "x-men", "avengers", "marvel", "dc"),
    "sci_fi": ("star wars", "star trek", "alien", "predator", "terminator", "transformers"),
    "action": ("james bond", "fast and furious", "mission impossible", "rambo", "rocky"),
    "fantasy": ("lord of the rings", "hobbit", "harry potter", "chronicles of narnia"),
    "horror": ("halloween", "friday the 13th", "nightmare on elm street", "saw", "scream"),
    "comedy": ("american pie", "meet the parents", "rush hour", "hangover", "anchorman"),
    "animation": ("toy story", "shrek", "madagascar", "ice age", "despicable me"),
    "adventure": ("indiana jones", "pirates of the caribbean", "jurassic park"),
}

MAJOR_FRANCHISE_NAMES = (
    "batman", "superman", "spider-man", "star wars", "marvel",
    "harry potter", "fast and furious", "james bond",
)

FRANCHISE_INDICATORS = ("collection", "saga", "trilogy", "series", "universe", "chronicles")
NAME_BONUSES = {"collection": 10, "saga": 15, "universe": 20, "trilogy": 12}

COMMON_CHARACTERS = (
    "batman", "superman", "spider-man", "iron man", "captain america",
    "thor", "hulk", "wolverine", "harry potter", "james bond",
    "indiana jones", "rocky", "rambo", "john wick",
)

_INDICATOR_RE = re.compile(r"\b(collection|saga|trilogy|series|chronicles|universe)\b", re.IGNORECASE)
_NUMBERING_RE = re.compile(r"\b(\d+|ii|iii|iv|v|vi|vii|viii|ix|x)\b", re.IGNORECASE)
_ROMAN_VALUES = {"ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6, "vii": 7, "viii": 8, "ix": 9, "x": 10}


def franchise_type(name: str) -> str:
    lowered = name.lower()
    for kind, markers in FRANCHISE_TYPES.items():
        if any(marker in lowered for marker in markers):
            return kind
    return "general"


def base_franchise_name(name: str) -> str:
    return _INDICATOR_RE.sub("", name).strip()


def collection_popularity(name: str, parts: Sequence[dict[str, Any]]) -> float:
    score = 20.0 + min(30, len(parts) * 5)

    lowered = name.lower()
    if any(franchise in lowered for franchise in MAJOR_FRANCHISE_NAMES):
        score += 35
    for marker, bonus in NAME_BONUSES.items():
        if marker in lowered:
            score += bonus

    if parts:
        avg = average_rating(parts)
        if avg >= 7.5:
            score += 15
        elif avg >= 6.5:
            score += 10
        elif avg >= 5.5:
            score += 5
        if max((p.get("popularity") or 0) for p in parts) > 50:
            score += 10

    return clamp_popularity(score)


def collection_release_span(parts: Sequence[dict[str, Any]]) -> dict[str, Any] | None:
    years = movie_years(parts)
    if not years:
        return None
    gaps = [b - a for a, b in zip(years, years[1:])]
    return {
        "start_year": years[0],
        "end_year": years[-1],
        "span_years": years[-1] - years[0] + 1,
        "total_movies": len(parts),
        "average_gap": round(sum(gaps) / len(gaps), 1) if gaps else 0,
        "longest_gap": max(gaps) if gaps else 0,
    }


def _halves_average(values: list[float]) -> tuple[float, float]:
    first = values[: math.ceil(len(values) / 2)]
    second = values[len(values) // 2:]
    return sum(first) / len(first), sum(second) / len(second)


def franchise_health(parts: Sequence[dict[str, Any]], this_year: int) -> dict[str, Any]:
    dated = sorted((p for p in parts if p.get("release_date")), key=lambda p: p["release_date"])
    if len(dated) < 2:
        return {"health": "insufficient_data", "score": 0}

    score = 50
    ratings = [p.get("vote_average") or 0 for p in dated]
    ratings = [r for r in ratings if r > 0]
    first_avg = second_avg = 0.0
    if len(ratings) >= 2:
        first_avg, second_avg = _halves_average(ratings)
        if second_avg > first_avg:
            score += 20
        elif second_avg < first_avg - 1:
            score -= 15

    span = collection_release_span(parts)
    if span and span["average_gap"] <= 4:
        score += 15
    elif span and span["average_gap"] > 8:
        score -= 10

    since_latest = this_year - max(_parse_year(p["release_date"]) for p in dated)
    if since_latest <= 3:
        score += 15
    elif since_latest > 10:
        score -= 20

    avg = sum(ratings) / len(ratings) if ratings else 0.0
    if avg >= 7.0:
        score += 20
    elif avg < 5.0:
        score -= 15

    score = max(0, min(100, score))
    if score >= 75:
        health = "thriving"
    elif score >= 60:
        health = "healthy"
    elif score >= 40:
        health = "stable"
    elif score >= 25:
        health = "declining"
    else:
        health = "struggling"
    return {
        "health": health,
        "score": score,
        "rating_trend": "improving" if second_avg > first_avg else "declining",
        "recent_activity": "active" if since_latest <= 3 else "dormant",
    }


def _title_number(title: str) -> int | None:
    match = _NUMBERING_RE.search(title or "")
    if not match:
        return None
    token = match.group(1).lower()
    return int(token) if token.isdigit() else _ROMAN_VALUES.get(token)


def analyze_sequencing(parts: Sequence[dict[str, Any]]) -> dict[str, Any]:
    if len(parts) < 2:
        return {"type": "single", "has_numbering": False, "is_chronological": True}

    dated = sorted((p for p in parts if p.get("release_date")), key=lambda p: p["release_date"])
    numbers = [n for n in (_title_number(p.get("title", "")) for p in dated) if n is not None]
    chronological = len(numbers) > 1 and all(b > a for a, b in zip(numbers, numbers[1:]))

    count = len(parts)
    if count == 2:
        kind = "duology"
    elif count == 3:
        kind = "trilogy"
    elif count <= 6:
        kind = "series"
    else:
        kind = "franchise"
    return {
        "type": kind,
        "has_numbering": any(_NUMBERING_RE.search(p.get("title", "")) for p in parts),
        "is_chronological": chronological,
        "movie_count": count,
    }


def critical_reception(parts: Sequence[dict[str, Any]]) -> dict[str, Any]:
    ratings = [p["vote_average"] for p in parts if (p.get("vote_average") or 0) > 0]
    if not ratings:
        return {"overall": "unknown", "consistency": "unknown"}

    avg = sum(ratings) / len(ratings)
    std_dev = math.sqrt(sum((r - avg) ** 2 for r in ratings) / len(ratings))
    if avg >= 7.5:
        overall = "excellent"
    elif avg >= 6.5:
        overall = "good"
    elif avg >= 5.5:
        overall = "mixed"
    else:
        overall = "poor"
    if std_dev <= 0.5:
        consistency = "very_consistent"
    elif std_dev <= 1.0:
        consistency = "consistent"
    elif std_dev <= 1.5:
        consistency = "variable"
    else:
        consistency = "inconsistent"
    return {
        "overall": overall,
        "consistency": consistency,
        "average_rating": round(avg, 1),
        "standard_deviation": round(std_dev, 2),
    }


def collection_keywords(name: str, parts: Sequence[dict[str, Any]], genres: Sequence[str]) -> tuple[str, ...]:
    lowered = name.lower()
    keywords = {lowered}
    base = base_franchise_name(lowered)
    if base and base != lowered:
        keywords.add(base)
    for indicator in FRANCHISE_INDICATORS:
        if indicator in lowered:
            keywords.add("franchise")
            keywords.add(indicator)
    for part in parts:
        title = (part.get("title") or "").lower()
        keywords.update(c for c in COMMON_CHARACTERS if c in title)
    keywords.add(franchise_type(name))
    keywords.update(g.lower() for g in genres[:3])
    return sorted_keywords(keywords)


class CollectionProcessor:
    """Gathers franchise collections and analyses their parts."""

    kind = EntityKind.COLLECTION

    def __init__(
        self,
        *,
        max_pages_per_term: int = 2,
        max_per_term: int = 30,
        min_movies: int = 2,
        delay: float = 0.3,
        today: date | None = None,
    ):
        self.max_pages_per_term = max_pages_per_term
        self.max_per_term = max_per_term
        self.min_movies = min_movies
        self.delay = delay
        self.today = today

    async def gather(
        self, client: MetadataClient, terms: Sequence[str], limit: int
    ) -> dict[str, Entity]:
        async def process_term(term: str, seen: set[str]) -> list[Entity]:
            results = dedupe_by_source_id(
                await search_pages(client, "collection", term, self.max_pages_per_term)
            )
            found = []
            for result in results:
                if len(found) >= self.max_per_term:
                    break
                if f"collection_{result['id']}" in seen:
                    continue
                try:
                    details = await client.collection(result["id"])
                except FetchError as e:
                    log.warning(f"Collection details unavailable for {result.get('name')}: {e}")
                    details = None
                entity = self.build_entity(result, details)
                if self.is_valid(entity):
                    found.append(entity)
            return found

        return await gather_terms(
            terms or DEFAULT_COLLECTION_TERMS, limit, process_term, delay=self.delay, label="collection"
        )

    def build_entity(self, collection: dict[str, Any], details: dict[str, Any] | None) -> Entity:
        data = details or collection
        parts = data.get("parts") or []
        name = collection.get("name") or data.get("name") or ""
        genres = top_genres(parts, 5)
        span = collection_release_span(parts)
        this_year = current_year(self.today)
        first_date = min((p["release_date"] for p in parts if p.get("release_date")), default=None)

        return Entity(
            id=f"collection_{collection['id']}",
            kind=EntityKind.COLLECTION,
            name=name,
            source_id=collection["id"],
            description=data.get("overview") or collection.get("overview") or "",
            popularity=collection_popularity(name, parts),
            rating=round(average_rating(parts), 2),
            release_date=first_date,
            genres=tuple(genres),
            keywords=collection_keywords(name, parts, genres),
            collection_id=collection["id"],
            collection_name=name,
            payload={
                "movie_count": len(parts),
                "parts": [
                    {k: p.get(k) for k in ("id", "title", "release_date", "vote_average")}
                    for p in parts
                ],
                "franchise_type": franchise_type(name),
                "release_span": span,
                "franchise_health": franchise_health(parts, this_year),
                "sequencing": analyze_sequencing(parts),
                "critical_reception": critical_reception(parts),
            },
        )

    def is_valid(self, entity: Entity) -> bool:
        if not entity.id or not entity.name or entity.source_id is None:
            return False
        if entity.payload.get("movie_count", 0) < self.min_movies:
            return False
        return True
