"""Thematic keyword processor."""

from datetime import date
import logging
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
from .model import Entity, EntityKind

log = logging.getLogger(__name__)

DEFAULT_KEYWORD_TERMS = (
    "christmas", "halloween", "valentine", "summer", "winter",
    "superhero", "vampire", "zombie", "robot", "alien",
    "time travel", "space", "underwater", "post apocalyptic",
    "based on true story", "biography", "historical",
    "new york", "los angeles", "london", "paris", "tokyo",
    "small town", "big city", "rural", "urban", "suburban",
    "school", "college", "workplace", "hospital", "prison",
    "detective", "police", "lawyer", "doctor", "teacher",
    "assassin", "spy", "soldier", "pilot", "chef",
    "teenager", "child", "elderly", "family", "friendship",
)

KEYWORD_CATEGORIES: dict[str, tuple[str, ...]] = {
    "seasonal": ("christmas", "halloween", "valentine", "summer", "winter", "holiday"),
    "character_type": ("superhero", "vampire", "zombie", "robot", "alien", "detective", "spy"),
    "setting_location": ("new york", "los angeles", "london", "paris", "tokyo", "space"),
    "setting_type": ("school", "hospital", "prison", "workplace", "small town", "big city"),
    "profession": ("police", "lawyer", "doctor", "teacher", "soldier", "pilot", "chef"),
    "theme": ("friendship", "family", "love", "revenge", "survival", "coming of age"),
    "genre_element": ("time travel", "underwater", "post apocalyptic", "historical"),
    "source": ("based on true story", "biography", "novel", "comic book"),
    "demographic": ("teenager", "child", "elderly", "female protagonist", "male protagonist"),
    "mood": ("dark", "comedy", "romantic", "action", "suspense", "adventure"),
}

KEYWORD_SIGNIFICANCE = {
    "christmas": 0.9, "halloween": 0.9, "superhero": 0.95, "vampire": 0.85,
    "zombie": 0.8, "time travel": 0.9, "based on true story": 0.85,
    "friendship": 0.7, "family": 0.75, "school": 0.6, "police": 0.65,
    "new york": 0.6, "small town": 0.7, "hospital": 0.65,
    "teenager": 0.5, "love": 0.45, "comedy": 0.4, "action": 0.4,
}

_HIGH_SIGNIFICANCE = (
    "superhero", "vampire", "zombie", "time travel", "christmas",
    "based on", "true story", "biography", "adaptation",
)
_LOW_SIGNIFICANCE = ("action", "drama", "comedy", "love", "life", "man", "woman")

SYNONYMS: dict[str, tuple[str, ...]] = {
    "christmas": ("holiday", "xmas", "festive", "winter holiday"),
    "halloween": ("horror", "scary", "spooky", "october"),
    "superhero": ("comic book", "powers", "cape", "hero"),
    "vampire": ("bloodsucker", "undead", "fangs", "gothic"),
    "zombie": ("undead", "apocalypse", "walking dead", "infection"),
    "time travel": ("temporal", "past", "future", "timeline"),
    "space": ("sci-fi", "cosmic", "astronaut", "alien"),
    "detective": ("investigation", "mystery", "crime", "police"),
    "school": ("education", "student", "teacher", "classroom"),
    "friendship": ("buddy", "companion", "bond", "relationship"),
}


def categorize_keyword(name: str) -> str:
    lowered = name.lower()
    for category, markers in KEYWORD_CATEGORIES.items():
        if any(m in lowered or lowered in m for m in markers):
            return category

    if "christmas" in lowered or "holiday" in lowered:
        return "seasonal"
    if "school" in lowered or "college" in lowered:
        return "setting_type"
    if "city" in lowered or "town" in lowered:
        return "setting_location"
    if "based on" in lowered or "adaptation" in lowered:
        return "source"
    if "friendship" in lowered or "love" in lowered:
        return "theme"
    return "general"


def keyword_significance(name: str) -> float:
    lowered = name.lower()
    if lowered in KEYWORD_SIGNIFICANCE:
        return KEYWORD_SIGNIFICANCE[lowered]

    significance = 0.5
    if len(name) > 15:
        significance += 0.1
    if len(name.split()) > 2:
        significance += 0.1
    if any(p in lowered for p in _HIGH_SIGNIFICANCE):
        significance += 0.2
    if lowered in _LOW_SIGNIFICANCE:
        significance -= 0.2
    return max(0.1, min(1.0, round(significance, 2)))


def keyword_popularity(
    name: str, movie_total: int, movies: Sequence[dict[str, Any]], this_year: int
) -> float:
    score = 10.0 + min(40.0, movie_total / 2)

    predefined = KEYWORD_SIGNIFICANCE.get(name.lower())
    if predefined:
        score += predefined * 30

    recent = [y for y in movie_years(movies) if y >= this_year - 5]
    if recent:
        score += min(15, len(recent) * 3)

    if movies:
        avg = average_rating(movies)
        if avg >= 7.0:
            score += 10
        elif avg >= 6.0:
            score += 5
    return clamp_popularity(score)


def related_keywords(name: str) -> tuple[str, ...]:
    lowered = name.lower()
    related = {lowered}
    for key, synonyms in SYNONYMS.items():
        if key in lowered:
            related.update(synonyms)
    return sorted_keywords(related)


class KeywordProcessor:
    """Gathers thematic keywords and measures their usage across movies."""

    kind = EntityKind.KEYWORD

    def __init__(
        self,
        *,
        max_pages_per_term: int = 2,
        max_per_term: int = 5,
        min_popularity: float = 1,
        delay: float = 0.3,
        today: date | None = None,
    ):
        self.max_pages_per_term = max_pages_per_term
        self.max_per_term = max_per_term
        self.min_popularity = min_popularity
        self.delay = delay
        self.today = today

    async def gather(
        self, client: MetadataClient, terms: Sequence[str], limit: int
    ) -> dict[str, Entity]:
        async def process_term(term: str, seen: set[str]) -> list[Entity]:
            results = dedupe_by_source_id(
                await search_pages(client, "keyword", term, self.max_pages_per_term)
            )
            found = []
            for result in results[: self.max_per_term]:
                if f"keyword_{result['id']}" in seen:
                    continue
                try:
                    movies_page = await client.keyword_movies(result["id"])
                except FetchError as e:
                    log.warning(f"Keyword movies unavailable for '{result.get('name')}': {e}")
                    movies_page = {}
                entity = self.build_entity(result, movies_page)
                if self.is_valid(entity):
                    found.append(entity)
            return found

        return await gather_terms(
            terms or DEFAULT_KEYWORD_TERMS, limit, process_term, delay=self.delay, label="keyword"
        )

    def build_entity(self, keyword: dict[str, Any], movies_page: dict[str, Any] | None) -> Entity:
        movies_page = movies_page or {}
        movies = movies_page.get("results") or []
        movie_total = int(movies_page.get("total_results") or len(movies))
        name = keyword.get("name") or ""
        category = categorize_keyword(name)
        genres = top_genres(movies, 3)
        years = movie_years(movies)
        return Entity(
            id=f"keyword_{keyword['id']}",
            kind=EntityKind.KEYWORD,
            name=name,
            source_id=keyword["id"],
            description=f"{category.replace('_', ' ')} keyword: {name}",
            popularity=keyword_popularity(name, movie_total, movies, current_year(self.today)),
            rating=round(average_rating(movies), 2),
            genres=tuple(genres),
            keywords=related_keywords(name),
            payload={
                "category": category,
                "significance": keyword_significance(name),
                "movie_count": movie_total,
                "first_year": years[0] if years else None,
                "latest_year": years[-1] if years else None,
                "sample_movies": [
                    {k: m.get(k) for k in ("id", "title", "release_date")} for m in movies[:5]
                ],
            },
        )

    def is_valid(self, entity: Entity) -> bool:
        if not entity.id or not entity.name or entity.source_id is None:
            return False
        return entity.popularity >= self.min_popularity
