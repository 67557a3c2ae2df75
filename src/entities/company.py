"""Production company processor."""

from datetime import date
import logging
import re
from typing import Any, Sequence

from .base import (
    clamp_popularity,
    country_keywords,
    current_year,
    dedupe_by_source_id,
    gather_terms,
    genre_frequency,
    movie_years,
    name_keywords,
    average_rating,
    search_pages,
    sorted_keywords,
    top_genres,
)
from .client import FetchError, MetadataClient
from .model import Entity, EntityKind

log = logging.getLogger(__name__)

DEFAULT_COMPANY_TERMS = (
    "disney", "marvel", "warner", "universal", "paramount", "sony", "fox",
    "netflix", "amazon", "hbo", "apple", "hulu", "peacock",
    "a24", "neon", "focus features", "searchlight", "blumhouse",
    "pixar", "dreamworks", "illumination", "ghibli", "laika",
    "hallmark", "lifetime", "syfy", "discovery", "national geographic",
)

STUDIO_CATEGORIES: dict[str, tuple[str, ...]] = {
    "major_studio": ("disney", "warner", "universal", "paramount", "sony", "fox", "columbia"),
    "streaming": ("netflix", "amazon", "hbo", "hulu", "apple", "peacock"),
    "independent": ("a24", "neon", "focus features", "searchlight", "annapurna"),
    "animation": ("pixar", "dreamworks", "illumination", "ghibli", "laika"),
    "horror": ("blumhouse", "new line", "dimension"),
    "family": ("hallmark", "disney", "nickelodeon", "cartoon network"),
    "documentary": ("national geographic", "discovery", "hbo documentary"),
    "international": ("studio ghibli", "gaumont", "pathé", "toho"),
}

CATEGORY_DESCRIPTIONS = {
    "major_studio": "Major film studio",
    "streaming": "Streaming service and content producer",
    "independent": "Independent film production company",
    "animation": "Animation studio",
    "horror": "Horror film specialist",
    "family": "Family entertainment company",
    "documentary": "Documentary production company",
    "television": "Television production company",
}

WELL_KNOWN_MAJORS = ("disney", "warner", "universal", "paramount", "sony", "fox", "marvel", "netflix")
WELL_KNOWN_POPULAR = ("pixar", "a24", "blumhouse", "hallmark", "hbo")

_SEQUEL_MARKER_RE = re.compile(r"\b(part|chapter|episode|volume)\s*\d+", re.IGNORECASE)
_ROMAN_RE = re.compile(r"\b(ii|iii|iv|v|vi|vii|viii|ix|x)\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\b\d+\b")


def categorize_company(name: str, description: str = "") -> str:
    name_lower = name.lower()
    for category, markers in STUDIO_CATEGORIES.items():
        if any(marker in name_lower for marker in markers):
            return category

    desc_lower = (description or "").lower()
    for fallback in ("animation", "documentary", "television", "streaming", "independent"):
        if fallback in desc_lower:
            return fallback
    return "production"


def company_popularity(
    name: str, movie_total: int, movies: Sequence[dict[str, Any]], this_year: int
) -> float:
    """0-100 score from catalog size, fame, recent output and quality."""
    score = 10.0 + min(40.0, movie_total / 5)

    lowered = name.lower()
    if any(studio in lowered for studio in WELL_KNOWN_MAJORS):
        score += 35
    if any(studio in lowered for studio in WELL_KNOWN_POPULAR):
        score += 25

    recent = [y for y in movie_years(movies) if y >= this_year - 5]
    if recent:
        score += min(15, len(recent) * 2)

    if movies:
        avg = average_rating(movies)
        if avg >= 7.0:
            score += 10
        elif avg >= 6.0:
            score += 5

    return clamp_popularity(score)


def _franchise_base_title(title: str | None) -> str | None:
    if not title:
        return None
    cleaned = _SEQUEL_MARKER_RE.sub("", title)
    cleaned = _ROMAN_RE.sub("", cleaned)
    cleaned = _NUMBER_RE.sub("", cleaned).strip()
    return cleaned if len(cleaned) > 3 else None


def analyze_studio_universe(movies: Sequence[dict[str, Any]]) -> dict[str, Any]:
    analysis = {"has_connected_universe": False, "franchise_count": 0, "universe_type": "standalone"}
    if len(movies) < 5:
        return analysis

    groups: dict[str, int] = {}
    for movie in movies:
        base = _franchise_base_title(movie.get("title"))
        if base:
            groups[base] = groups.get(base, 0) + 1

    franchises = sum(1 for count in groups.values() if count >= 2)
    analysis["franchise_count"] = franchises
    if franchises >= 3:
        analysis["has_connected_universe"] = True
        analysis["universe_type"] = "cinematic_universe"
    elif franchises >= 1:
        analysis["universe_type"] = "franchise_studio"
    return analysis


def analyze_genre_specialization(movies: Sequence[dict[str, Any]]) -> dict[str, Any]:
    counts = genre_frequency(movies)
    total = sum(counts.values())
    if not total:
        return {"specialization": "unknown", "confidence": 0.0, "top_genres": []}

    ranked = sorted(counts.items(), key=lambda x: (-x[1], x[0]))
    top_name, top_count = ranked[0]
    confidence = top_count / total
    return {
        "specialization": top_name if confidence > 0.4 else "diverse",
        "confidence": round(confidence, 2),
        "top_genres": [
            {"genre": g, "count": c, "percentage": round(c / total * 100)}
            for g, c in ranked[:5]
        ],
    }


def analyze_production_scale(movies: Sequence[dict[str, Any]]) -> dict[str, Any]:
    count = len(movies)
    if not count:
        return {"scale": "unknown", "movie_count": 0, "average_popularity": 0.0}

    if count >= 100:
        scale = "major"
    elif count >= 50:
        scale = "large"
    elif count >= 20:
        scale = "medium"
    elif count >= 5:
        scale = "small"
    else:
        scale = "boutique"
    avg_pop = sum(m.get("popularity") or 0.0 for m in movies) / count
    return {"scale": scale, "movie_count": count, "average_popularity": round(avg_pop, 1)}


def analyze_time_period(movies: Sequence[dict[str, Any]], this_year: int) -> dict[str, Any]:
    years = movie_years(movies)
    if not years:
        return {"period": "unknown", "start_year": None, "end_year": None, "span": 0}

    start, end = years[0], years[-1]
    if end >= this_year - 2:
        period = "active"
    elif end >= this_year - 10:
        period = "recent"
    elif end >= this_year - 30:
        period = "classic"
    else:
        period = "historical"
    return {
        "period": period,
        "start_year": start,
        "end_year": end,
        "span": end - start + 1,
        "is_active": end >= this_year - 5,
    }


class CompanyProcessor:
    """Gathers production companies and enriches them with their filmography."""

    kind = EntityKind.COMPANY

    def __init__(
        self,
        *,
        max_pages_per_term: int = 3,
        max_per_term: int = 50,
        min_popularity: float = 5,
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
                await search_pages(client, "company", term, self.max_pages_per_term)
            )
            found = []
            for result in results:
                if len(found) >= self.max_per_term:
                    break
                if f"company_{result['id']}" in seen:
                    continue
                entity = await self.enrich(client, result)
                if self.is_valid(entity):
                    found.append(entity)
                else:
                    log.debug(f"Discarding company {result.get('name')}")
            return found

        return await gather_terms(
            terms or DEFAULT_COMPANY_TERMS, limit, process_term, delay=self.delay, label="company"
        )

    async def enrich(self, client: MetadataClient, company: dict[str, Any]) -> Entity:
        company_id = company["id"]
        try:
            details = await client.company(company_id)
        except FetchError as e:
            log.warning(f"Company details unavailable for {company.get('name')}: {e}")
            details = {}
        try:
            movies_page = await client.company_movies(company_id)
        except FetchError as e:
            log.warning(f"Company movies unavailable for {company.get('name')}: {e}")
            movies_page = {}
        return self.build_entity(company, details, movies_page)

    def build_entity(
        self,
        company: dict[str, Any],
        details: dict[str, Any] | None,
        movies_page: dict[str, Any] | None,
    ) -> Entity:
        """Assemble the company entity from search, details and movies data."""
        details = details or {}
        movies_page = movies_page or {}
        movies = movies_page.get("results") or []
        movie_total = int(movies_page.get("total_results") or len(movies))
        name = company.get("name") or ""
        this_year = current_year(self.today)

        category = categorize_company(name, details.get("description") or "")
        description = details.get("description") or (
            f"{CATEGORY_DESCRIPTIONS.get(category, 'Production company')}: {name}"
        )
        genres = top_genres(movies, 3)
        keywords = name_keywords(name)
        keywords.add(category)
        keywords.update(g.lower() for g in genres)
        keywords.update(country_keywords(company.get("origin_country")))

        sample = [
            {k: m.get(k) for k in ("id", "title", "release_date", "vote_average", "genre_ids")}
            for m in movies[:10]
        ]
        origin = company.get("origin_country")
        return Entity(
            id=f"company_{company['id']}",
            kind=EntityKind.COMPANY,
            name=name,
            source_id=company["id"],
            description=description,
            popularity=company_popularity(name, movie_total, movies, this_year),
            rating=round(average_rating(movies), 2),
            genres=tuple(genres),
            keywords=sorted_keywords(keywords),
            companies=({"id": company["id"], "name": name},),
            countries=(origin,) if origin else (),
            payload={
                "category": category,
                "movie_count": movie_total,
                "headquarters": details.get("headquarters"),
                "homepage": details.get("homepage"),
                "sample_movies": sample,
                "studio_universe": analyze_studio_universe(movies),
                "genre_specialization": analyze_genre_specialization(movies),
                "production_scale": analyze_production_scale(movies),
                "time_period": analyze_time_period(movies, this_year),
            },
        )

    def is_valid(self, entity: Entity) -> bool:
        if not entity.id or not entity.name or entity.source_id is None:
            return False
        if entity.popularity < self.min_popularity:
            return False
        if not entity.payload.get("movie_count") and not entity.description:
            return False
        return True
