"""Person processor for actors, directors and crew."""

import logging
import math
import re
from typing import Any, Sequence

from .base import (
    dedupe_by_source_id,
    gather_terms,
    genre_frequency,
    movie_years,
    search_pages,
    sorted_keywords,
)
from .client import FetchError, MetadataClient
from .model import Entity, EntityKind

log = logging.getLogger(__name__)

DEFAULT_PERSON_TERMS = (
    "tom hanks", "leonardo dicaprio", "brad pitt", "will smith", "denzel washington",
    "robert downey jr", "scarlett johansson", "jennifer lawrence", "meryl streep",
    "sandra bullock", "angelina jolie", "matt damon", "christian bale",
    "christopher nolan", "martin scorsese", "quentin tarantino", "steven spielberg",
    "ridley scott", "david fincher", "peter jackson", "james cameron",
    "tim burton", "denis villeneuve", "jordan peele", "greta gerwig",
    "jackie chan", "zhang ziyi", "penelope cruz", "marion cotillard",
    "ken watanabe", "tilda swinton", "hugh jackman", "cate blanchett",
)

PROFESSION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "actor": ("acting", "actor", "actress", "voice actor", "performer"),
    "director": ("directing", "director", "filmmaker"),
    "producer": ("production", "producer", "executive producer"),
    "writer": ("writing", "writer", "screenplay", "story", "novelist"),
    "cinematographer": ("camera", "director of photography", "cinematographer"),
    "composer": ("sound", "composer", "music", "soundtrack"),
    "editor": ("editing", "editor", "film editor"),
    "designer": ("art", "costume & make-up", "production designer", "costume designer"),
}

# stage: (min years, max years, min credits, max credits)
CAREER_STAGES = (
    ("emerging", 0, 5, 1, 10),
    ("established", 6, 15, 11, 30),
    ("veteran", 16, 30, 31, 60),
    ("legend", 30, 100, 61, 200),
)

MAX_CREDITS = 20

_ALIAS_CLEAN_RE = re.compile(r"[^a-z\s]")


def categorize_profession(department: str | None) -> str | None:
    if not department:
        return None
    lowered = department.lower()
    for profession, markers in PROFESSION_CATEGORIES.items():
        if any(m == lowered or m in lowered for m in markers):
            return profession
    return None


def career_stage(credits: Sequence[dict[str, Any]]) -> str:
    total = len(credits)
    years = movie_years(credits)
    years_active = years[-1] - years[0] + 1 if years else 0
    for stage, min_years, max_years, min_credits, max_credits in CAREER_STAGES:
        if min_years <= years_active <= max_years and min_credits <= total <= max_credits:
            return stage

    if total >= 61:
        return "legend"
    if total >= 31:
        return "veteran"
    if total >= 11:
        return "established"
    return "emerging"


def genre_diversity(counts: dict[str, int]) -> float:
    """Normalized Shannon diversity of a genre histogram."""
    if len(counts) <= 1:
        return 0.0
    total = sum(counts.values())
    entropy = -sum((c / total) * math.log2(c / total) for c in counts.values())
    return round(entropy / math.log2(len(counts)), 3)


def analyze_career(cast: Sequence[dict[str, Any]], crew: Sequence[dict[str, Any]]) -> dict[str, Any]:
    credits = [*cast, *crew]
    analysis = {
        "stage": "unknown",
        "span_years": 0,
        "primary_role": "unknown",
        "versatility": "medium",
        "consistency": "medium",
    }
    if not credits:
        return analysis

    years = movie_years(credits)
    if years:
        analysis["span_years"] = years[-1] - years[0] + 1
    analysis["stage"] = career_stage(credits)

    if len(cast) > len(crew) * 2:
        analysis["primary_role"] = "actor"
    elif len(crew) > len(cast) * 2:
        analysis["primary_role"] = "crew"
    elif cast and crew:
        analysis["primary_role"] = "multi_role"

    genre_count = len(genre_frequency(credits))
    if genre_count >= 8:
        analysis["versatility"] = "high"
    elif genre_count <= 3:
        analysis["versatility"] = "low"

    if len(years) > 3:
        avg_gap = analysis["span_years"] / (len(years) - 1)
        if avg_gap <= 2:
            analysis["consistency"] = "high"
        elif avg_gap >= 5:
            analysis["consistency"] = "low"
    return analysis


def analyze_genre_specialization(credits: Sequence[dict[str, Any]]) -> dict[str, Any]:
    counts = genre_frequency(credits)
    total = sum(counts.values())
    if not total:
        return {"specialization": "unknown", "confidence": 0.0, "top_genres": []}
    ranked = sorted(counts.items(), key=lambda x: (-x[1], x[0]))
    confidence = ranked[0][1] / total
    return {
        "specialization": ranked[0][0] if confidence > 0.4 else "versatile",
        "confidence": round(confidence, 2),
        "top_genres": [g for g, _ in ranked[:5]],
        "diversity_score": genre_diversity(dict(counts)),
    }


def _credit_summary(credit: dict[str, Any]) -> dict[str, Any]:
    keys = ("id", "title", "release_date", "vote_average", "popularity", "character", "job")
    return {k: credit[k] for k in keys if credit.get(k) is not None}


class PersonProcessor:
    """Gathers people with their details and movie credits."""

    kind = EntityKind.PERSON

    def __init__(
        self,
        *,
        max_pages_per_term: int = 2,
        max_per_term: int = 15,
        min_popularity: float = 10,
        delay: float = 0.3,
    ):
        self.max_pages_per_term = max_pages_per_term
        self.max_per_term = max_per_term
        self.min_popularity = min_popularity
        self.delay = delay

    async def gather(
        self, client: MetadataClient, terms: Sequence[str], limit: int
    ) -> dict[str, Entity]:
        async def process_term(term: str, seen: set[str]) -> list[Entity]:
            results = dedupe_by_source_id(
                await search_pages(client, "person", term, self.max_pages_per_term)
            )
            found = []
            for result in results:
                if len(found) >= self.max_per_term:
                    break
                if f"person_{result['id']}" in seen:
                    continue
                if (result.get("popularity") or 0) < self.min_popularity:
                    continue
                try:
                    details = await client.person(result["id"])
                except FetchError as e:
                    log.warning(f"Person details unavailable for {result.get('name')}: {e}")
                    details = None
                try:
                    credits = await client.person_credits(result["id"])
                except FetchError as e:
                    log.warning(f"Credits unavailable for {result.get('name')}: {e}")
                    credits = None
                entity = self.build_entity(result, details, credits)
                if self.is_valid(entity):
                    found.append(entity)
            return found

        return await gather_terms(
            terms or DEFAULT_PERSON_TERMS, limit, process_term, delay=self.delay, label="person"
        )

    def build_entity(
        self,
        person: dict[str, Any],
        details: dict[str, Any] | None,
        credits: dict[str, Any] | None,
    ) -> Entity:
        data = details or person
        credits = credits or {}
        cast = sorted(credits.get("cast") or [], key=lambda c: -(c.get("popularity") or 0))
        crew = sorted(credits.get("crew") or [], key=lambda c: -(c.get("popularity") or 0))
        all_credits = [*cast, *crew]
        name = person.get("name") or ""
        department = person.get("known_for_department") or data.get("known_for_department")

        specialization = analyze_genre_specialization(all_credits)
        top_genres = specialization["top_genres"]

        keywords = {name.lower()}
        keywords.update(w for w in name.lower().split() if len(w) > 2)
        if department:
            keywords.add(department.lower())
        profession = categorize_profession(department)
        if profession:
            keywords.add(profession)
        for place in (data.get("place_of_birth") or "").lower().split(","):
            if len(place.strip()) > 2:
                keywords.add(place.strip())
        keywords.update(g.lower() for g in top_genres[:3])
        keywords.add(career_stage(all_credits) if all_credits else "emerging")
        for alias in (data.get("also_known_as") or [])[:2]:
            cleaned = _ALIAS_CLEAN_RE.sub("", alias.lower()).strip()
            if len(cleaned) > 2:
                keywords.add(cleaned)

        years = movie_years(all_credits)
        ratings = [c.get("vote_average") or 0 for c in all_credits if c.get("vote_average")]
        return Entity(
            id=f"person_{person['id']}",
            kind=EntityKind.PERSON,
            name=name,
            source_id=person["id"],
            description=data.get("biography") or "",
            popularity=float(person.get("popularity") or data.get("popularity") or 0.0),
            rating=round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
            genres=tuple(top_genres),
            keywords=sorted_keywords(keywords),
            aliases=tuple(data.get("also_known_as") or ()),
            payload={
                "known_for_department": department,
                "profession": profession,
                "birthday": data.get("birthday"),
                "place_of_birth": data.get("place_of_birth"),
                "career_span": {"start": years[0], "end": years[-1]} if years else None,
                "career": analyze_career(cast, crew),
                "genre_specialization": specialization,
                "acting_credits": len(cast),
                "crew_credits": len(crew),
                "credits": {
                    "cast": [_credit_summary(c) for c in cast[:MAX_CREDITS]],
                    "crew": [_credit_summary(c) for c in crew[:MAX_CREDITS]],
                },
            },
        )

    def is_valid(self, entity: Entity) -> bool:
        if not entity.id or not entity.name or entity.source_id is None:
            return False
        return entity.popularity >= self.min_popularity
