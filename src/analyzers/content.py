"""Direct connections from shared genres, studios, talent, collections and ratings."""

from dataclasses import dataclass
from typing import Any, Mapping

from ..entities.model import Entity
from ..graph.types import Connection, Dimension
from .base import make_connection, others, sort_by_strength
from .franchise import analyze_franchise, are_franchise_related

GENRE_WEIGHTS = {
    "Action": 0.85,
    "Comedy": 0.80,
    "Drama": 0.75,
    "Horror": 0.90,
    "Romance": 0.85,
    "Science Fiction": 0.80,
    "Fantasy": 0.80,
    "Thriller": 0.85,
    "Animation": 0.75,
    "Documentary": 0.70,
}
DISTINCTIVE_GENRES = frozenset({"Horror", "Romance", "Documentary", "Animation"})

MAJOR_STUDIO_NAMES = (
    "Marvel Studios",
    "Walt Disney Pictures",
    "Warner Bros.",
    "Universal Pictures",
    "Paramount Pictures",
    "Sony Pictures",
)
PRESTIGE_STUDIO_NAMES = ("A24", "Focus Features", "Searchlight Pictures", "Neon")

KEY_CREW_JOBS = ("Director", "Producer", "Executive Producer", "Writer", "Screenplay")
KEY_ROLES = frozenset({"Director", "Producer", "Writer"})
CREW_IMPORTANCE = {
    "Director": 0.95,
    "Producer": 0.85,
    "Executive Producer": 0.8,
    "Writer": 0.8,
    "Screenplay": 0.8,
    "Cinematographer": 0.7,
    "Editor": 0.7,
    "Composer": 0.65,
}


@dataclass(frozen=True)
class Talent:
    id: Any
    name: str
    job: str
    importance: float
    character: str | None = None


def cast_importance(person: Mapping[str, Any]) -> float:
    importance = 0.5
    order = person.get("order")
    if order is not None:
        if order < 3:
            importance = 0.9
        elif order < 5:
            importance = 0.8
        elif order < 10:
            importance = 0.7
    if (person.get("popularity") or 0) > 20:
        importance = min(0.95, importance + 0.1)
    return importance


def extract_talent(entity: Entity) -> list[Talent]:
    talent = []
    for person in entity.cast:
        if person.get("id") and person.get("name"):
            talent.append(
                Talent(person["id"], person["name"], "Actor", cast_importance(person), person.get("character"))
            )
    for person in entity.crew:
        job = person.get("job")
        if person.get("id") and person.get("name") and job in KEY_CREW_JOBS:
            talent.append(Talent(person["id"], person["name"], job, CREW_IMPORTANCE.get(job, 0.6)))
    return talent


def common_talent(mine: list[Talent], theirs: list[Talent]) -> list[Talent]:
    by_id: dict[Any, Talent] = {}
    for person in theirs:
        by_id.setdefault(person.id, person)
    common = []
    for person in mine:
        match = by_id.get(person.id)
        if match is not None:
            common.append(
                Talent(person.id, person.name, person.job, max(person.importance, match.importance), person.character)
            )
    return common


def genre_strength(mine: tuple[str, ...], theirs: tuple[str, ...], common: list[str]) -> float:
    jaccard = len(common) / len(set(mine) | set(theirs))
    weighted = jaccard
    for genre in common:
        weighted *= GENRE_WEIGHTS.get(genre, 0.7)
    bonus = 1 + (len(common) - 1) * 0.1 if len(common) > 1 else 1
    return min(0.9, weighted * bonus)


def genre_confidence(common: list[str]) -> float:
    confidence = 0.9 if DISTINCTIVE_GENRES.intersection(common) else 0.8
    if len(common) > 1:
        confidence = min(0.95, confidence + (len(common) - 1) * 0.05)
    return confidence


def studio_importance(studios: list[Mapping[str, Any]]) -> float:
    importance = 0.7
    for studio in studios:
        name = studio.get("name") or ""
        if any(major in name for major in MAJOR_STUDIO_NAMES):
            importance = max(importance, 0.95)
        elif any(prestige in name for prestige in PRESTIGE_STUDIO_NAMES):
            importance = max(importance, 0.85)
    return importance


def talent_strength(common: list[Talent], base: float = 0.4, increment: float = 0.1) -> float:
    strength = base + sum(increment * person.importance for person in common)
    if any(person.job == "Director" for person in common):
        strength *= 1.3
    if sum(1 for person in common if person.job in KEY_ROLES) > 1:
        strength *= 1.2
    return min(0.95, strength)


def talent_importance(common: list[Talent]) -> float:
    importance = 0.7
    for person in common:
        if person.job == "Director":
            importance = max(importance, 0.95)
        elif person.job == "Producer":
            importance = max(importance, 0.85)
        elif person.job == "Writer":
            importance = max(importance, 0.8)
        elif person.importance > 0.8:
            importance = max(importance, 0.9)
    return importance


def talent_confidence(common: list[Talent]) -> float:
    confidence = 0.9 if any(person.job in KEY_ROLES for person in common) else 0.75
    if len(common) > 1:
        confidence = min(0.95, confidence + (len(common) - 1) * 0.03)
    return confidence


class ContentAnalyzer:
    """Shared attributes that say two entries are directly related."""

    dimension = Dimension.DIRECT

    def __init__(self, studio_strength: float = 0.95, genre_floor: float = 0.3, talent_floor: float = 0.2):
        self.studio_strength = studio_strength
        self.genre_floor = genre_floor
        self.talent_floor = talent_floor

    def find_connections(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        my_talent = extract_talent(entity)
        connections: list[Connection] = []
        for other in others(entity, catalog):
            for found in (
                self._genre(entity, other),
                self._studio(entity, other),
                self._talent(my_talent, other),
                self._franchise(entity, other),
                self._rating(entity, other),
            ):
                if found is not None:
                    connections.append(found)
        return sort_by_strength(connections)

    def _genre(self, entity: Entity, other: Entity) -> Connection | None:
        common = [g for g in entity.genres if g in other.genres]
        if not common:
            return None
        strength = genre_strength(entity.genres, other.genres, common)
        if strength <= self.genre_floor:
            return None
        return make_connection(
            other.id,
            self.dimension,
            "genre_match",
            strength,
            genre_confidence(common),
            f"Shared genres: {', '.join(common)}",
            metadata={"common_genres": common},
        )

    def _studio(self, entity: Entity, other: Entity) -> Connection | None:
        their_ids = {c.get("id") for c in other.companies if c.get("id")}
        common = [c for c in entity.companies if c.get("id") and c.get("name") and c["id"] in their_ids]
        if not common:
            return None
        importance = studio_importance(common)
        return make_connection(
            other.id,
            self.dimension,
            "studio_universe",
            min(0.98, self.studio_strength * importance),
            0.95,
            f"Same production company: {', '.join(c['name'] for c in common)}",
            metadata={"common_studios": [{"id": c["id"], "name": c["name"]} for c in common]},
        )

    def _talent(self, my_talent: list[Talent], other: Entity) -> Connection | None:
        if not my_talent:
            return None
        common = common_talent(my_talent, extract_talent(other))
        if not common:
            return None
        strength = talent_strength(common)
        if strength <= self.talent_floor:
            return None
        return make_connection(
            other.id,
            self.dimension,
            "talent_overlap",
            min(0.95, strength * talent_importance(common)),
            talent_confidence(common),
            f"{len(common)} shared cast/crew members",
            metadata={"common_talent": [{"name": p.name, "job": p.job} for p in common]},
        )

    def _franchise(self, entity: Entity, other: Entity) -> Connection | None:
        if entity.collection_id is not None and entity.collection_id == other.collection_id:
            name = entity.collection_name or other.collection_name or "the same"
            return make_connection(
                other.id,
                self.dimension,
                "franchise_member",
                0.92,
                0.98,
                f"Part of {name} collection",
                metadata={"collection_id": entity.collection_id},
            )
        if entity.collection_id is not None or other.collection_id is not None:
            return None
        mine, theirs = analyze_franchise(entity), analyze_franchise(other)
        if not (mine.is_franchise and theirs.is_franchise):
            return None
        if not are_franchise_related(entity, other, mine, theirs):
            return None
        return make_connection(
            other.id,
            self.dimension,
            "franchise_member",
            0.75,
            0.6,
            f"Titles suggest the {mine.name or 'same'} franchise",
            label="franchise_title",
            metadata={"franchise_name": mine.name},
        )

    def _rating(self, entity: Entity, other: Entity) -> Connection | None:
        if not entity.rating or not other.rating:
            return None
        diff = abs(entity.rating - other.rating)
        if diff > 1.0 or entity.rating < 7.0 or other.rating < 7.0:
            return None
        return make_connection(
            other.id,
            self.dimension,
            "rating_similarity",
            (1 - diff / 10) * 0.6,
            0.7,
            f"Similar high ratings: {entity.rating:.1f} vs {other.rating:.1f}",
            metadata={"rating_difference": round(diff, 3)},
        )
