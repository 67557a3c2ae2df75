"""Time-based connections: release windows, eras, movements, sequels, generations."""

from dataclasses import dataclass
import re
from typing import Mapping

from ..entities.model import Entity
from ..graph.types import Connection, Dimension
from .base import make_connection, others, sort_by_strength
from .franchise import (
    FranchiseInfo,
    analyze_franchise,
    are_franchise_related,
    franchise_relation,
    sequel_relation,
)

DECADE_WEIGHTS = {
    1920: 0.3,
    1930: 0.4,
    1940: 0.5,
    1950: 0.6,
    1960: 0.7,
    1970: 0.8,
    1980: 0.85,
    1990: 0.9,
    2000: 0.95,
    2010: 1.0,
    2020: 1.0,
}

ERAS = {
    "silent_era": (1895, 1929),
    "golden_age": (1930, 1960),
    "new_hollywood": (1967, 1982),
    "blockbuster_era": (1975, 1990),
    "indie_renaissance": (1989, 2005),
    "superhero_age": (2000, 2025),
    "streaming_era": (2010, 2025),
    "franchise_dominance": (2000, 2025),
}

NOTABLE_ERAS = frozenset({"new_hollywood", "indie_renaissance", "superhero_age"})


@dataclass(frozen=True)
class Movement:
    start: int
    end: int
    strength: float
    criteria: re.Pattern | None = None


MOVEMENTS = {
    "film_noir": Movement(1940, 1958, 0.8, re.compile(r"(noir|dark|shadow|crime|detective|murder)")),
    "french_new_wave": Movement(1958, 1968, 0.7),
    "blaxploitation": Movement(1971, 1979, 0.75),
    "slasher_boom": Movement(1978, 1984, 0.85, re.compile(r"(slasher|horror|killer|murder|blood|scary)")),
    "action_renaissance": Movement(1982, 1995, 0.9, re.compile(r"(action|adventure|explosive|hero|fight)")),
    "independent_wave": Movement(1989, 2000, 0.8, re.compile(r"(independent|indie|art|festival|alternative)")),
    "found_footage": Movement(1999, 2015, 0.7, re.compile(r"(found.footage|handheld|documentary.style|realistic)")),
    "superhero_boom": Movement(2008, 2025, 0.95, re.compile(r"(superhero|comic|marvel|dc|powers|hero|villain)")),
    "horror_revival": Movement(2014, 2025, 0.85, re.compile(r"(horror|scary|supernatural|ghost|demon|evil)")),
}

GENERATIONS = {
    "silent_generation": (1925, 1945),
    "baby_boomers": (1946, 1980),
    "generation_x": (1981, 1995),
    "millennials": (1996, 2010),
    "generation_z": (2011, 2025),
}

CORE_AUDIENCES = frozenset({"generation_x", "millennials"})


def eras_for(year: int) -> list[str]:
    return [name for name, (start, end) in ERAS.items() if start <= year <= end]


def generation_for(year: int) -> str | None:
    for name, (start, end) in GENERATIONS.items():
        if start <= year <= end:
            return name
    return None


def movements_for(entity: Entity, year: int) -> list[str]:
    """Movements whose years cover ``year`` and whose text cues the entity matches."""
    content = entity.text_blob()
    found = []
    for name, movement in MOVEMENTS.items():
        if not movement.start <= year <= movement.end:
            continue
        if movement.criteria is not None and movement.criteria.search(content):
            found.append(name)
    return found


def cultural_context(year: int) -> dict:
    return {
        "decade": f"{(year // 10) * 10}s",
        "eras": eras_for(year),
        "movements": [name for name, m in MOVEMENTS.items() if m.start <= year <= m.end],
        "generation": generation_for(year),
    }


def concurrent_strength(year_diff: int, same_year_bonus: float = 1.2) -> float:
    if year_diff == 0:
        return 0.6 * same_year_bonus
    if year_diff == 1:
        return 0.5
    if year_diff == 2:
        return 0.4
    return 0.3


def franchise_timing_strength(year_diff: int, info_a: FranchiseInfo, info_b: FranchiseInfo) -> float:
    strength = 0.8
    if 2 <= year_diff <= 4:
        strength = 0.9
    elif year_diff == 1:
        strength = 0.85
    elif 5 <= year_diff <= 8:
        strength = 0.7
    elif year_diff > 8:
        strength = 0.5
    if (info_a.is_reboot or info_b.is_reboot) and year_diff > 10:
        strength = 0.75
    return min(0.95, strength)


def sequel_strength(year_diff: int, info_a: FranchiseInfo, info_b: FranchiseInfo) -> float:
    strength = 0.6
    if 2 <= year_diff <= 3:
        strength = 0.8
    elif year_diff in (1, 4):
        strength = 0.7
    if info_a.is_direct_sequel or info_b.is_direct_sequel:
        strength *= 1.2
    return min(0.9, strength)


def _share_genre(a: Entity, b: Entity) -> bool:
    return bool(set(a.genres) & set(b.genres))


@dataclass(frozen=True)
class _Profile:
    year: int
    franchise: FranchiseInfo
    eras: tuple[str, ...]
    movements: tuple[str, ...]
    generation: str | None


class TemporalAnalyzer:
    """Compares one entity's release timing against every other catalog entry."""

    dimension = Dimension.TEMPORAL

    def __init__(self, concurrent_window: int = 2, max_sequel_gap: int = 5, same_year_bonus: float = 1.2):
        self.concurrent_window = concurrent_window
        self.max_sequel_gap = max_sequel_gap
        self.same_year_bonus = same_year_bonus
        self._profiles: dict[str, tuple[Entity, _Profile]] = {}

    def profile(self, entity: Entity) -> _Profile:
        cached = self._profiles.get(entity.id)
        if cached is not None and cached[0] is entity:
            return cached[1]
        year = entity.year
        profile = _Profile(
            year=year,
            franchise=analyze_franchise(entity),
            eras=tuple(eras_for(year)) if year else (),
            movements=tuple(movements_for(entity, year)) if year else (),
            generation=generation_for(year) if year else None,
        )
        self._profiles[entity.id] = (entity, profile)
        return profile

    def find_connections(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        mine = self.profile(entity)
        if not mine.year:
            return []

        connections: list[Connection] = []
        for other in others(entity, catalog):
            theirs = self.profile(other)
            if not theirs.year:
                continue
            connections.extend(self._compare(entity, mine, other, theirs))
        return sort_by_strength(connections)

    def _compare(self, entity: Entity, mine: _Profile, other: Entity, theirs: _Profile) -> list[Connection]:
        found: list[Connection | None] = [
            self._concurrent(mine, other, theirs),
            self._franchise_timing(entity, mine, other, theirs),
            self._decade(entity, mine, other, theirs),
            self._era(mine, other, theirs),
            self._movement(mine, other, theirs),
            self._sequel(entity, mine, other, theirs),
            self._generation(entity, mine, other, theirs),
        ]
        return [c for c in found if c is not None]

    def _concurrent(self, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        diff = abs(mine.year - theirs.year)
        if diff > self.concurrent_window:
            return None
        if diff == 0:
            type_, reason = "same_year_release", f"Both released in {mine.year}"
        else:
            plural = "s" if diff > 1 else ""
            type_ = "concurrent_release"
            reason = f"Released within {diff} year{plural} ({mine.year} vs {theirs.year})"
        return make_connection(
            other.id,
            self.dimension,
            type_,
            concurrent_strength(diff, self.same_year_bonus),
            0.6 + (0.2 if diff == 0 else 0.0),
            reason,
            metadata={
                "entity_year": mine.year,
                "other_year": theirs.year,
                "year_difference": diff,
                "cultural_context": cultural_context(mine.year),
            },
        )

    def _franchise_timing(self, entity: Entity, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        if not mine.franchise.is_franchise:
            return None
        if not are_franchise_related(entity, other, mine.franchise, theirs.franchise):
            return None
        diff = abs(mine.year - theirs.year)
        strength = franchise_timing_strength(diff, mine.franchise, theirs.franchise)
        if strength <= 0.3:
            return None
        return make_connection(
            other.id,
            self.dimension,
            "franchise_timing",
            strength,
            0.85,
            f"Franchise timing pattern: {diff} years apart",
            metadata={
                "year_difference": diff,
                "franchise_relation": franchise_relation(mine.franchise, theirs.franchise),
                "entity_franchise": mine.franchise.to_record(),
                "other_franchise": theirs.franchise.to_record(),
            },
        )

    def _decade(self, entity: Entity, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        decade = (mine.year // 10) * 10
        if decade != (theirs.year // 10) * 10:
            return None
        strength = 0.4 * DECADE_WEIGHTS.get(decade, 0.5)
        if _share_genre(entity, other):
            strength *= 1.2
        return make_connection(
            other.id,
            self.dimension,
            "same_decade",
            min(0.8, strength),
            0.6,
            f"Both from the {decade}s",
            metadata={"decade": decade},
        )

    def _era(self, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        common = [era for era in mine.eras if era in theirs.eras]
        if not common:
            return None
        strength = 0.7 if NOTABLE_ERAS.intersection(common) else 0.5
        if len(common) > 1:
            strength *= 1.1
        plural = "s" if len(common) > 1 else ""
        return make_connection(
            other.id,
            self.dimension,
            "same_era",
            min(0.85, strength),
            0.75,
            f"Both from {', '.join(common)} era{plural}",
            metadata={"common_eras": common, "era_ranges": {era: ERAS[era] for era in common}},
        )

    def _movement(self, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        common = [m for m in mine.movements if m in theirs.movements]
        if not common:
            return None
        average = sum(MOVEMENTS[m].strength for m in common) / len(common)
        strength = 0.6 * average
        if len(common) > 1:
            strength *= 1.15
        return make_connection(
            other.id,
            self.dimension,
            "cultural_movement",
            min(0.9, strength),
            0.8,
            f"Both part of {', '.join(common)} movement",
            metadata={"common_movements": common},
        )

    def _sequel(self, entity: Entity, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        if not are_franchise_related(entity, other, mine.franchise, theirs.franchise):
            return None
        diff = abs(mine.year - theirs.year)
        if not 1 <= diff <= self.max_sequel_gap:
            return None
        strength = sequel_strength(diff, mine.franchise, theirs.franchise)
        if strength <= 0.4:
            return None
        return make_connection(
            other.id,
            self.dimension,
            "sequel_pattern",
            strength,
            0.75,
            "Sequel timing pattern detected",
            metadata={
                "year_difference": diff,
                "sequel_relation": sequel_relation(mine.franchise, theirs.franchise),
            },
        )

    def _generation(self, entity: Entity, mine: _Profile, other: Entity, theirs: _Profile) -> Connection | None:
        if mine.generation is None or mine.generation != theirs.generation:
            return None
        strength = 0.5 if mine.generation in CORE_AUDIENCES else 0.4
        if _share_genre(entity, other):
            strength *= 1.1
        start, end = GENERATIONS[mine.generation]
        return make_connection(
            other.id,
            self.dimension,
            "generational_connection",
            min(0.7, strength),
            0.65,
            f"Both appeal to {mine.generation} generation",
            metadata={"generation": mine.generation, "generation_years": f"{start}-{end}"},
        )
