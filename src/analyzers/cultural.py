"""Cultural significance: markers, social themes, movements, region and audience."""

from dataclasses import dataclass
from datetime import date
import re
from typing import Mapping

from ..entities.base import current_year
from ..entities.model import Entity
from ..graph.types import Connection, Dimension
from .base import make_connection, others, sort_by_strength


@dataclass(frozen=True)
class Marker:
    type: str
    weight: float
    confidence: float
    source: str = "content"


# name -> (pattern, weight, confidence)
CULTURAL_MARKERS = {
    "oscar_worthy": (re.compile(r"(oscar|academy.award|prestigious|acclaimed|masterpiece|critically.acclaimed)"), 0.9, 0.85),
    "cult_classic": (re.compile(r"(cult|underground|alternative|indie|quirky|unique|offbeat)"), 0.8, 0.75),
    "blockbuster": (re.compile(r"(blockbuster|massive|biggest|record.breaking|phenomenon|box.office)"), 0.85, 0.8),
    "controversial": (re.compile(r"(controversial|banned|censored|provocative|shocking|scandal)"), 0.8, 0.9),
    "innovative": (re.compile(r"(innovative|groundbreaking|revolutionary|first|pioneering|breakthrough)"), 0.9, 0.8),
    "nostalgic": (re.compile(r"(classic|nostalgic|timeless|beloved|iconic|legendary)"), 0.7, 0.7),
    "international": (re.compile(r"(international|foreign|subtitled|world.cinema|global)"), 0.7, 0.8),
    "based_on": (re.compile(r"(based.on|adapted|true.story|novel|book|real|memoir)"), 0.6, 0.9),
}

# name -> (pattern, relevance)
SOCIAL_THEMES = {
    "social_justice": (re.compile(r"(equality|discrimination|prejudice|civil.rights|justice|activism|protest)"), 0.9),
    "environmentalism": (re.compile(r"(environment|climate|pollution|nature|green|ecology|conservation)"), 0.85),
    "technology_impact": (re.compile(r"(artificial.intelligence|digital|cyber|virtual|robot|automation|future)"), 0.8),
    "globalization": (re.compile(r"(global|international|multicultural|diversity|immigration|border)"), 0.75),
    "generational_conflict": (re.compile(r"(generation|millennial|boomer|gen.z|youth|aging|old.vs.new)"), 0.7),
    "economic_inequality": (re.compile(r"(economic|capitalism|poverty|wealth|class|money|rich|poor)"), 0.8),
    "political_power": (re.compile(r"(political|government|democracy|power|corruption|election|authority)"), 0.85),
    "religious_spiritual": (re.compile(r"(religious|faith|spiritual|god|church|belief|divine|sacred)"), 0.7),
    "gender_roles": (re.compile(r"(gender|feminism|masculinity|equality|sexism|patriarchy|empowerment)"), 0.85),
    "mental_health": (re.compile(r"(mental.health|depression|anxiety|therapy|trauma|healing|wellness)"), 0.8),
}

# name -> (indicators, {year: relevance}, strength)
CULTURAL_MOVEMENTS = {
    "feminist_cinema": (
        ("female director", "female protagonist", "gender equality", "women's rights"),
        {1970: 0.8, 1990: 0.9, 2010: 1.0},
        0.85,
    ),
    "black_cinema": (
        ("african american", "black experience", "racial", "civil rights"),
        {1970: 0.9, 1990: 0.95, 2010: 0.9},
        0.9,
    ),
    "queer_cinema": (
        ("lgbtq", "gay", "lesbian", "transgender", "queer", "pride"),
        {1980: 0.7, 2000: 0.85, 2010: 0.95},
        0.8,
    ),
    "environmental_awareness": (
        ("climate change", "environmental", "nature", "conservation"),
        {1990: 0.7, 2000: 0.8, 2010: 0.95},
        0.75,
    ),
    "digital_age": (
        ("internet", "social media", "digital", "virtual", "online"),
        {1990: 0.5, 2000: 0.8, 2010: 1.0},
        0.8,
    ),
    "post_9_11": (
        ("terrorism", "security", "surveillance", "paranoia", "fear"),
        {2001: 1.0, 2010: 0.8, 2020: 0.6},
        0.85,
    ),
}

# name -> (regions, influence)
REGIONAL_CULTURES = {
    "hollywood_mainstream": (("US",), 1.0),
    "european_arthouse": (("FR", "DE", "IT", "GB"), 0.8),
    "asian_cinema": (("JP", "KR", "CN", "IN"), 0.75),
    "latin_american": (("MX", "BR", "AR"), 0.6),
}

# name -> (indicators, appeal)
AUDIENCE_SEGMENTS = {
    "mass_market": (("mainstream", "popular", "commercial"), 0.9),
    "art_house": (("artistic", "experimental", "intellectual"), 0.7),
    "genre_fans": (("horror", "sci-fi", "fantasy", "action"), 0.8),
    "family_audience": (("family", "children", "wholesome"), 0.85),
    "mature_audience": (("adult", "sophisticated", "complex"), 0.75),
    "niche_market": (("cult", "specialized", "alternative"), 0.6),
}

RELATED_SEGMENTS = {
    "art_house": ("mature_audience", "niche_market"),
    "mass_market": ("family_audience", "genre_fans"),
    "family_audience": ("mass_market",),
    "mature_audience": ("art_house",),
}

AWARD_WORDS = re.compile(r"(award|winner|nominated|festival|cannes|oscar|emmy|golden.globe)")

SIGNIFICANT_TERMS = (
    "academy award",
    "oscar",
    "cannes",
    "festival",
    "groundbreaking",
    "revolutionary",
    "controversial",
    "banned",
    "cult",
    "masterpiece",
    "influential",
    "landmark",
    "historic",
    "breakthrough",
    "phenomenon",
)


@dataclass(frozen=True)
class Region:
    type: str
    regions: tuple[str, ...]
    influence: float


@dataclass(frozen=True)
class Audience:
    type: str
    appeal: float
    confidence: float


@dataclass(frozen=True)
class CulturalProfile:
    markers: tuple[Marker, ...]
    themes: dict[str, float]
    movements: dict[str, float]
    region: Region | None
    audience: Audience
    era: str
    significance: float

    def is_insignificant(self) -> bool:
        return self.significance < 0.2 and not self.markers and not self.themes and not self.movements


@dataclass(frozen=True)
class CulturalSimilarity:
    score: float
    shared_markers: list[str]
    shared_themes: list[str]
    shared_movements: list[str]
    breakdown: dict[str, float]


def content_string(entity: Entity) -> str:
    companies = " ".join(c.get("name") or "" for c in entity.companies)
    parts = [entity.description, entity.tagline, entity.name, " ".join(entity.genres), " ".join(entity.keywords), companies]
    return " ".join(p for p in parts if p).lower()


def time_relevance(table: Mapping[int, float], year: int) -> float:
    """Piecewise-linear lookup; clamps to the nearest anchor outside the table."""
    if not year:
        return 0.0
    anchors = sorted(table)
    lower = max((y for y in anchors if y <= year), default=None)
    upper = min((y for y in anchors if y >= year), default=None)
    if lower is None:
        return table[upper]
    if upper is None or lower == upper:
        return table[lower]
    ratio = (year - lower) / (upper - lower)
    return table[lower] + (table[upper] - table[lower]) * ratio


def time_context(year: int, this_year: int) -> tuple[str, float]:
    if not year:
        return "unknown", 0.0
    age = this_year - year
    if age <= 5:
        return "contemporary", 1.0
    if age <= 15:
        return "recent", 0.9
    if age <= 30:
        return "modern", 0.7
    if age <= 50:
        return "classic", 0.6
    return "vintage", 0.4


def extract_markers(entity: Entity, content: str) -> list[Marker]:
    markers = [
        Marker(name, weight, confidence)
        for name, (pattern, weight, confidence) in CULTURAL_MARKERS.items()
        if pattern.search(content)
    ]
    rating, votes = entity.rating, entity.vote_count
    if rating >= 8.5 and votes > 1000:
        markers.append(Marker("critically_acclaimed", 0.9, 0.9, "rating"))
    elif rating >= 8.0 and votes > 500:
        markers.append(Marker("highly_rated", 0.8, 0.8, "rating"))
    if 0 < rating <= 4.0 and votes > 100:
        markers.append(Marker("notorious", 0.6, 0.7, "rating"))

    if entity.popularity >= 80:
        markers.append(Marker("culturally_impactful", 0.85, 0.8, "popularity"))
    elif entity.popularity >= 50:
        markers.append(Marker("mainstream_popular", 0.7, 0.75, "popularity"))
    elif entity.popularity < 10 and rating > 7.5:
        markers.append(Marker("hidden_gem", 0.6, 0.7, "popularity"))

    if AWARD_WORDS.search(content) and rating >= 8.0:
        markers.append(Marker("award_contender", 0.85, 0.75, "award"))
    return markers


def identify_region(entity: Entity) -> Region | None:
    countries = tuple(entity.countries)
    if not countries:
        return None
    for name, (regions, influence) in REGIONAL_CULTURES.items():
        if any(region in countries for region in regions):
            return Region(name, countries, influence)
    return Region("other_regional", countries, 0.5)


def identify_audience(entity: Entity, content: str) -> Audience:
    best: Audience | None = None
    best_score = 0.0
    for name, (indicators, appeal) in AUDIENCE_SEGMENTS.items():
        score = sum(1 for indicator in indicators if indicator in content) / len(indicators)
        if score > best_score:
            best_score = score
            best = Audience(name, appeal, score)
    if entity.rating >= 8.0 and (best is None or best.confidence < 0.5):
        best = Audience("art_house", 0.7, 0.6)
    return best or Audience("general_audience", 0.6, 0.3)


def significance(entity: Entity, content: str, relevance: float) -> float:
    score = 0.3
    if entity.rating >= 8.0 and entity.vote_count > 1000:
        score += 0.3
    elif entity.rating >= 7.0 and entity.vote_count > 500:
        score += 0.2
    if entity.popularity >= 50:
        score += 0.2
    elif entity.popularity >= 20:
        score += 0.1
    if any(term in content for term in SIGNIFICANT_TERMS):
        score += 0.2
    return min(1.0, score * relevance)


def build_profile(entity: Entity, this_year: int) -> CulturalProfile:
    content = content_string(entity)
    year = entity.year
    era, relevance = time_context(year, this_year)

    movements = {}
    for name, (indicators, table, strength) in CULTURAL_MOVEMENTS.items():
        timing = time_relevance(table, year)
        if timing > 0.5 and any(indicator in content for indicator in indicators):
            movements[name] = strength * timing

    return CulturalProfile(
        markers=tuple(extract_markers(entity, content)),
        themes={name: rel for name, (pattern, rel) in SOCIAL_THEMES.items() if pattern.search(content)},
        movements=movements,
        region=identify_region(entity),
        audience=identify_audience(entity, content),
        era=era,
        significance=significance(entity, content, relevance),
    )


def _compare_markers(a: CulturalProfile, b: CulturalProfile) -> tuple[list[str], float]:
    theirs = {m.type for m in b.markers}
    shared = [m for m in a.markers if m.type in theirs]
    if not shared:
        return [], 0.0
    return [m.type for m in shared], min(1.0, sum(m.weight for m in shared) / len(shared))


def _compare_themes(a: CulturalProfile, b: CulturalProfile) -> tuple[list[str], float]:
    shared = [name for name in a.themes if name in b.themes]
    if not shared:
        return [], 0.0
    average = sum(a.themes[name] for name in shared) / len(shared)
    return shared, average * (len(shared) / max(len(a.themes), len(b.themes)))


def _compare_movements(a: CulturalProfile, b: CulturalProfile) -> tuple[list[str], float]:
    shared = [name for name in a.movements if name in b.movements]
    if not shared:
        return [], 0.0
    return shared, sum(a.movements[name] for name in shared) / len(shared)


def _compare_regions(a: Region | None, b: Region | None) -> float:
    if a is None or b is None:
        return 0.0
    if a.type == b.type:
        return min(a.influence, b.influence)
    if set(a.regions) & set(b.regions):
        return 0.5 * min(a.influence, b.influence)
    return 0.0


def _compare_audiences(a: Audience, b: Audience) -> float:
    if a.type == b.type:
        return min(a.appeal, b.appeal) * min(a.confidence, b.confidence)
    if b.type in RELATED_SEGMENTS.get(a.type, ()):
        return 0.5 * min(a.appeal, b.appeal)
    return 0.0


def cultural_similarity(a: CulturalProfile, b: CulturalProfile) -> CulturalSimilarity:
    markers, marker_score = _compare_markers(a, b)
    themes, theme_score = _compare_themes(a, b)
    movements, movement_score = _compare_movements(a, b)
    breakdown = {
        "markers": marker_score,
        "themes": theme_score,
        "movements": movement_score,
        "regional": _compare_regions(a.region, b.region),
        "audience": _compare_audiences(a.audience, b.audience),
    }
    score = (
        breakdown["markers"] * 0.3
        + breakdown["themes"] * 0.25
        + breakdown["movements"] * 0.2
        + breakdown["regional"] * 0.15
        + breakdown["audience"] * 0.1
    )
    score *= 0.5 + min(a.significance, b.significance) * 0.5
    return CulturalSimilarity(score, markers, themes, movements, breakdown)


def cultural_reason(result: CulturalSimilarity) -> str:
    reasons = []
    if result.shared_markers:
        reasons.append(f"Cultural significance: {', '.join(result.shared_markers)}")
    if result.shared_themes:
        reasons.append(f"Social themes: {', '.join(result.shared_themes)}")
    if result.shared_movements:
        reasons.append(f"Cultural movements: {', '.join(result.shared_movements)}")
    return " | ".join(reasons) if reasons else "Shared cultural context"


def cultural_confidence(result: CulturalSimilarity) -> float:
    shared = len(result.shared_markers) + len(result.shared_themes) + len(result.shared_movements)
    if shared >= 3:
        confidence = 0.9
    elif shared >= 2:
        confidence = 0.8
    elif shared >= 1:
        confidence = 0.7
    else:
        confidence = 0.6
    if result.breakdown["markers"] > 0.8:
        confidence = max(confidence, 0.85)
    if result.breakdown["movements"] > 0.8:
        confidence = max(confidence, 0.8)
    return min(0.95, confidence)


class CulturalAnalyzer:
    """Connects entities that carry the same cultural weight and context."""

    dimension = Dimension.CULTURAL

    def __init__(self, threshold: float = 0.3, max_connections: int = 15, today: date | None = None):
        self.threshold = threshold
        self.max_connections = max_connections
        self.this_year = current_year(today)
        self._profiles: dict[str, tuple[Entity, CulturalProfile]] = {}

    def profile(self, entity: Entity) -> CulturalProfile:
        cached = self._profiles.get(entity.id)
        if cached is not None and cached[0] is entity:
            return cached[1]
        profile = build_profile(entity, self.this_year)
        self._profiles[entity.id] = (entity, profile)
        return profile

    def find_connections(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        mine = self.profile(entity)
        if mine.is_insignificant():
            return []

        connections = []
        for other in others(entity, catalog):
            result = cultural_similarity(mine, self.profile(other))
            if result.score <= self.threshold:
                continue
            connections.append(
                make_connection(
                    other.id,
                    self.dimension,
                    "cultural_significance",
                    result.score,
                    cultural_confidence(result),
                    cultural_reason(result),
                    metadata={
                        "shared_markers": result.shared_markers,
                        "shared_themes": result.shared_themes,
                        "shared_movements": result.shared_movements,
                        "breakdown": result.breakdown,
                    },
                )
            )
        return sort_by_strength(connections)[: self.max_connections]
