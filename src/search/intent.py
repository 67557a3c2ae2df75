"""Query intent detection: map a search query to index filters and boosts.

A query is matched against a table of intent patterns. The most confident
intent above the threshold selects a search strategy (sort order, boost
factors, constraints) and the filters extracted from the query text. Each
filter resolves to keys of the search index: categories, semantic concepts
or plain terms.
"""

from dataclasses import dataclass, field
import logging
import math
import re
from typing import Any

from .tokenize import normalize_tag, normalize_term

log = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.6
MAX_ALTERNATIVES = 2

_ASK = r"^(show me|find|give me|list|what are)\b"
_MEDIA = r"\b(movies?|films?|shows?)\b"
_GENRES = r"(action|comedy|horror|drama|sci-?fi|romance|thriller|fantasy|animation|documentary)"
_STUDIOS = r"(marvel|disney|netflix|warner|universal|paramount|sony|a24|blumhouse)"
_ERAS = r"(80s|90s|2000s|classic|vintage|recent|modern|new)"
_THEMES = r"(christmas|halloween|valentine|family|friendship|revenge|survival)"


def _compile(*sources: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


@dataclass(frozen=True)
class IntentPattern:
    name: str
    patterns: tuple[re.Pattern, ...]
    confidence: float
    category: str
    filters: tuple[str, ...]
    strategy: str


@dataclass(frozen=True)
class SearchStrategy:
    primary_filters: tuple[str, ...]
    sort_by: str
    boosts: dict[str, float]
    constraints: dict[str, float] = field(default_factory=dict)


# Table order breaks confidence ties
INTENT_PATTERNS: tuple[IntentPattern, ...] = (
    IntentPattern(
        "discover_by_genre",
        _compile(rf"{_ASK}.*\b{_GENRES}\b", rf"^{_GENRES}\b.*{_MEDIA}"),
        0.9, "discovery", ("genre",), "genre_focused",
    ),
    IntentPattern(
        "discover_by_studio",
        _compile(rf"{_ASK}.*\b{_STUDIOS}\b", rf"^{_STUDIOS}\b.*{_MEDIA}"),
        0.9, "discovery", ("studio",), "studio_universe",
    ),
    IntentPattern(
        "discover_by_era",
        _compile(
            rf"{_ASK}.*\b{_ERAS}\b",
            rf"^{_ERAS}\b.*{_MEDIA}",
            r"\bfrom\b.*\b(80s|90s|2000s|eighties|nineties)\b",
        ),
        0.8, "discovery", ("era",), "temporal_focused",
    ),
    IntentPattern(
        "discover_by_theme",
        _compile(rf"{_ASK}.*\b{_THEMES}\b", rf"^{_THEMES}\b.*{_MEDIA}"),
        0.85, "discovery", ("theme",), "thematic",
    ),
    IntentPattern(
        "find_similar",
        _compile(
            r"\b(like|similar to|in the style of|reminds me of)\b",
            r"\b(more like|something like|anything like)\b",
            r"\b(if you liked|fans of|enjoyed)\b",
        ),
        0.9, "similarity", (), "similarity_search",
    ),
    IntentPattern(
        "find_by_actor",
        _compile(
            rf"{_ASK}.*\b(with|starring|featuring)\s+\S",
            rf"^.+{_MEDIA}.*\b(with|starring|featuring)\b",
        ),
        0.85, "people", ("cast",), "people_focused",
    ),
    IntentPattern(
        "find_by_director",
        _compile(
            rf"{_ASK}.*\b(by|directed by)\s+\S",
            rf"^.+{_MEDIA}.*\b(by|directed by)\b",
            r"\b(director|filmmaker|auteur)\b",
        ),
        0.85, "people", ("crew",), "people_focused",
    ),
    IntentPattern(
        "find_highly_rated",
        _compile(
            r"\b(best|top|highest rated|critically acclaimed|award winning)\b",
            r"\b(excellent|outstanding|masterpiece)\b",
            r"\b(oscar|academy award|golden globe|emmy)\b",
        ),
        0.8, "quality", ("rating",), "quality_focused",
    ),
    IntentPattern(
        "find_popular",
        _compile(
            r"\b(popular|trending|viral|hit|blockbuster)\b",
            r"\b(most watched|biggest|mainstream|commercial)\b",
            r"\b(box office|successful|phenomenon)\b",
        ),
        0.8, "popularity", ("popularity",), "popularity_focused",
    ),
    IntentPattern(
        "find_hidden_gems",
        _compile(
            r"\b(hidden gems?|underrated|unknown|overlooked|obscure)\b",
            r"\b(indie|independent|art house|festival)\b",
            r"\b(cult|underground|alternative|niche)\b",
        ),
        0.75, "discovery", ("popularity", "rating"), "hidden_gems",
    ),
    IntentPattern(
        "seasonal_content",
        _compile(
            r"\b(christmas|holiday|winter|thanksgiving|new year)\b",
            r"\b(halloween|spooky|october)\b",
            r"\b(valentine|february)\b",
            r"\b(summer|beach|vacation|spring break)\b",
        ),
        0.9, "seasonal", ("seasonal",), "seasonal_focused",
    ),
    IntentPattern(
        "mood_based",
        _compile(
            r"\b(feel good|uplifting|heartwarming|inspiring)\b",
            r"\b(sad|depressing|tear jerker|emotional)\b",
            r"\b(funny|hilarious|laugh)\b",
            r"\b(scary|frightening|terrifying|creepy)\b",
            r"\b(exciting|thrilling|action packed|adrenaline)\b",
        ),
        0.8, "mood", ("mood",), "mood_focused",
    ),
    IntentPattern(
        "complete_collection",
        _compile(
            r"\b(complete|finish|all of|entire|whole)\b.*\b(collection|series|franchise|saga)\b",
            r"\b(missing|need|looking for)\b.*\b(part|sequel|prequel)\b",
            r"\b(rest of|remaining|other)\b.*\b(movies?|films?)\b",
        ),
        0.85, "collection", ("franchise",), "collection_completion",
    ),
    IntentPattern(
        "franchise_exploration",
        _compile(
            r"\b(franchise|universe|saga|series)\b",
            r"\ball\b.*\b(batman|marvel|star wars|james bond|fast furious)\b",
            r"\b(cinematic universe|extended universe)\b",
        ),
        0.8, "franchise", ("franchise",), "franchise_focused",
    ),
)

STRATEGIES: dict[str, SearchStrategy] = {
    "genre_focused": SearchStrategy(("genre",), "popularity", {"genre_match": 2.0, "rating": 1.5}),
    "studio_universe": SearchStrategy(("studio",), "release_date", {"studio_match": 2.5, "franchise": 1.8}),
    "temporal_focused": SearchStrategy(("era", "year"), "rating", {"era_match": 2.0, "decade_match": 1.8}),
    "thematic": SearchStrategy(("theme",), "relevance", {"theme_match": 2.2, "keyword_match": 1.9}),
    "similarity_search": SearchStrategy(("genre",), "similarity_score", {"content_similarity": 3.0, "talent_overlap": 2.0}),
    "people_focused": SearchStrategy(("cast", "crew"), "popularity", {"people_match": 2.5, "genre_match": 1.5}),
    "quality_focused": SearchStrategy(("rating",), "rating", {"rating": 2.0, "awards": 1.8, "critical_acclaim": 1.6}),
    "popularity_focused": SearchStrategy(("popularity",), "popularity", {"popularity": 2.0, "box_office": 1.8}),
    "hidden_gems": SearchStrategy(
        ("rating", "popularity"),
        "rating",
        {"high_rating_low_popularity": 2.5, "indie": 1.8},
        {"max_popularity": 20.0, "min_rating": 7.0},
    ),
    "seasonal_focused": SearchStrategy(("seasonal", "theme"), "seasonal_relevance", {"seasonal_match": 3.0, "theme_match": 2.0}),
    "mood_focused": SearchStrategy(("mood", "genre"), "mood_relevance", {"mood_match": 2.5, "genre_match": 2.0}),
    "collection_completion": SearchStrategy(("franchise",), "chronological", {"franchise_match": 3.0, "sequel_pattern": 2.5}),
    "franchise_focused": SearchStrategy(("franchise",), "chronological", {"franchise_match": 3.0, "universe_match": 2.8}),
}

# Category bands as assigned by SearchIndexBuilder.categorize: (key, low, high)
RATING_BANDS = (
    ("rating_excellent", 8.5, 10.0),
    ("rating_great", 7.5, 8.5),
    ("rating_good", 6.5, 7.5),
    ("rating_average", 5.5, 6.5),
    ("rating_poor", 0.0, 5.5),
)
POPULARITY_BANDS = (
    ("popularity_viral", 80.0, math.inf),
    ("popularity_trending", 50.0, 80.0),
    ("popularity_popular", 20.0, 50.0),
    ("popularity_known", 5.0, 20.0),
    ("popularity_niche", 0.0, 5.0),
)

ERA_CATEGORIES: dict[str, tuple[str, ...]] = {
    "80s": ("decade_1980s",),
    "90s": ("decade_1990s",),
    "2000s": ("decade_2000s",),
    "classic": ("era_classic",),
    "vintage": ("era_vintage",),
    "recent": ("era_recent", "era_current"),
    "modern": ("era_modern",),
    "new": ("era_current",),
}
STUDIO_KEYS = ("marvel", "disney", "warner", "universal", "netflix")

MOODS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(feel good|uplifting|heartwarming|inspiring)\b", re.IGNORECASE), "uplifting"),
    (re.compile(r"\b(sad|depressing|tear jerker|emotional)\b", re.IGNORECASE), "emotional"),
    (re.compile(r"\b(funny|hilarious|laugh)\b", re.IGNORECASE), "humorous"),
    (re.compile(r"\b(scary|frightening|terrifying|creepy)\b", re.IGNORECASE), "scary"),
    (re.compile(r"\b(exciting|thrilling|action packed|adrenaline)\b", re.IGNORECASE), "exciting"),
)
MOOD_CONCEPTS: dict[str, tuple[str, ...]] = {
    "uplifting": ("heroic_journey", "redemption", "love_conquers"),
    "emotional": ("emotional_depth", "emotional_connection"),
    "humorous": ("humor", "absurdity"),
    "scary": ("fear", "psychological_terror"),
    "exciting": ("adrenaline", "physical_conflict"),
}
THEME_CONCEPTS: dict[str, tuple[str, ...]] = {
    "family": ("family_bonds",),
    "survival": ("survival",),
    "revenge": ("betrayal",),
}

_GENRE_RE = re.compile(
    r"\b(action|comedy|horror|drama|sci-?fi|science fiction|romance|thriller|fantasy|animation"
    r"|documentary|mystery|crime|adventure|family|war|western|music|history)\b",
    re.IGNORECASE,
)
_STUDIO_RE = re.compile(
    r"\b(marvel|disney|netflix|warner|universal|paramount|sony|a24|blumhouse|pixar|dreamworks)\b",
    re.IGNORECASE,
)
_ERA_RE = re.compile(r"\b(80s|90s|2000s|eighties|nineties|classic|vintage|recent|modern|new)\b", re.IGNORECASE)
_THEME_RE = re.compile(
    r"\b(christmas|halloween|valentine|family|friendship|revenge|survival|time travel|superhero|vampire|zombie)\b",
    re.IGNORECASE,
)
_SEASONAL_RE = re.compile(r"\b(christmas|holiday|halloween|valentine|summer|winter|thanksgiving)\b", re.IGNORECASE)
_CAST_RE = re.compile(r"\b(?:with|starring|featuring)\s+([a-z][a-z\s]*)", re.IGNORECASE)
_CREW_RE = re.compile(r"\b(?:directed by|by)\s+([a-z][a-z\s]*)", re.IGNORECASE)
_FRANCHISE_RE = re.compile(
    r"\b(batman|marvel|star wars|james bond|fast furious|harry potter|lord of the rings)\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")


@dataclass(frozen=True)
class FilterKeys:
    """Index keys a filter resolves to."""

    categories: tuple[str, ...] = ()
    concepts: tuple[str, ...] = ()
    terms: tuple[str, ...] = ()


# A band matches when any part of it lies on the requested side of the bound
def _bands_above(bands, value: float) -> tuple[str, ...]:
    return tuple(key for key, _, high in bands if high > value)


def _bands_below(bands, value: float) -> tuple[str, ...]:
    return tuple(key for key, low, _ in bands if low < value)


@dataclass(frozen=True)
class QueryFilter:
    type: str
    value: Any
    operator: str
    boost: float

    @property
    def label(self) -> str:
        return f"{self.type}:{self.value}"

    def keys(self) -> FilterKeys:
        """Resolve to category, concept and term keys of the search index."""
        kind, value = self.type, self.value
        if kind == "genre":
            return FilterKeys(categories=(f"genre_{normalize_tag(value)}",), terms=(value,))
        if kind == "studio":
            categories = (f"studio_{value}",) if value in STUDIO_KEYS else ()
            return FilterKeys(categories=categories, terms=(value,))
        if kind == "era":
            return FilterKeys(categories=ERA_CATEGORIES.get(value, ()))
        if kind == "year":
            return FilterKeys(categories=(f"decade_{value // 10 * 10}s",), terms=(str(value),))
        if kind in ("rating", "popularity"):
            bands = RATING_BANDS if kind == "rating" else POPULARITY_BANDS
            if self.operator == "greater_than":
                return FilterKeys(categories=_bands_above(bands, value))
            return FilterKeys(categories=_bands_below(bands, value))
        if kind == "mood":
            return FilterKeys(concepts=MOOD_CONCEPTS.get(value, ()))
        if kind == "theme":
            return FilterKeys(concepts=THEME_CONCEPTS.get(value, ()), terms=(value,))
        # seasonal, cast, director, franchise
        return FilterKeys(terms=(value,))


@dataclass(frozen=True)
class DetectedIntent:
    name: str
    confidence: float
    category: str
    filters: tuple[str, ...]
    strategy: str


@dataclass(frozen=True)
class IntentAnalysis:
    """What a query asks for and how the index should answer it."""

    query: str
    detected: tuple[DetectedIntent, ...] = ()
    primary: DetectedIntent | None = None
    strategy: SearchStrategy | None = None
    filters: tuple[QueryFilter, ...] = ()
    sort_order: str = "relevance"
    boosts: dict[str, float] = field(default_factory=dict)
    constraints: dict[str, float] = field(default_factory=dict)
    confidence: float = 0.0

    @property
    def alternatives(self) -> tuple[str, ...]:
        return tuple(intent.name for intent in self.detected[1 : 1 + MAX_ALTERNATIVES])

    def constraint_filters(self) -> tuple[QueryFilter, ...]:
        found = []
        if "max_popularity" in self.constraints:
            found.append(QueryFilter("popularity", self.constraints["max_popularity"], "less_than", 1.0))
        if "min_rating" in self.constraints:
            found.append(QueryFilter("rating", self.constraints["min_rating"], "greater_than", 1.0))
        return tuple(found)

    def to_record(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "intent": self.primary.name if self.primary else None,
            "category": self.primary.category if self.primary else None,
            "confidence": self.confidence,
            "filters": [
                {"type": f.type, "value": f.value, "operator": f.operator, "boost": f.boost} for f in self.filters
            ],
            "sortOrder": self.sort_order,
            "boostFactors": dict(self.boosts),
            "constraints": dict(self.constraints),
            "alternatives": list(self.alternatives),
        }


def detect_intents(query: str) -> list[DetectedIntent]:
    """All intents whose patterns match, most confident first."""
    detected = [
        DetectedIntent(p.name, p.confidence, p.category, p.filters, p.strategy)
        for p in INTENT_PATTERNS
        if any(pattern.search(query) for pattern in p.patterns)
    ]
    return sorted(detected, key=lambda intent: -intent.confidence)


def _first(pattern: re.Pattern, query: str) -> str | None:
    match = pattern.search(query)
    return match.group(1).lower() if match else None


def _genre_filter(query: str, intent: str) -> QueryFilter | None:
    genre = _first(_GENRE_RE, query)
    if genre is None:
        return None
    if genre in ("sci-fi", "scifi"):
        genre = "science fiction"
    return QueryFilter("genre", genre, "equals", 2.0)


def _studio_filter(query: str, intent: str) -> QueryFilter | None:
    studio = _first(_STUDIO_RE, query)
    return QueryFilter("studio", studio, "contains", 2.5) if studio else None


def _era_filter(query: str, intent: str) -> QueryFilter | None:
    era = _first(_ERA_RE, query)
    if era is None:
        return None
    era = {"eighties": "80s", "nineties": "90s"}.get(era, era)
    return QueryFilter("era", era, "equals", 2.0)


def _theme_filter(query: str, intent: str) -> QueryFilter | None:
    theme = _first(_THEME_RE, query)
    return QueryFilter("theme", theme, "contains", 2.2) if theme else None


def _rating_filter(query: str, intent: str) -> QueryFilter | None:
    if intent == "find_highly_rated":
        return QueryFilter("rating", 7.5, "greater_than", 2.0)
    if intent == "find_hidden_gems":
        return QueryFilter("rating", 7.0, "greater_than", 1.8)
    return None


def _popularity_filter(query: str, intent: str) -> QueryFilter | None:
    if intent == "find_popular":
        return QueryFilter("popularity", 50.0, "greater_than", 2.0)
    if intent == "find_hidden_gems":
        return QueryFilter("popularity", 20.0, "less_than", 1.5)
    return None


def _seasonal_filter(query: str, intent: str) -> QueryFilter | None:
    season = _first(_SEASONAL_RE, query)
    return QueryFilter("seasonal", season, "equals", 3.0) if season else None


def _mood_filter(query: str, intent: str) -> QueryFilter | None:
    for pattern, mood in MOODS:
        if pattern.search(query):
            return QueryFilter("mood", mood, "equals", 2.5)
    return None


def _cast_filter(query: str, intent: str) -> QueryFilter | None:
    name = _first(_CAST_RE, query)
    return QueryFilter("cast", normalize_term(name), "contains", 2.5) if name else None


def _crew_filter(query: str, intent: str) -> QueryFilter | None:
    name = _first(_CREW_RE, query)
    return QueryFilter("director", normalize_term(name), "contains", 2.5) if name else None


def _franchise_filter(query: str, intent: str) -> QueryFilter | None:
    franchise = _first(_FRANCHISE_RE, query)
    return QueryFilter("franchise", franchise, "contains", 3.0) if franchise else None


FILTER_BUILDERS = {
    "genre": _genre_filter,
    "studio": _studio_filter,
    "era": _era_filter,
    "theme": _theme_filter,
    "rating": _rating_filter,
    "popularity": _popularity_filter,
    "seasonal": _seasonal_filter,
    "mood": _mood_filter,
    "cast": _cast_filter,
    "crew": _crew_filter,
    "franchise": _franchise_filter,
}


def build_filters(intent: DetectedIntent, query: str) -> tuple[QueryFilter, ...]:
    filters = [FILTER_BUILDERS[name](query, intent.name) for name in intent.filters]
    year = _YEAR_RE.search(query)
    if year:
        filters.append(QueryFilter("year", int(year.group(0)), "equals", 1.5))
    return tuple(dict.fromkeys(f for f in filters if f is not None))


def intent_confidence(primary: DetectedIntent | None, detected_count: int, filter_count: int) -> float:
    if primary is None:
        return 0.0
    confidence = primary.confidence
    if detected_count > 1:
        confidence = min(1.0, confidence * 1.1)
    if filter_count == 0:
        confidence *= 0.8
    return round(confidence, 2)


def analyze_intent(query: str, threshold: float = CONFIDENCE_THRESHOLD) -> IntentAnalysis:
    """Detect the primary intent of a query and derive its filters and strategy."""
    text = query.strip()
    detected = tuple(detect_intents(text))
    primary = detected[0] if detected and detected[0].confidence >= threshold else None
    if primary is None:
        return IntentAnalysis(query=query, detected=detected)

    strategy = STRATEGIES[primary.strategy]
    filters = build_filters(primary, text)
    analysis = IntentAnalysis(
        query=query,
        detected=detected,
        primary=primary,
        strategy=strategy,
        filters=filters,
        sort_order=strategy.sort_by,
        boosts=dict(strategy.boosts),
        constraints=dict(strategy.constraints),
        confidence=intent_confidence(primary, len(detected), len(filters)),
    )
    log.debug(f"Query '{query}' -> {primary.name} ({analysis.confidence}), {len(filters)} filters")
    return analysis
