"""Thematic similarity from text pattern tables and genre semantics."""

from dataclasses import dataclass, field
import re
from typing import Mapping

from ..entities.model import Entity
from ..graph.types import Connection, Dimension
from .base import make_connection, others, sort_by_strength


def _patterns(table: dict[str, str]) -> dict[str, re.Pattern]:
    return {name: re.compile(pattern) for name, pattern in table.items()}


THEME_PATTERNS = _patterns({
    "family": r"(family|children|kids|parent|father|mother|son|daughter|sibling|relatives)",
    "romance": r"(love|romance|relationship|marriage|wedding|date|romantic|passion|affair)",
    "action": r"(action|fight|battle|war|explosion|chase|violence|combat|martial arts)",
    "mystery": r"(mystery|detective|investigation|crime|murder|police|clues|solve|puzzle)",
    "supernatural": r"(magic|supernatural|fantasy|ghost|vampire|wizard|witch|spell|mystical)",
    "comedy": r"(comedy|funny|humor|laugh|joke|comic|hilarious|amusing|witty)",
    "drama": r"(drama|emotional|tragedy|life|death|struggle|serious|heartbreak)",
    "scifi": r"(future|space|technology|robot|alien|science|fiction|cyberpunk|dystopian)",
    "horror": r"(horror|scary|fear|terror|nightmare|monster|demon|evil|haunted)",
    "historical": r"(history|historical|period|past|ancient|medieval|victorian|vintage)",
    "biography": r"(biography|biopic|real|true|based|story|life|memoir|documentary)",
    "musical": r"(music|musical|song|dance|band|concert|performance|singing)",
    "sports": r"(sport|game|competition|team|athlete|championship|olympics|tournament)",
    "adventure": r"(adventure|journey|quest|explore|travel|discover|expedition|treasure)",
    "western": r"(western|cowboy|frontier|ranch|sheriff|outlaw|saloon|horse)",
    "coming_of_age": r"(growing up|teenager|adolescent|youth|teen|high school|college)",
    "revenge": r"(revenge|vengeance|payback|retribution|justice|betrayal)",
    "survival": r"(survival|survive|stranded|wilderness|disaster|apocalypse|rescue)",
    "friendship": r"(friendship|friends|buddy|companion|loyalty|bond|brotherhood)",
    "redemption": r"(redemption|second chance|forgiveness|reform|salvation|recovery)",
})

SETTING_PATTERNS = _patterns({
    "urban": r"(city|urban|street|downtown|metropolitan|skyscraper|neighborhood)",
    "rural": r"(rural|country|farm|village|small.town|countryside|provincial)",
    "school": r"(school|college|university|student|education|classroom|campus)",
    "workplace": r"(office|work|job|business|corporate|company|career|profession)",
    "hospital": r"(hospital|medical|doctor|nurse|patient|clinic|surgery)",
    "military": r"(military|army|soldier|war|combat|veteran|base|battlefield)",
    "prison": r"(prison|jail|convict|criminal|inmate|correctional|penitentiary)",
    "high_society": r"(wealthy|rich|elite|luxury|mansion|society|aristocrat|privilege)",
    "underground": r"(underground|secret|hidden|criminal|mafia|gang|illegal)",
    "small_town": r"(small.town|village|rural|community|local|provincial|intimate)",
    "futuristic": r"(futuristic|future|advanced|technological|space|cyberpunk)",
    "historical": r"(historical|period|past|vintage|classic|traditional|ancient)",
})

MOOD_PATTERNS = _patterns({
    "dark": r"(dark|gritty|noir|bleak|grim|sinister|ominous|foreboding)",
    "light": r"(light|bright|cheerful|optimistic|uplifting|positive|joyful)",
    "intense": r"(intense|gripping|thrilling|suspenseful|edge.of.seat|nail.biting)",
    "emotional": r"(emotional|touching|heartfelt|moving|tear.jerker|poignant)",
    "humorous": r"(humorous|funny|witty|satirical|comedic|amusing|entertaining)",
    "thought_provoking": r"(thought.provoking|philosophical|deep|meaningful|profound)",
    "escapist": r"(escapist|fantasy|magical|whimsical|imaginative|fantastical)",
    "realistic": r"(realistic|authentic|genuine|true.to.life|documentary.style)",
})

AUDIENCE_PATTERNS = _patterns({
    "family_friendly": r"(family.friendly|all.ages|wholesome|clean|appropriate)",
    "mature": r"(mature|adult|sophisticated|complex|nuanced|intellectual)",
    "teen": r"(teen|teenage|adolescent|young.adult|youth|high.school)",
    "male_oriented": r"(action.packed|testosterone|masculine|guy.movie|bros)",
    "female_oriented": r"(romance|emotional|relationship|chick.flick|feminine)",
    "art_house": r"(art.house|independent|indie|experimental|avant.garde|festival)",
    "mainstream": r"(mainstream|popular|blockbuster|commercial|mass.appeal)",
    "niche": r"(niche|specialized|cult|underground|alternative|unique)",
})

# genre -> (themes, settings, moods, audience)
GENRE_SEMANTICS: dict[str, tuple[tuple[str, ...], ...]] = {
    "Action": (("action",), (), ("intense",), ("male_oriented",)),
    "Adventure": (("adventure",), (), ("escapist",), ("family_friendly",)),
    "Animation": (("family",), (), ("light",), ("family_friendly",)),
    "Comedy": (("comedy",), (), ("humorous", "light"), ("mainstream",)),
    "Crime": (("mystery",), ("urban",), ("dark",), ()),
    "Documentary": (("biography",), (), ("realistic",), ("mature",)),
    "Drama": (("drama",), (), ("emotional",), ("mature",)),
    "Family": (("family",), (), ("light",), ("family_friendly",)),
    "Fantasy": (("supernatural",), (), ("escapist",), ("mainstream",)),
    "History": (("historical",), ("historical",), (), ("mature",)),
    "Horror": (("horror",), (), ("dark",), ("mature",)),
    "Music": (("musical",), (), ("light",), ("mainstream",)),
    "Mystery": (("mystery",), (), ("intense",), ("mature",)),
    "Romance": (("romance",), (), ("emotional",), ("female_oriented",)),
    "Science Fiction": (("scifi",), ("futuristic",), ("thought_provoking",), ()),
    "Thriller": (("mystery",), (), ("intense",), ("mature",)),
    "War": (("action",), ("military",), ("dark",), ()),
    "Western": (("western",), ("rural",), ("dark",), ()),
}

CATEGORY_WEIGHTS = {"themes": 1.0, "settings": 0.8, "moods": 0.9, "audience": 0.7}
STRONG_THEMES = frozenset({"horror", "romance", "comedy", "musical", "western"})
CONFIDENT_THEMES = frozenset({"horror", "romance", "comedy", "musical", "documentary"})

TITLE_SAGA = re.compile(r"\b(the|a|an)\s+\w+\s+(saga|chronicles|trilogy|series|collection)\b")
TITLE_SEQUEL = re.compile(r"\b(part|chapter|episode|volume|book)\s+\d+|\d+\s*$")
TITLE_REBOOT = re.compile(r"(reboot|remake|reimagining|retelling|origins?)")
TITLE_DARK = re.compile(r"(dark|black|shadow|night|blood|death|dead|kill|murder)")
TITLE_LIGHT = re.compile(r"(love|happy|joy|light|bright|hope|dream|wish|magic)")
TITLE_FAMILY = re.compile(r"(family|kids|children|baby|home|mom|dad|parent)")


@dataclass
class SemanticProfile:
    themes: list[str] = field(default_factory=list)
    settings: list[str] = field(default_factory=list)
    moods: list[str] = field(default_factory=list)
    audience: list[str] = field(default_factory=list)

    def add(self, category: str, *values: str) -> None:
        bucket = getattr(self, category)
        for value in values:
            if value not in bucket:
                bucket.append(value)

    def is_empty(self) -> bool:
        return not (self.themes or self.settings or self.moods or self.audience)


@dataclass(frozen=True)
class Similarity:
    score: float
    common: dict[str, list[str]]
    breakdown: dict[str, float]

    @property
    def match_count(self) -> int:
        return sum(len(values) for values in self.common.values())


def content_string(entity: Entity) -> str:
    parts = [entity.description, entity.tagline, entity.name, *entity.aliases, " ".join(entity.genres), " ".join(entity.keywords)]
    return " ".join(p for p in parts if p).lower()


def extract_profile(entity: Entity) -> SemanticProfile:
    content = content_string(entity)
    profile = SemanticProfile()
    for category, table in (
        ("themes", THEME_PATTERNS),
        ("settings", SETTING_PATTERNS),
        ("moods", MOOD_PATTERNS),
        ("audience", AUDIENCE_PATTERNS),
    ):
        profile.add(category, *(name for name, pattern in table.items() if pattern.search(content)))

    for genre in entity.genres:
        semantics = GENRE_SEMANTICS.get(genre)
        if semantics:
            for category, values in zip(("themes", "settings", "moods", "audience"), semantics):
                profile.add(category, *values)

    title = entity.name.lower()
    if TITLE_SAGA.search(title):
        profile.add("themes", "adventure")
    if TITLE_SEQUEL.search(title) or TITLE_REBOOT.search(title):
        profile.add("audience", "mainstream")
    if TITLE_DARK.search(title):
        profile.add("moods", "dark")
    if TITLE_LIGHT.search(title):
        profile.add("moods", "light")
    if TITLE_FAMILY.search(title):
        profile.add("themes", "family")
        profile.add("audience", "family_friendly")
    return profile


def category_similarity(a: list[str], b: list[str]) -> float:
    if not a or not b:
        return 0.0
    return len(set(a) & set(b)) / len(set(a) | set(b))


def similarity(a: SemanticProfile, b: SemanticProfile) -> Similarity:
    common = {}
    breakdown = {}
    for category in CATEGORY_WEIGHTS:
        mine, theirs = getattr(a, category), getattr(b, category)
        common[category] = [value for value in mine if value in theirs]
        breakdown[category] = category_similarity(mine, theirs)

    score = sum(breakdown[c] * w for c, w in CATEGORY_WEIGHTS.items()) / sum(CATEGORY_WEIGHTS.values())

    themes, moods, audience = common["themes"], common["moods"], common["audience"]
    if STRONG_THEMES.intersection(themes):
        score *= 1.3
    matched_categories = sum(1 for values in common.values() if values)
    if matched_categories >= 3:
        score *= 1.2
    elif matched_categories >= 2:
        score *= 1.1
    if "horror" in themes and "dark" in moods:
        score *= 1.2
    if "romance" in themes and "emotional" in moods:
        score *= 1.2
    if "family" in themes and "family_friendly" in audience:
        score *= 1.15
    return Similarity(min(1.0, score), common, breakdown)


def semantic_confidence(result: Similarity) -> float:
    confidence = 0.85 if CONFIDENT_THEMES.intersection(result.common["themes"]) else 0.7
    if result.match_count >= 4:
        confidence = min(0.95, confidence + 0.15)
    elif result.match_count >= 2:
        confidence = min(0.9, confidence + 0.1)
    if result.score > 0.7:
        confidence = min(0.95, confidence + 0.1)
    return confidence


class SemanticAnalyzer:
    """Pairs entities whose descriptions share themes, settings, moods or audience."""

    dimension = Dimension.SEMANTIC

    def __init__(self, threshold: float = 0.3, max_connections: int = 20):
        self.threshold = threshold
        self.max_connections = max_connections
        self._profiles: dict[str, tuple[Entity, SemanticProfile]] = {}

    def profile(self, entity: Entity) -> SemanticProfile:
        cached = self._profiles.get(entity.id)
        if cached is not None and cached[0] is entity:
            return cached[1]
        profile = extract_profile(entity)
        self._profiles[entity.id] = (entity, profile)
        return profile

    def find_connections(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        mine = self.profile(entity)
        if mine.is_empty():
            return []

        connections = []
        for other in others(entity, catalog):
            theirs = self.profile(other)
            if theirs.is_empty():
                continue
            result = similarity(mine, theirs)
            if result.score <= self.threshold:
                continue
            connections.append(
                make_connection(
                    other.id,
                    self.dimension,
                    "semantic_similarity",
                    result.score,
                    semantic_confidence(result),
                    f"Similar themes: {', '.join(result.common['themes'])}",
                    metadata={
                        "common_themes": result.common["themes"],
                        "common_settings": result.common["settings"],
                        "common_moods": result.common["moods"],
                        "common_audience": result.common["audience"],
                        "breakdown": result.breakdown,
                    },
                )
            )
        return sort_by_strength(connections)[: self.max_connections]
