"""Genre processor backed by the provider's movie and TV genre lists."""

import logging
from typing import Any, Sequence

from .base import sorted_keywords
from .client import FetchError, MetadataClient
from .model import Entity, EntityKind

log = logging.getLogger(__name__)

# name: (popularity, audience, themes, elements, subgenres)
GENRE_CHARACTERISTICS: dict[str, tuple[int, str, tuple[str, ...], tuple[str, ...], tuple[str, ...]]] = {
    "Action": (95, "teens_adults", ("adrenaline", "excitement", "physical conflict"),
               ("fast_paced", "stunts", "chase_scenes", "combat"),
               ("martial arts", "spy", "superhero", "military")),
    "Adventure": (85, "all_ages", ("exploration", "journey", "discovery"),
                  ("exotic_locations", "quests", "treasure_hunting"),
                  ("survival", "treasure hunt", "exploration")),
    "Animation": (70, "all_ages", ("imagination", "creativity", "storytelling"),
                  ("animated_characters", "voice_acting", "creative_visuals"),
                  ("cgi", "traditional", "stop_motion", "anime")),
    "Comedy": (90, "all_ages", ("humor", "entertainment", "social commentary"),
               ("jokes", "funny_situations", "comic_timing"),
               ("romantic comedy", "dark comedy", "parody", "slapstick")),
    "Crime": (75, "adults", ("justice", "morality", "law enforcement"),
              ("investigation", "criminal_activity", "police_work"),
              ("detective", "heist", "gangster", "procedural")),
    "Documentary": (45, "adults", ("education", "reality", "information"),
                    ("factual_content", "real_people", "educational_value"),
                    ("nature", "biographical", "investigative", "historical")),
    "Drama": (85, "adults", ("emotion", "character_development", "human_condition"),
              ("realistic_situations", "emotional_depth", "character_study"),
              ("family drama", "courtroom drama", "medical drama", "period drama")),
    "Family": (80, "all_ages", ("relationships", "values", "togetherness"),
               ("wholesome_content", "moral_lessons", "multi_generational_appeal"),
               ("children", "teen", "holiday", "educational")),
    "Fantasy": (75, "all_ages", ("magic", "imagination", "escape"),
                ("magical_elements", "mythical_creatures", "alternate_worlds"),
                ("high fantasy", "urban fantasy", "dark fantasy", "fairy tale")),
    "History": (55, "adults", ("past", "education", "cultural_heritage"),
                ("historical_accuracy", "period_setting", "real_events"),
                ("war", "biographical", "period piece", "ancient")),
    "Horror": (80, "mature_teens_adults", ("fear", "suspense", "supernatural"),
               ("fear_elements", "suspense", "supernatural_themes"),
               ("slasher", "psychological", "supernatural", "zombie")),
    "Music": (55, "all_ages", ("performance", "creativity", "emotion"),
              ("musical_numbers", "dance", "performance"),
              ("musical", "concert", "biographical", "competition")),
    "Mystery": (70, "teens_adults", ("puzzle", "investigation", "revelation"),
                ("clues", "investigation", "puzzle_solving"),
                ("detective", "cozy mystery", "noir", "whodunit")),
    "Romance": (75, "teens_adults", ("love", "relationships", "emotion"),
                ("love_story", "emotional_connection", "relationships"),
                ("romantic comedy", "romantic drama", "period romance", "teen romance")),
    "Science Fiction": (80, "teens_adults", ("technology", "future", "exploration"),
                        ("advanced_technology", "future_setting", "scientific_concepts"),
                        ("space opera", "cyberpunk", "dystopian", "time travel")),
    "Thriller": (85, "adults", ("suspense", "tension", "excitement"),
                 ("suspense", "tension", "psychological_elements"),
                 ("psychological thriller", "action thriller", "spy thriller")),
    "War": (60, "adults", ("conflict", "heroism", "sacrifice"),
            ("military_conflict", "battlefield_scenes", "heroism"),
            ("world war", "vietnam war", "modern warfare", "historical war")),
    "Western": (50, "adults", ("frontier", "justice", "survival"),
                ("frontier_setting", "cowboys", "law_vs_lawlessness"),
                ("classic western", "spaghetti western", "modern western")),
}

DEFAULT_GENRE_POPULARITY = {"TV Movie": 45, "Foreign": 40, "Short": 30}

RELATED_GENRES: dict[str, tuple[str, ...]] = {
    "Action": ("Adventure", "Thriller", "Crime"),
    "Adventure": ("Action", "Fantasy", "Family"),
    "Animation": ("Family", "Comedy", "Adventure"),
    "Comedy": ("Romance", "Family", "Animation"),
    "Crime": ("Thriller", "Drama", "Mystery"),
    "Documentary": ("History", "Biography"),
    "Drama": ("Romance", "Crime", "History"),
    "Family": ("Animation", "Comedy", "Adventure"),
    "Fantasy": ("Adventure", "Animation", "Romance"),
    "History": ("Drama", "War", "Biography"),
    "Horror": ("Thriller", "Mystery", "Supernatural"),
    "Music": ("Comedy", "Drama", "Romance"),
    "Mystery": ("Crime", "Thriller", "Horror"),
    "Romance": ("Comedy", "Drama", "Family"),
    "Science Fiction": ("Action", "Adventure", "Thriller"),
    "Thriller": ("Action", "Crime", "Mystery"),
    "War": ("Drama", "History", "Action"),
    "Western": ("Action", "Drama", "Adventure"),
}

ALTERNATIVE_NAMES = {
    "Science Fiction": ("sci-fi", "scifi", "science_fiction"),
    "TV Movie": ("television", "tv_movie", "made_for_tv"),
    "Music": ("musical", "music_drama", "concert"),
}


def genre_popularity(name: str) -> float:
    if name in GENRE_CHARACTERISTICS:
        return float(GENRE_CHARACTERISTICS[name][0])
    return float(DEFAULT_GENRE_POPULARITY.get(name, 50))


def genre_keywords(name: str) -> tuple[str, ...]:
    keywords = {name.lower(), *ALTERNATIVE_NAMES.get(name, ())}
    if name in GENRE_CHARACTERISTICS:
        _, _, themes, elements, subgenres = GENRE_CHARACTERISTICS[name]
        keywords.update(themes)
        keywords.update(elements)
        keywords.update(subgenres)
    return sorted_keywords(keywords)


def build_genre_entity(genre: dict[str, Any], applies_to: Sequence[str]) -> Entity:
    name = genre["name"]
    popularity, audience, themes, elements, subgenres = GENRE_CHARACTERISTICS.get(
        name, (0, "general", (), (), ())
    )
    return Entity(
        id=f"genre_{genre['id']}",
        kind=EntityKind.GENRE,
        name=name,
        source_id=genre["id"],
        description=f"{name} genre" + (f": {', '.join(themes)}" if themes else ""),
        popularity=genre_popularity(name),
        genres=(name,),
        keywords=genre_keywords(name),
        payload={
            "applies_to": list(applies_to),
            "themes": list(themes),
            "target_audience": audience,
            "typical_elements": list(elements),
            "subgenres": list(subgenres),
            "related_genres": list(RELATED_GENRES.get(name, ())),
        },
    )


class GenreProcessor:
    """Genres come from two fixed lists; search terms are ignored."""

    kind = EntityKind.GENRE

    def __init__(self, *, include_movie: bool = True, include_tv: bool = True):
        self.media = [m for m, on in (("movie", include_movie), ("tv", include_tv)) if on]

    async def gather(
        self, client: MetadataClient, terms: Sequence[str], limit: int
    ) -> dict[str, Entity]:
        applies: dict[str, list[str]] = {}
        raw: dict[str, dict[str, Any]] = {}
        for media in self.media:
            try:
                response = await client.genre_list(media)
            except FetchError as e:
                log.warning(f"Genre list for {media} unavailable: {e}")
                continue
            for genre in response.get("genres") or []:
                if not genre.get("name") or genre.get("id") is None:
                    continue
                # Same id means same genre across media; merge instead of duplicating
                key = f"genre_{genre['id']}"
                if key not in raw and len(raw) >= limit:
                    continue
                raw.setdefault(key, genre)
                applies.setdefault(key, []).append(media)

        genres = {key: build_genre_entity(raw[key], applies[key]) for key in raw}
        log.info(f"Collected {len(genres)} genre entities")
        return genres
