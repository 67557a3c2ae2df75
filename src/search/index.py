"""Multi-index search structure built from a catalog and its relationship graph."""

from collections import defaultdict
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Iterable, Mapping

from ..entities.model import COUNTRY_NAMES, Entity
from ..graph.types import RelationshipGraph
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .intent import IntentAnalysis, QueryFilter, analyze_intent
from .query import expand_query, query_terms
from .tokenize import content_terms, is_valid_term, normalize_tag, normalize_term

log = logging.getLogger(__name__)

INDEX_VERSION = "3.0"

KEY_CREW_JOBS = ("Director", "Producer", "Writer", "Screenplay")
COMPANY_SUFFIXES = ("pictures", "studios", "entertainment", "productions", "films", "media")

STUDIO_CATEGORIES = {
    "marvel": "studio_marvel",
    "disney": "studio_disney",
    "warner": "studio_warner",
    "universal": "studio_universal",
    "netflix": "studio_netflix",
}

CULTURAL_CONTEXT_PATTERNS = {
    "oscar_worthy": re.compile(r"(oscar|academy|acclaimed|masterpiece)"),
    "cult_classic": re.compile(r"(cult|underground|indie)"),
    "blockbuster": re.compile(r"(blockbuster|massive|phenomenon)"),
}

THEME_CONCEPTS = {
    "heroic_journey": re.compile(r"(hero|journey|quest|chosen.one|destiny)"),
    "good_vs_evil": re.compile(r"(good.vs.evil|battle|fight|villain|hero)"),
    "coming_of_age": re.compile(r"(growing.up|teenager|coming.of.age|maturity)"),
    "redemption": re.compile(r"(redemption|second.chance|forgiveness|salvation)"),
    "sacrifice": re.compile(r"(sacrifice|selfless|giving.up|noble)"),
    "betrayal": re.compile(r"(betrayal|backstab|deception|treachery)"),
    "power_corruption": re.compile(r"(power|corruption|absolute.power|corrupt)"),
    "love_conquers": re.compile(r"(love.conquers|true.love|love.wins|eternal.love)"),
    "family_bonds": re.compile(r"(family|blood|relatives|kinship|heritage)"),
    "survival": re.compile(r"(survival|survive|desperate|life.or.death)"),
    "technology_humanity": re.compile(r"(technology|human|artificial|digital|cyber)"),
    "nature_civilization": re.compile(r"(nature|civilization|environment|wild)"),
}

GENRE_CONCEPTS: dict[str, tuple[str, ...]] = {
    "Action": ("physical_conflict", "adrenaline", "heroism"),
    "Romance": ("love_story", "relationships", "emotional_connection"),
    "Horror": ("fear", "supernatural", "psychological_terror"),
    "Comedy": ("humor", "social_commentary", "absurdity"),
    "Drama": ("human_condition", "emotional_depth", "realism"),
    "Science Fiction": ("future_speculation", "technology", "exploration"),
    "Fantasy": ("magical_worlds", "mythical_beings", "imagination"),
    "Thriller": ("suspense", "tension", "paranoia"),
    "Mystery": ("puzzle_solving", "investigation", "revelation"),
    "Documentary": ("truth_seeking", "education", "reality"),
}

CONFUSABLE_CHARS: dict[str, tuple[str, ...]] = {
    "a": ("e", "o"), "e": ("a", "i"), "i": ("e", "o"), "o": ("a", "u"), "u": ("o", "i"),
    "b": ("v", "p"), "v": ("b", "f"), "f": ("v", "p"), "p": ("b", "f"),
    "c": ("k", "s"), "k": ("c", "g"), "s": ("c", "z"), "z": ("s", "x"),
    "d": ("t", "g"), "t": ("d", "r"), "g": ("d", "h"), "h": ("g", "n"),
    "j": ("g", "h"), "l": ("r", "i"), "r": ("l", "t"), "n": ("m", "h"), "m": ("n", "w"),
}


def company_variations(name: str) -> list[str]:
    """Suffix-stripped forms and the acronym of a company name."""
    lowered = name.lower()
    variations = [lowered.replace(suffix, "", 1).strip() for suffix in COMPANY_SUFFIXES if suffix in lowered]
    words = lowered.split()
    if len(words) > 1:
        variations.append("".join(word[0] for word in words))
    return list(dict.fromkeys(variations))


def studio_category(name: str) -> str | None:
    lowered = name.lower()
    for keyword, category in STUDIO_CATEGORIES.items():
        if keyword in lowered:
            return category
    return None


def fuzzy_variations(term: str, config: SearchConfig = DEFAULT_SEARCH_CONFIG) -> list[str]:
    """The term itself plus single-character substitutions and omissions, capped."""
    variations = [term]
    if len(term) < config.fuzzy_min_length:
        return variations
    chars = list(term)
    for index, char in enumerate(chars):
        for substitute in CONFUSABLE_CHARS.get(char, ()):
            variations.append("".join(chars[:index] + [substitute] + chars[index + 1:]))
    if len(term) >= config.omission_min_length:
        for index in range(len(chars)):
            variations.append("".join(chars[:index] + chars[index + 1:]))
    return list(dict.fromkeys(variations))[: config.max_fuzzy_variations]


def _add(index: dict[str, set[str]], key: str, entity_id: str) -> None:
    index.setdefault(key, set()).add(entity_id)


def _freeze(index: Mapping[str, Iterable[str]]) -> dict[str, tuple[str, ...]]:
    return {key: tuple(sorted(values)) for key, values in sorted(index.items())}


@dataclass(frozen=True)
class SearchHit:
    entity_id: str
    score: float
    matched: tuple[str, ...]

    def to_record(self) -> dict[str, Any]:
        return {"id": self.entity_id, "score": round(self.score, 6), "matched": list(self.matched)}


@dataclass(frozen=True)
class SearchIndex:
    """Six independent lookup tables over one catalog build."""

    term_index: dict[str, tuple[str, ...]]
    category_index: dict[str, tuple[str, ...]]
    context_index: dict[str, tuple[str, ...]]
    semantic_index: dict[str, tuple[str, ...]]
    fuzzy_index: dict[str, tuple[str, ...]]
    inverse_index: dict[str, tuple[str, ...]]
    metadata: dict[str, Any] = field(default_factory=dict)
    config: SearchConfig = field(default=DEFAULT_SEARCH_CONFIG, compare=False)

    def stats(self) -> dict[str, Any]:
        entities = len(self.inverse_index)
        return {
            "term_count": len(self.term_index),
            "category_count": len(self.category_index),
            "context_count": len(self.context_index),
            "concept_count": len(self.semantic_index),
            "fuzzy_mapping_count": len(self.fuzzy_index),
            "entity_count": entities,
            "average_terms_per_entity": (
                sum(len(terms) for terms in self.inverse_index.values()) / entities if entities else 0.0
            ),
        }

    def tag_matches(self, term: str) -> set[str]:
        """Entities whose category or concept tags name the term."""
        tag = normalize_tag(term)
        found: set[str] = set(self.semantic_index.get(tag, ()))
        for key, ids in self.category_index.items():
            if key == tag or key.partition("_")[2] == tag:
                found.update(ids)
        return found

    def filter_matches(self, query_filter: QueryFilter) -> set[str]:
        """Entities matching any category, concept or term key of an intent filter."""
        keys = query_filter.keys()
        found: set[str] = set()
        for key in keys.categories:
            found.update(self.category_index.get(key, ()))
        for key in keys.concepts:
            found.update(self.semantic_index.get(key, ()))
        for term in keys.terms:
            found.update(self.term_index.get(term, ()))
        return found

    def analyze(self, query: str) -> IntentAnalysis:
        return analyze_intent(query) if self.config.enable_intent else IntentAnalysis(query=query)

    def search(self, query: str, limit: int | None = None, expand: bool = True) -> list[SearchHit]:
        """Rank entities by weighted exact, fuzzy, tag and intent-filter hits for the query."""
        cfg = self.config
        scores: dict[str, float] = defaultdict(float)
        matched: dict[str, list[str]] = defaultdict(list)

        def credit(ids: Iterable[str], weight: float, term: str) -> None:
            for entity_id in ids:
                scores[entity_id] += weight
                if term not in matched[entity_id]:
                    matched[entity_id].append(term)

        for term in query_terms(query):
            exact = self.term_index.get(term)
            if exact:
                credit(exact, cfg.exact_weight, term)
            else:
                near = {
                    entity_id
                    for candidate in self.fuzzy_index.get(term, ())
                    if candidate != term
                    for entity_id in self.term_index.get(candidate, ())
                }
                credit(sorted(near), cfg.fuzzy_weight, term)
            credit(sorted(self.tag_matches(term)), cfg.tag_weight, term)

        if expand:
            for term in expand_query(query):
                credit(self.term_index.get(term, ()), cfg.fuzzy_weight, term)

        analysis = self.analyze(query)
        for query_filter in analysis.filters:
            credit(sorted(self.filter_matches(query_filter)), cfg.intent_weight * query_filter.boost, query_filter.label)
        # Strategy constraints are hard filters on the ranked set
        for constraint in analysis.constraint_filters():
            allowed = self.filter_matches(constraint)
            for entity_id in [k for k in scores if k not in allowed]:
                del scores[entity_id]

        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        limit = cfg.default_limit if limit is None else limit
        return [SearchHit(entity_id, score, tuple(matched[entity_id])) for entity_id, score in ranked[:limit]]

    def to_record(self) -> dict[str, Any]:
        return {
            "termIndex": {k: list(v) for k, v in self.term_index.items()},
            "categoryIndex": {k: list(v) for k, v in self.category_index.items()},
            "contextIndex": {k: list(v) for k, v in self.context_index.items()},
            "semanticIndex": {k: list(v) for k, v in self.semantic_index.items()},
            "fuzzyIndex": {k: list(v) for k, v in self.fuzzy_index.items()},
            "inverseIndex": {k: list(v) for k, v in self.inverse_index.items()},
            "metadata": dict(self.metadata),
        }


class SearchIndexBuilder:
    """Builds a SearchIndex in six phases.

    Terms, categories, relationship contexts, semantic concepts, fuzzy
    variants of every indexed term, and the inverse entity -> terms map.
    """

    def __init__(self, config: SearchConfig = DEFAULT_SEARCH_CONFIG):
        self.config = config

    def build(self, catalog: Mapping[str, Entity], graph: RelationshipGraph | None = None) -> SearchIndex:
        cfg = self.config
        graph = graph or RelationshipGraph({})
        log.info(f"Building search index for {len(catalog)} entities")

        terms: dict[str, set[str]] = {}
        categories: dict[str, set[str]] = {}
        for entity_id in sorted(catalog):
            entity = catalog[entity_id]
            for raw in self.extract_terms(entity):
                term = normalize_term(raw)
                if is_valid_term(term, cfg.min_term_length):
                    _add(terms, term, entity_id)
            for category in self.categorize(entity):
                _add(categories, category, entity_id)
        log.info(f"Indexed {len(terms)} unique terms, {len(categories)} categories")

        contexts: dict[str, set[str]] = {}
        for entity_id in graph.entity_ids():
            entity = catalog.get(entity_id)
            if entity is None:
                continue
            for context in self.relationship_contexts(entity, graph):
                _add(contexts, context, entity_id)
        log.info(f"Created {len(contexts)} context mappings")

        concepts: dict[str, set[str]] = {}
        if cfg.enable_semantic:
            for key, members in graph.clusters.items():
                for entity_id in members:
                    _add(concepts, normalize_tag(key), entity_id)
            for entity_id in sorted(catalog):
                for concept in self.semantic_concepts(catalog[entity_id]):
                    _add(concepts, concept, entity_id)
            log.info(f"Created {len(concepts)} semantic concepts")

        fuzzy: dict[str, set[str]] = {}
        if cfg.enable_fuzzy:
            for term in terms:
                for variant in fuzzy_variations(term, cfg):
                    _add(fuzzy, variant, term)
            log.info(f"Created {len(fuzzy)} fuzzy term mappings")

        inverse: dict[str, set[str]] = {}
        if cfg.enable_inverse:
            for term, ids in terms.items():
                for entity_id in ids:
                    _add(inverse, entity_id, term)

        return SearchIndex(
            term_index=_freeze(terms),
            category_index=_freeze(categories),
            context_index=_freeze(contexts),
            semantic_index=_freeze(concepts),
            fuzzy_index=_freeze(fuzzy),
            inverse_index=_freeze(inverse),
            metadata={
                "totalTerms": len(terms),
                "totalCategories": len(categories),
                "totalContexts": len(contexts),
                "totalConcepts": len(concepts),
                "totalFuzzyMappings": len(fuzzy),
                "version": INDEX_VERSION,
            },
            config=cfg,
        )

    def extract_terms(self, entity: Entity) -> list[str]:
        """Raw searchable strings for one entity, deduplicated and capped."""
        cfg = self.config
        raw: list[str] = [entity.name, *entity.aliases, *entity.keywords, *entity.genres]
        for company in entity.companies:
            name = company.get("name") or ""
            raw.append(name)
            if name:
                raw.extend(company_variations(name))
        raw.extend(member.get("name") or "" for member in entity.cast[: cfg.max_cast_terms])
        raw.extend(member.get("name") or "" for member in entity.crew if member.get("job") in KEY_CREW_JOBS)
        raw.extend(content_terms(entity.description, cfg.min_term_length, cfg.max_content_terms))
        raw.extend(content_terms(entity.tagline, cfg.min_term_length, cfg.max_content_terms))
        for country in entity.countries:
            raw.extend((country, COUNTRY_NAMES.get(country, country)))
        if entity.year:
            raw.extend((str(entity.year), f"{entity.decade}s"))
        if entity.collection_name:
            raw.append(entity.collection_name)

        cleaned = [value.strip() for value in raw if isinstance(value, str) and value.strip()]
        unique = [value for value in dict.fromkeys(cleaned) if len(value) >= cfg.min_term_length]
        return unique[: cfg.max_terms_per_entity]

    def categorize(self, entity: Entity) -> list[str]:
        categories = [f"type_{entity.kind.value}"]
        categories.extend(f"genre_{normalize_tag(genre)}" for genre in entity.genres)
        for company in entity.companies:
            category = studio_category(company.get("name") or "")
            if category:
                categories.append(category)

        rating = entity.rating
        if rating >= 8.5:
            categories.append("rating_excellent")
        elif rating >= 7.5:
            categories.append("rating_great")
        elif rating >= 6.5:
            categories.append("rating_good")
        elif rating >= 5.5:
            categories.append("rating_average")
        elif rating > 0:
            categories.append("rating_poor")

        popularity = entity.popularity
        if popularity >= 80:
            categories.append("popularity_viral")
        elif popularity >= 50:
            categories.append("popularity_trending")
        elif popularity >= 20:
            categories.append("popularity_popular")
        elif popularity >= 5:
            categories.append("popularity_known")
        else:
            categories.append("popularity_niche")

        year = entity.year
        if year:
            categories.append(f"decade_{entity.decade}s")
            if year >= 2020:
                categories.append("era_current")
            elif year >= 2010:
                categories.append("era_recent")
            elif year >= 2000:
                categories.append("era_modern")
            elif year >= 1990:
                categories.append("era_contemporary")
            elif year >= 1980:
                categories.append("era_vintage")
            else:
                categories.append("era_classic")

        if entity.language:
            categories.append(f"language_{entity.language}")
            if entity.language != "en":
                categories.append("international")
        if entity.adult:
            categories.append("content_adult")
        department = entity.payload.get("known_for_department")
        if department:
            categories.append(f"profession_{normalize_tag(department)}")
        return list(dict.fromkeys(categories))

    def relationship_contexts(self, entity: Entity, graph: RelationshipGraph) -> list[str]:
        contexts: list[str] = []
        for dimension, items in graph.buckets(entity.id).items():
            if not items:
                continue
            contexts.append(f"connected_{dimension.value}")
            average = sum(c.strength for c in items) / len(items)
            if average >= 0.8:
                contexts.append(f"strongly_connected_{dimension.value}")
            elif average >= 0.5:
                contexts.append(f"moderately_connected_{dimension.value}")
            contexts.extend(f"relationship_{c.type}" for c in items)
        if entity.collection_id or entity.collection_name:
            contexts.append("franchise_member")
        text = f"{entity.description} {entity.name}".lower()
        contexts.extend(
            f"cultural_{marker}" for marker, pattern in CULTURAL_CONTEXT_PATTERNS.items() if pattern.search(text)
        )
        contexts.append(graph.connectivity_tier(entity.id))
        return list(dict.fromkeys(contexts))

    def semantic_concepts(self, entity: Entity) -> list[str]:
        text = f"{entity.description} {entity.name}".lower()
        concepts = [concept for concept, pattern in THEME_CONCEPTS.items() if pattern.search(text)]
        for genre in entity.genres:
            concepts.extend(GENRE_CONCEPTS.get(genre, ()))
        return list(dict.fromkeys(concepts))
