"""Configuration for search index construction and lookup."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SearchConfig:
    """Constants controlling term extraction, fuzzy variants and ranking."""

    max_terms_per_entity: int = 50
    min_term_length: int = 2
    max_content_terms: int = 20
    max_cast_terms: int = 10

    enable_fuzzy: bool = True
    enable_semantic: bool = True
    enable_inverse: bool = True
    enable_intent: bool = True

    fuzzy_min_length: int = 4
    omission_min_length: int = 6
    max_fuzzy_variations: int = 10

    exact_weight: float = 1.0
    fuzzy_weight: float = 0.6
    tag_weight: float = 0.4
    intent_weight: float = 0.2
    default_limit: int = 20


DEFAULT_SEARCH_CONFIG = SearchConfig()
