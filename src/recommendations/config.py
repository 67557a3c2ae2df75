"""Configuration for recommendation tiers, algorithms and diversity control."""

from dataclasses import dataclass, field
from typing import Mapping

ALGORITHMS = (
    "content_based",
    "collaborative",
    "hybrid",
    "cluster_based",
    "trending",
    "seasonal",
    "franchise",
    "similar_users",
)

TIERS = ("quick", "deep", "category", "trending")


@dataclass(frozen=True)
class CategoryConfig:
    algorithms: tuple[str, ...]
    boosts: Mapping[str, float]


def _default_categories() -> dict[str, CategoryConfig]:
    return {
        "genre": CategoryConfig(
            ("content_based", "cluster_based"),
            {"genre_match": 2.0, "semantic_similarity": 1.5},
        ),
        "studio": CategoryConfig(
            ("content_based", "franchise"),
            {"studio_universe": 2.5, "franchise_member": 2.0},
        ),
        "people": CategoryConfig(
            ("content_based", "collaborative"),
            {"talent_overlap": 2.2, "collaborative_filtering": 1.8},
        ),
        "theme": CategoryConfig(
            ("content_based", "seasonal"),
            {"cultural_significance": 2.5, "semantic_similarity": 2.0},
        ),
        "temporal": CategoryConfig(
            ("content_based", "trending"),
            {"same_era": 2.0, "same_decade": 1.8},
        ),
    }


def _default_weights() -> dict[str, float]:
    return {
        "content_based": 0.3,
        "collaborative": 0.25,
        "cluster_based": 0.2,
        "trending": 0.15,
        "franchise": 0.1,
    }


@dataclass(frozen=True)
class RecommendationConfig:
    """Constants controlling tier sizes, thresholds and algorithm blending."""

    max_quick: int = 10
    max_deep: int = 25
    max_category: int = 15
    max_trending: int = 10
    min_confidence: float = 0.3
    diversity_threshold: float = 0.7

    enable_multiple_algorithms: bool = True
    enable_trending: bool = True
    enable_diversity: bool = True

    quick_direct_confidence: float = 0.8
    quick_semantic_confidence: float = 0.7
    quick_direct_take: int = 5
    quick_semantic_take: int = 3

    deep_algorithms: tuple[str, ...] = ("content_based", "collaborative", "cluster_based")
    algorithm_weights: Mapping[str, float] = field(default_factory=_default_weights)
    hybrid_content_weight: float = 0.7
    hybrid_collaborative_weight: float = 0.3
    collaborative_peer_take: int = 3
    collaborative_factor: float = 0.8

    trending_popularity: float = 70.0
    trending_recent_years: int = 2
    trending_boost: float = 1.2
    seasonal_boost: float = 1.5
    franchise_boost: float = 1.3

    categories: Mapping[str, CategoryConfig] = field(default_factory=_default_categories)

    def weight_for(self, algorithm: str) -> float:
        return self.algorithm_weights.get(algorithm, 0.2)


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
