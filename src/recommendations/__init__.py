"""Tiered, diversified recommendations over the relationship graph."""

from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .engine import Recommendation, RecommendationEngine, RecommendationTiers
from .signals import CatalogSignals, NullSignals, SignalSource

__all__ = [
    "DEFAULT_RECOMMENDATION_CONFIG",
    "CatalogSignals",
    "NullSignals",
    "Recommendation",
    "RecommendationConfig",
    "RecommendationEngine",
    "RecommendationTiers",
    "SignalSource",
]
