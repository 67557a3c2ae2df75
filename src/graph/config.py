"""Configuration for relationship graph construction."""

from dataclasses import dataclass

from .types import Dimension


@dataclass(frozen=True)
class GraphConfig:
    """Constants controlling graph building and post-processing."""

    reverse_discount: float = 0.9
    peer_factor: float = 0.7
    peer_same_type_boost: float = 1.2
    peer_floor: float = 0.3
    peer_confidence_factor: float = 0.8
    max_connections_per_dimension: int = 15
    max_catalog_size: int = 2000

    collaborative_min_genre_overlap: int = 2
    collaborative_max_rating_distance: float = 2.0
    collaborative_floor: float = 0.3
    collaborative_confidence_factor: float = 0.8

    decade_strength: float = 0.4
    decade_confidence: float = 0.6
    movement_strength: float = 0.7
    movement_confidence: float = 0.8

    cluster_min_members: int = 3
    cluster_strength: float = 0.6
    cluster_confidence: float = 0.7

    strong_threshold: float = 0.8
    medium_threshold: float = 0.5
    weak_threshold: float = 0.3

    def default_confidence(self, dimension: Dimension) -> float:
        """Confidence assumed for a connection that arrives without one."""
        return {
            Dimension.DIRECT: 0.9,
            Dimension.SEMANTIC: 0.7,
            Dimension.CONTEXTUAL: 0.6,
            Dimension.COLLABORATIVE: 0.8,
            Dimension.TEMPORAL: 0.5,
            Dimension.CULTURAL: 0.7,
            Dimension.CLUSTER: 0.6,
        }.get(dimension, 0.5)

    def strength_tier(self, score: float) -> str:
        if score >= self.strong_threshold:
            return "strong"
        if score >= self.medium_threshold:
            return "medium"
        return "weak"


DEFAULT_GRAPH_CONFIG = GraphConfig()
