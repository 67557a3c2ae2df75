"""Multi-algorithm recommendation engine over an enhanced relationship graph."""

from dataclasses import dataclass, field, replace
import logging
from typing import Any, Callable, Mapping

from ..graph.types import Connection, Dimension, Factor, RelationshipGraph, render_factors
from ..search.tokenize import keyword_overlap_score
from .config import ALGORITHMS, DEFAULT_RECOMMENDATION_CONFIG, TIERS, RecommendationConfig
from .signals import NullSignals, SignalSource

log = logging.getLogger(__name__)

SEASONAL_TERMS: dict[int, tuple[str, ...]] = {
    12: ("christmas", "holiday", "winter"),
    10: ("halloween", "horror", "scary"),
    2: ("valentine", "romance", "love"),
    6: ("summer", "vacation", "adventure"),
}

SEASON_NAMES = {
    12: "winter holidays", 1: "winter", 2: "Valentine's Day",
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "fall", 10: "Halloween", 11: "fall",
}

FRANCHISE_TYPES = ("franchise_timing", "franchise_member")


@dataclass(frozen=True)
class Recommendation:
    target: str
    score: float
    confidence: float
    algorithms: tuple[str, ...]
    factors: tuple[Factor, ...]
    type: str
    category: str | None = None
    weight: float = field(default=1.0, compare=False)
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def algorithm(self) -> str:
        return self.algorithms[0] if self.algorithms else ""

    @property
    def final_score(self) -> float:
        return self.score * self.confidence

    @property
    def reason(self) -> str:
        return render_factors(self.factors)

    def to_record(self) -> dict[str, Any]:
        record = {
            "id": self.target,
            "score": round(self.score, 6),
            "confidence": round(self.confidence, 6),
            "finalScore": round(self.final_score, 6),
            "algorithms": list(self.algorithms),
            "type": self.type,
            "reason": self.reason,
            "factors": [f.to_record() for f in self.factors],
        }
        if self.category:
            record["category"] = self.category
        if self.metadata:
            record["metadata"] = dict(self.metadata)
        return record


def _by_score(recs: list[Recommendation]) -> list[Recommendation]:
    return sorted(recs, key=lambda r: (-r.score, r.target, r.type))


def _by_final_score(recs: list[Recommendation]) -> list[Recommendation]:
    return sorted(recs, key=lambda r: (-r.final_score, -r.score, r.target, r.type))


def recommendation_similarity(a: Recommendation, b: Recommendation) -> float:
    """Blend of same type, same algorithm, score closeness and reason overlap."""
    similarity = 0.0
    if a.type == b.type:
        similarity += 0.3
    if a.algorithm == b.algorithm:
        similarity += 0.2
    closeness = 1 - min(1.0, abs(a.score - b.score))
    similarity += closeness * 0.2
    similarity += keyword_overlap_score(a.reason, b.reason) * 0.3
    return min(1.0, similarity)


def diversify(recs: list[Recommendation], threshold: float, cap: int) -> list[Recommendation]:
    """Keep the top candidate, then each one dissimilar to everything kept, up to ``cap``."""
    kept: list[Recommendation] = []
    for candidate in recs:
        if len(kept) >= cap:
            break
        if all(recommendation_similarity(candidate, other) < threshold for other in kept):
            kept.append(candidate)
    return kept


def merge_recommendations(recs: list[Recommendation]) -> list[Recommendation]:
    """Collapse same-target results into one weighted-average recommendation."""
    merged: dict[str, Recommendation] = {}
    for rec in recs:
        existing = merged.get(rec.target)
        if existing is None:
            merged[rec.target] = rec
            continue
        total = existing.weight + rec.weight
        merged[rec.target] = replace(
            existing,
            score=(existing.score * existing.weight + rec.score * rec.weight) / total,
            weight=total,
            algorithms=existing.algorithms + tuple(a for a in rec.algorithms if a not in existing.algorithms),
            factors=existing.factors + rec.factors,
        )
    return list(merged.values())


@dataclass(frozen=True)
class RecommendationTiers:
    """Built tiers: entity id -> ordered recommendations (category tier keyed by category first)."""

    quick: dict[str, tuple[Recommendation, ...]]
    deep: dict[str, tuple[Recommendation, ...]]
    category: dict[str, dict[str, tuple[Recommendation, ...]]]
    trending: dict[str, tuple[Recommendation, ...]]
    config: RecommendationConfig = field(default=DEFAULT_RECOMMENDATION_CONFIG, compare=False)

    def get_recommendations(
        self,
        entity_id: str,
        tier: str = "quick",
        category: str | None = None,
        limit: int = 10,
        min_confidence: float | None = None,
    ) -> list[Recommendation]:
        threshold = self.config.min_confidence if min_confidence is None else min_confidence
        if tier == "deep":
            recs = self.deep.get(entity_id, ())
        elif tier == "category":
            recs = self.category.get(category or "", {}).get(entity_id, ())
        elif tier == "trending":
            recs = self.trending.get(entity_id, ())
        else:
            recs = self.quick.get(entity_id, ())
        return [r for r in recs if r.confidence >= threshold][:limit]

    def stats(self) -> dict[str, Any]:
        entities = len(self.quick)
        quick_total = sum(len(recs) for recs in self.quick.values())
        deep_recs = [r for recs in self.deep.values() for r in recs]
        algorithms: dict[str, int] = {}
        confidence = {"high": 0, "medium": 0, "low": 0}
        for rec in deep_recs:
            for algorithm in rec.algorithms:
                algorithms[algorithm] = algorithms.get(algorithm, 0) + 1
            if rec.confidence >= 0.8:
                confidence["high"] += 1
            elif rec.confidence >= 0.5:
                confidence["medium"] += 1
            else:
                confidence["low"] += 1
        return {
            "total_entities": entities,
            "quick": {
                "total": quick_total,
                "average_per_entity": quick_total / entities if entities else 0.0,
                "average_confidence": _average([r.confidence for recs in self.quick.values() for r in recs]),
            },
            "deep": {
                "total": len(deep_recs),
                "average_per_entity": len(deep_recs) / entities if entities else 0.0,
                "average_confidence": _average([r.confidence for r in deep_recs]),
            },
            "trending_entities": len(self.trending),
            "algorithm_distribution": algorithms,
            "confidence_distribution": confidence,
        }

    def to_record(self) -> dict[str, Any]:
        def tier(recs: Mapping[str, tuple[Recommendation, ...]]) -> dict[str, list[dict]]:
            return {entity_id: [r.to_record() for r in items] for entity_id, items in sorted(recs.items())}

        stats = self.stats()
        return {
            "quick": tier(self.quick),
            "deep": tier(self.deep),
            "category": {name: tier(recs) for name, recs in self.category.items()},
            "trending": tier(self.trending),
            "metadata": {
                "totalEntities": stats["total_entities"],
                "totalCategories": len(self.category),
                "algorithmWeights": dict(self.config.algorithm_weights),
                "averageRecommendationsPerEntity": round(stats["deep"]["average_per_entity"], 2),
                "version": "3.0",
            },
        }


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def recommendations_from_record(
    record: Mapping[str, Any],
    entity_id: str,
    tier: str = "quick",
    category: str | None = None,
    limit: int = 10,
    min_confidence: float = DEFAULT_RECOMMENDATION_CONFIG.min_confidence,
) -> list[dict[str, Any]]:
    """Look up recommendations in a serialized recommendation engine."""
    if tier not in TIERS:
        raise ValueError(f"Unknown tier: {tier}")
    section = record.get(tier) or {}
    if tier == "category":
        section = section.get(category or "") or {}
    items = section.get(entity_id) or []
    return [r for r in items if r.get("confidence", 0) >= min_confidence][:limit]


class RecommendationEngine:
    """Builds quick, deep, category and trending tiers from a relationship graph.

    Each algorithm maps (entity id, graph) to candidate recommendations.
    Trending and seasonal scoring read popularity, recency and the
    calendar from a SignalSource; without one, trending stays empty.
    """

    def __init__(
        self,
        config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
        signals: SignalSource | None = None,
    ):
        self.config = config
        self.signals = signals or NullSignals()
        self.tiers: RecommendationTiers | None = None
        self.algorithms: dict[str, Callable[[str, RelationshipGraph], list[Recommendation]]] = {
            name: getattr(self, name) for name in ALGORITHMS
        }

    def run(self, algorithm: str, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        if algorithm not in self.algorithms:
            raise ValueError(f"Unknown algorithm: {algorithm}")
        return self.algorithms[algorithm](entity_id, graph)

    def build(self, graph: RelationshipGraph) -> RecommendationTiers:
        cfg = self.config
        entity_ids = graph.entity_ids()
        log.info(f"Building recommendation tiers for {len(entity_ids)} entities")

        quick = {entity_id: self.quick(entity_id, graph) for entity_id in entity_ids}
        deep = {entity_id: self.deep(entity_id, graph) for entity_id in entity_ids}
        category = {
            name: {entity_id: self.for_category(name, entity_id, graph) for entity_id in entity_ids}
            for name in cfg.categories
        }
        trending: dict[str, list[Recommendation]] = {}
        if cfg.enable_trending:
            for entity_id in entity_ids:
                found = self.trending(entity_id, graph)
                if found:
                    trending[entity_id] = found

        if cfg.enable_diversity:
            quick = {k: diversify(v, cfg.diversity_threshold, cfg.max_quick) for k, v in quick.items()}
            deep = {k: diversify(v, cfg.diversity_threshold, cfg.max_deep) for k, v in deep.items()}
            category = {
                name: {k: diversify(v, cfg.diversity_threshold, cfg.max_category) for k, v in recs.items()}
                for name, recs in category.items()
            }
            trending = {k: diversify(v, cfg.diversity_threshold, cfg.max_trending) for k, v in trending.items()}

        self.tiers = RecommendationTiers(
            quick={k: tuple(v[: cfg.max_quick]) for k, v in quick.items()},
            deep={k: tuple(v[: cfg.max_deep]) for k, v in deep.items()},
            category={
                name: {k: tuple(v[: cfg.max_category]) for k, v in recs.items()} for name, recs in category.items()
            },
            trending={k: tuple(v[: cfg.max_trending]) for k, v in trending.items()},
            config=cfg,
        )
        log.info(f"Recommendation tiers built: {len(self.tiers.trending)} entities with trending picks")
        return self.tiers

    def get_recommendations(
        self,
        entity_id: str,
        tier: str = "quick",
        category: str | None = None,
        limit: int = 10,
        min_confidence: float | None = None,
    ) -> list[Recommendation]:
        if self.tiers is None:
            raise RuntimeError("Recommendation engine has not been built")
        return self.tiers.get_recommendations(entity_id, tier, category, limit, min_confidence)

    # tiers

    def quick(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        cfg = self.config
        direct = [
            c for c in graph.get(entity_id, Dimension.DIRECT) if c.confidence >= cfg.quick_direct_confidence
        ][: cfg.quick_direct_take]
        semantic = [
            c for c in graph.get(entity_id, Dimension.SEMANTIC) if c.confidence >= cfg.quick_semantic_confidence
        ][: cfg.quick_semantic_take]
        recs = [self._from_connection(c, "content_based", score=c.final_score) for c in direct]
        recs += [self._from_connection(c, "cluster_based", score=c.final_score) for c in semantic]
        return _by_score(recs)[: cfg.max_quick]

    def deep(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        cfg = self.config
        algorithms = cfg.deep_algorithms if cfg.enable_multiple_algorithms else ("content_based",)
        candidates = [
            replace(rec, weight=cfg.weight_for(algorithm))
            for algorithm in algorithms
            for rec in self.run(algorithm, entity_id, graph)
        ]
        return _by_final_score(merge_recommendations(candidates))[: cfg.max_deep]

    def for_category(self, name: str, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        category = self.config.categories[name]
        recs = []
        for algorithm in category.algorithms:
            for rec in self.run(algorithm, entity_id, graph):
                score = rec.score
                reason = rec.reason.lower()
                for key, boost in category.boosts.items():
                    if rec.type == key or key.replace("_", " ") in reason:
                        score *= boost
                recs.append(replace(rec, score=score, category=name))
        return _by_score(recs)[: self.config.max_category]

    # algorithms

    def _from_connection(self, connection: Connection, algorithm: str, **changes: Any) -> Recommendation:
        rec = Recommendation(
            target=connection.target,
            score=connection.strength,
            confidence=connection.confidence,
            algorithms=(algorithm,),
            factors=connection.factors,
            type=connection.type,
            metadata=dict(connection.metadata),
        )
        return replace(rec, **changes) if changes else rec

    def _all_connections(self, entity_id: str, graph: RelationshipGraph) -> list[Connection]:
        return [c for items in graph.buckets(entity_id).values() for c in items]

    def content_based(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        return [
            self._from_connection(c, "content_based")
            for c in self._all_connections(entity_id, graph)
            if c.confidence >= self.config.min_confidence
        ]

    def collaborative(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        """Second-hand picks: the strongest connections of collaborative neighbours."""
        cfg = self.config
        recs = []
        for connection in graph.get(entity_id, Dimension.COLLABORATIVE):
            for items in graph.buckets(connection.target).values():
                for peer in items[: cfg.collaborative_peer_take]:
                    if peer.target == entity_id:
                        continue
                    recs.append(
                        Recommendation(
                            target=peer.target,
                            score=connection.strength * peer.strength * cfg.collaborative_factor,
                            confidence=0.6,
                            algorithms=("collaborative",),
                            factors=(Factor("collaborative", f'Users who liked this also liked "{peer.target}"'),),
                            type="collaborative",
                            metadata={"via": connection.target},
                        )
                    )
        return recs

    def hybrid(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        cfg = self.config
        combined: dict[str, Recommendation] = {}
        weighted = [(rec, cfg.hybrid_content_weight) for rec in self.content_based(entity_id, graph)]
        weighted += [(rec, cfg.hybrid_collaborative_weight) for rec in self.collaborative(entity_id, graph)]
        for rec, weight in weighted:
            existing = combined.get(rec.target)
            if existing is None:
                combined[rec.target] = replace(rec, score=rec.score * weight, algorithms=("hybrid",))
            else:
                combined[rec.target] = replace(
                    existing, score=existing.score + rec.score * weight, factors=existing.factors + rec.factors
                )
        return list(combined.values())

    def cluster_based(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        return [
            self._from_connection(c, "cluster_based", confidence=0.7)
            for c in graph.get(entity_id, Dimension.CLUSTER)
        ]

    def trending(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        """Connections to recent, popular entities."""
        cfg = self.config
        this_year = self.signals.current_year()
        recs = []
        for connection in self._all_connections(entity_id, graph):
            popularity = self.signals.popularity(connection.target)
            year = self.signals.year(connection.target)
            if popularity > cfg.trending_popularity and year >= this_year - cfg.trending_recent_years:
                recs.append(
                    Recommendation(
                        target=connection.target,
                        score=connection.strength * (popularity / 100) * cfg.trending_boost,
                        confidence=0.75,
                        algorithms=("trending",),
                        factors=(Factor("trending", "Trending now"),),
                        type="trending",
                        metadata={"popularity": popularity, "year": year},
                    )
                )
        return _by_score(merge_recommendations(recs))

    def seasonal(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        month = self.signals.month()
        terms = SEASONAL_TERMS.get(month)
        if not terms:
            return []
        recs = []
        for connection in self._all_connections(entity_id, graph):
            reason = connection.reason.lower()
            if any(term in reason for term in terms):
                recs.append(
                    Recommendation(
                        target=connection.target,
                        score=connection.strength * self.config.seasonal_boost,
                        confidence=0.8,
                        algorithms=("seasonal",),
                        factors=(Factor("seasonal", f"Perfect for {SEASON_NAMES[month]}"),),
                        type="seasonal",
                    )
                )
        return recs

    def franchise(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        recs = []
        for dimension in (Dimension.DIRECT, Dimension.TEMPORAL):
            for connection in graph.get(entity_id, dimension):
                if connection.type in FRANCHISE_TYPES:
                    recs.append(
                        Recommendation(
                            target=connection.target,
                            score=connection.strength * self.config.franchise_boost,
                            confidence=0.9,
                            algorithms=("franchise",),
                            factors=(Factor("franchise", "Part of the same franchise"),),
                            type="franchise",
                            metadata={"relation": connection.type},
                        )
                    )
        return recs

    def similar_users(self, entity_id: str, graph: RelationshipGraph) -> list[Recommendation]:
        # user-level data is not part of the catalog
        return []
