"""Tests for recommendation algorithms, tiers and diversity control."""

from datetime import date
from itertools import combinations

import pytest

from src.analyzers.base import make_connection
from src.entities.model import Entity, EntityKind
from src.graph.types import Dimension, RelationshipGraph, empty_buckets
from src.recommendations.config import RecommendationConfig
from src.recommendations.engine import (
    RecommendationEngine,
    diversify,
    recommendation_similarity,
    recommendations_from_record,
)
from src.recommendations.signals import CatalogSignals, NullSignals


def _conn(target, dimension, type_, strength, confidence, reason):
    return make_connection(target, dimension, type_, strength, confidence, reason)


def _graph(layout: dict[str, dict[Dimension, list]], clusters=None) -> RelationshipGraph:
    ids = set(layout) | {c.target for buckets in layout.values() for items in buckets.values() for c in items}
    connections = {}
    for entity_id in sorted(ids):
        buckets = empty_buckets()
        for dimension, items in layout.get(entity_id, {}).items():
            buckets[dimension] = tuple(items)
        connections[entity_id] = buckets
    return RelationshipGraph(connections, clusters or {})


@pytest.fixture
def graph():
    return _graph(
        {
            "a": {
                Dimension.DIRECT: [
                    _conn("b", Dimension.DIRECT, "genre_match", 0.9, 0.9, "Shared genres: Action"),
                    _conn("c", Dimension.DIRECT, "studio_universe", 0.8, 0.5, "Same studio: Pixar"),
                ],
                Dimension.SEMANTIC: [
                    _conn("d", Dimension.SEMANTIC, "semantic_similarity", 0.7, 0.8, "Shared themes: heroism"),
                ],
                Dimension.TEMPORAL: [
                    _conn("c", Dimension.TEMPORAL, "franchise_timing", 0.85, 0.8, "Franchise released 3 years apart"),
                ],
                Dimension.COLLABORATIVE: [
                    _conn("e", Dimension.COLLABORATIVE, "collaborative_filtering", 0.8, 0.64, "Users with similar taste"),
                ],
                Dimension.CLUSTER: [
                    _conn("b", Dimension.CLUSTER, "cluster_member", 0.6, 0.7, "Part of action_cluster cluster"),
                ],
            },
            "e": {
                Dimension.DIRECT: [
                    _conn("f", Dimension.DIRECT, "genre_match", 0.9, 0.9, "Shared genres: Horror"),
                    _conn("a", Dimension.DIRECT, "genre_match", 0.5, 0.9, "Shared genres: Drama"),
                ],
            },
        }
    )


def test_quick_tier_uses_confidence_gates(graph):
    engine = RecommendationEngine()
    quick = engine.quick("a", graph)

    assert [r.target for r in quick] == ["b", "d"]
    assert quick[0].score == pytest.approx(0.81)
    assert quick[0].algorithm == "content_based"
    assert quick[1].algorithm == "cluster_based"


def test_deep_tier_merges_algorithms_by_weighted_average(graph):
    engine = RecommendationEngine(RecommendationConfig(enable_diversity=False))
    deep = {r.target: r for r in engine.deep("a", graph)}

    merged = deep["b"]
    # content_based sees b twice (direct and cluster), then cluster_based once
    assert merged.score == pytest.approx((0.75 * 0.6 + 0.6 * 0.2) / 0.8)
    assert merged.algorithms == ("content_based", "cluster_based")
    assert merged.confidence == pytest.approx(0.9)
    assert "f" in deep
    assert deep["f"].algorithms == ("collaborative",)
    assert "a" not in deep


def test_collaborative_reaches_neighbour_picks(graph):
    recs = RecommendationEngine().collaborative("a", graph)

    assert [r.target for r in recs] == ["f"]
    assert recs[0].score == pytest.approx(0.8 * 0.9 * 0.8)
    assert recs[0].confidence == pytest.approx(0.6)
    assert recs[0].reason == 'Users who liked this also liked "f"'


def test_hybrid_weights_content_and_collaborative(graph):
    recs = {r.target: r for r in RecommendationEngine().hybrid("a", graph)}

    assert recs["d"].score == pytest.approx(0.7 * 0.7)
    assert recs["f"].score == pytest.approx(0.3 * 0.576)
    assert recs["f"].algorithms == ("hybrid",)


def test_category_boosts_matching_types(graph):
    recs = RecommendationEngine().for_category("genre", "a", graph)

    assert recs[0].target == "b"
    assert recs[0].score == pytest.approx(0.9 * 2.0)
    assert recs[0].category == "genre"

    studio = {(r.target, r.type): r for r in RecommendationEngine().for_category("studio", "a", graph)}
    assert studio[("c", "studio_universe")].score == pytest.approx(0.8 * 2.5)
    assert studio[("c", "franchise")].score == pytest.approx(0.85 * 1.3)


def test_franchise_and_seasonal_algorithms(graph):
    franchise = RecommendationEngine().franchise("a", graph)
    assert [(r.target, r.confidence) for r in franchise] == [("c", 0.9)]
    assert franchise[0].metadata["relation"] == "franchise_timing"

    halloween = _graph(
        {"x": {Dimension.DIRECT: [_conn("y", Dimension.DIRECT, "genre_match", 0.6, 0.9, "Shared genres: Horror")]}}
    )
    october = RecommendationEngine(signals=NullSignals(today=date(2026, 10, 15)))
    seasonal = october.seasonal("x", halloween)
    assert seasonal[0].score == pytest.approx(0.9)
    assert seasonal[0].reason == "Perfect for Halloween"
    march = RecommendationEngine(signals=NullSignals(today=date(2026, 3, 15)))
    assert march.seasonal("x", halloween) == []


def test_trending_reads_signal_source(graph):
    catalog = {
        "b": Entity(id="b", kind=EntityKind.MOVIE, name="B", popularity=80.0, release_date="2025-04-01"),
        "d": Entity(id="d", kind=EntityKind.MOVIE, name="D", popularity=95.0, release_date="1999-04-01"),
        "c": Entity(id="c", kind=EntityKind.MOVIE, name="C", popularity=40.0, release_date="2026-01-01"),
    }
    engine = RecommendationEngine(signals=CatalogSignals(catalog, today=date(2026, 5, 1)))

    trending = engine.trending("a", graph)
    assert [r.target for r in trending] == ["b"]
    assert trending[0].reason == "Trending now"

    assert RecommendationEngine().trending("a", graph) == []


def test_diversity_cap_holds_in_every_tier(graph):
    crowded = _graph(
        {
            "hub": {
                Dimension.DIRECT: [
                    _conn(f"m{i}", Dimension.DIRECT, "genre_match", 0.9, 0.9, "Shared genres: Action")
                    for i in range(8)
                ]
            }
        }
    )
    config = RecommendationConfig()
    for g in (graph, crowded):
        tiers = RecommendationEngine(config).build(g)
        groups = [tiers.quick, tiers.deep, tiers.trending, *tiers.category.values()]
        for group in groups:
            for recs in group.values():
                for first, second in combinations(recs, 2):
                    assert recommendation_similarity(first, second) < config.diversity_threshold

    tiers = RecommendationEngine(config).build(crowded)
    assert len(tiers.quick["hub"]) == 1


def test_diversify_keeps_top_and_stops_at_cap(graph):
    recs = RecommendationEngine().content_based("a", graph)

    kept = diversify(recs, threshold=1.1, cap=2)
    assert kept == recs[:2]
    assert diversify([], 0.7, 5) == []


def test_get_recommendations_filters_and_serializes(graph):
    engine = RecommendationEngine()
    with pytest.raises(RuntimeError):
        engine.get_recommendations("a")

    tiers = engine.build(graph)
    quick = engine.get_recommendations("a", limit=1)
    assert [r.target for r in quick] == ["b"]
    assert engine.get_recommendations("a", tier="deep", min_confidence=0.95) == []
    assert engine.get_recommendations("a", tier="category", category="genre")[0].category == "genre"
    assert engine.get_recommendations("zzz") == []

    record = tiers.to_record()
    assert set(record) == {"quick", "deep", "category", "trending", "metadata"}
    found = recommendations_from_record(record, "a", tier="category", category="genre", limit=1)
    assert found[0]["id"] == "b"
    assert found[0]["category"] == "genre"
    with pytest.raises(ValueError):
        recommendations_from_record(record, "a", tier="weekly")

    stats = tiers.stats()
    assert stats["total_entities"] == len(graph)
    assert stats["algorithm_distribution"]["content_based"] >= 1


def test_similar_users_is_empty_and_unknown_algorithm_raises(graph):
    engine = RecommendationEngine()
    assert engine.run("similar_users", "a", graph) == []
    with pytest.raises(ValueError):
        engine.run("popular_now", "a", graph)
