"""Graph diagnostics for regression testing and reporting."""

from collections import Counter
from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Iterable

import networkx as nx

from .config import DEFAULT_GRAPH_CONFIG, GraphConfig
from .types import Connection, Dimension, RelationshipGraph, connection_sort_key


@dataclass
class GraphStats:
    """Statistics about a relationship graph."""

    entities: int
    connections: int
    clusters: int
    isolated: int
    dimensions: dict[str, int]
    strength_tiers: dict[str, int]

    def __str__(self) -> str:
        dims_str = ", ".join(
            f"{k}: {v}" for k, v in sorted(self.dimensions.items(), key=lambda x: -x[1])
        )
        tiers_str = ", ".join(f"{k}: {v}" for k, v in self.strength_tiers.items())
        return (
            f"Graph Stats:\n"
            f"  Entities: {self.entities} ({self.isolated} isolated)\n"
            f"  Connections: {self.connections} ({dims_str})\n"
            f"  Strength: {tiers_str}\n"
            f"  Clusters: {self.clusters}"
        )


@dataclass
class ValidationReport:
    total_connections: int = 0
    invalid_connections: int = 0
    missing_mirrors: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_record(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "statistics": {
                "totalConnections": self.total_connections,
                "invalidConnections": self.invalid_connections,
                "missingReverseConnections": self.missing_mirrors,
            },
        }


def is_valid_connection(connection: Connection) -> bool:
    return (
        bool(connection.target)
        and bool(connection.type)
        and 0.0 <= connection.strength <= 1.0
        and 0.0 <= connection.confidence <= 1.0
    )


def find_isolated(graph: RelationshipGraph, entity_ids: Iterable[str] | None = None) -> list[str]:
    """Entities with no connection in any dimension."""
    ids = sorted(set(entity_ids)) if entity_ids is not None else graph.entity_ids()
    return [entity_id for entity_id in ids if graph.degree(entity_id) == 0]


def analyze_relationship_patterns(
    graph: RelationshipGraph, config: GraphConfig = DEFAULT_GRAPH_CONFIG
) -> dict:
    by_dimension: Counter[str] = Counter()
    by_type: Counter[str] = Counter()
    by_origin: Counter[str] = Counter()
    tiers = {"strong": 0, "medium": 0, "weak": 0}
    hubs = 0
    total = 0

    for entity_id in graph.entity_ids():
        count = 0
        has_strong = False
        for dimension, items in graph.buckets(entity_id).items():
            for connection in items:
                count += 1
                by_dimension[dimension.value] += 1
                by_type[connection.type] += 1
                by_origin[connection.origin.value] += 1
                tier = config.strength_tier(connection.final_score)
                tiers[tier] += 1
                has_strong = has_strong or tier == "strong"
        if has_strong and count >= 5:
            hubs += 1
        total += count

    size = len(graph)
    return {
        "total_connections": total,
        "average_connections": total / size if size else 0.0,
        "isolated_nodes": len(find_isolated(graph)),
        "cluster_nodes": hubs,
        "mirrored_connections": by_origin.get("mirror", 0),
        "dimension_distribution": dict(by_dimension),
        "type_distribution": dict(by_type),
        "origin_distribution": dict(by_origin),
        "strength_distribution": tiers,
    }


def validate_relationships(
    graph: RelationshipGraph, config: GraphConfig = DEFAULT_GRAPH_CONFIG
) -> ValidationReport:
    """Check score ranges, ordering, the fan-out bound and mirror completeness."""
    report = ValidationReport()
    present = {
        (source, dimension, connection.target, connection.type)
        for source, dimension, connection in graph.iter_connections()
    }
    for entity_id in graph.entity_ids():
        for dimension, items in graph.buckets(entity_id).items():
            if len(items) > config.max_connections_per_dimension:
                report.errors.append(
                    f"{entity_id} has {len(items)} {dimension.value} connections "
                    f"(max {config.max_connections_per_dimension})"
                )
            if list(items) != sorted(items, key=connection_sort_key):
                report.errors.append(f"{entity_id} {dimension.value} connections are out of order")
            for index, connection in enumerate(items):
                report.total_connections += 1
                if not is_valid_connection(connection):
                    report.invalid_connections += 1
                    report.errors.append(f"{entity_id} has invalid connection at {dimension.value}[{index}]")
                    continue
                if connection.is_peer:
                    continue
                if (connection.target, dimension, entity_id, connection.type) not in present:
                    report.missing_mirrors += 1
                    report.warnings.append(f"Missing reverse connection: {entity_id} -> {connection.target}")
    return report


def prune_graph(graph: RelationshipGraph, max_per_dimension: int = 50, min_score: float = 0.1) -> RelationshipGraph:
    """Drop connections below ``min_score`` and keep the best ``max_per_dimension``.

    Pruning works per bucket and can leave a connection without its mirror.
    """
    pruned = {
        entity_id: {
            dimension: tuple(
                c for c in sorted(items, key=connection_sort_key) if c.final_score >= min_score
            )[:max_per_dimension]
            for dimension, items in buckets.items()
        }
        for entity_id, buckets in graph.connections.items()
    }
    return RelationshipGraph(pruned, dict(graph.clusters))


def graph_stats(graph: RelationshipGraph, config: GraphConfig = DEFAULT_GRAPH_CONFIG) -> GraphStats:
    patterns = analyze_relationship_patterns(graph, config)
    return GraphStats(
        entities=len(graph),
        connections=patterns["total_connections"],
        clusters=len(graph.clusters),
        isolated=patterns["isolated_nodes"],
        dimensions=patterns["dimension_distribution"],
        strength_tiers=patterns["strength_distribution"],
    )


def save_graph(graph: RelationshipGraph, path: Path) -> None:
    """Save the graph as networkx node-link JSON."""
    data = nx.node_link_data(graph.to_networkx())
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def dimension_counts(graph: RelationshipGraph, entity_id: str) -> dict[Dimension, int]:
    return {dimension: len(items) for dimension, items in graph.buckets(entity_id).items()}
