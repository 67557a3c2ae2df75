"""Typed contracts for the relationship graph."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, Mapping

import networkx as nx


class Dimension(str, Enum):
    DIRECT = "direct"
    SEMANTIC = "semantic"
    TEMPORAL = "temporal"
    CULTURAL = "cultural"
    COLLABORATIVE = "collaborative"
    CONTEXTUAL = "contextual"
    CLUSTER = "cluster"
    PEER = "peer"


BASE_DIMENSIONS: tuple[Dimension, ...] = (
    Dimension.DIRECT,
    Dimension.SEMANTIC,
    Dimension.TEMPORAL,
    Dimension.CULTURAL,
    Dimension.COLLABORATIVE,
    Dimension.CONTEXTUAL,
)

GRAPH_DIMENSIONS: tuple[Dimension, ...] = BASE_DIMENSIONS + (Dimension.CLUSTER,)


def bucket_for(dimension: Dimension) -> Dimension:
    """Peer connections live alongside collaborative ones."""
    return Dimension.COLLABORATIVE if dimension is Dimension.PEER else dimension


class Origin(str, Enum):
    ANALYZER = "analyzer"
    COMPUTED = "computed"
    MIRROR = "mirror"
    PEER = "peer"


@dataclass(frozen=True)
class Factor:
    """One contributing reason behind a connection or recommendation."""

    label: str
    text: str
    weight: float = 1.0

    def to_record(self) -> dict[str, Any]:
        return {"label": self.label, "text": self.text, "weight": self.weight}


def render_factors(factors: tuple[Factor, ...] | list[Factor]) -> str:
    return "; ".join(f.text for f in factors if f.text)


@dataclass(frozen=True)
class Connection:
    target: str
    dimension: Dimension
    type: str
    strength: float
    confidence: float
    factors: tuple[Factor, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)
    origin: Origin = Origin.ANALYZER
    via: str | None = None

    @property
    def final_score(self) -> float:
        return self.strength * self.confidence

    @property
    def reason(self) -> str:
        return render_factors(self.factors)

    @property
    def is_peer(self) -> bool:
        return self.origin is Origin.PEER

    def with_scores(self, *, strength: float | None = None, confidence: float | None = None) -> "Connection":
        return replace(
            self,
            strength=self.strength if strength is None else strength,
            confidence=self.confidence if confidence is None else confidence,
        )

    def to_record(self) -> dict[str, Any]:
        record = {
            "id": self.target,
            "dimension": self.dimension.value,
            "type": self.type,
            "strength": round(self.strength, 6),
            "confidence": round(self.confidence, 6),
            "finalScore": round(self.final_score, 6),
            "reason": self.reason,
            "factors": [f.to_record() for f in self.factors],
            "origin": self.origin.value,
        }
        if self.via:
            record["via"] = self.via
        if self.metadata:
            record["metadata"] = dict(self.metadata)
        return record


def connection_sort_key(connection: Connection) -> tuple[float, float, str, str]:
    """Descending final score, then strength, then target and type for ties."""
    return (-connection.final_score, -connection.strength, connection.target, connection.type)


def connectivity_tier(total: int) -> str:
    if total >= 50:
        return "highly_connected"
    if total >= 20:
        return "well_connected"
    if total >= 5:
        return "connected"
    return "isolated"


Buckets = dict[Dimension, tuple[Connection, ...]]


def empty_buckets() -> Buckets:
    return {dimension: () for dimension in GRAPH_DIMENSIONS}


@dataclass(frozen=True)
class RelationshipGraph:
    """Immutable snapshot: entity id -> dimension -> ordered connections."""

    connections: dict[str, Buckets]
    clusters: dict[str, frozenset[str]] = field(default_factory=dict)

    def entity_ids(self) -> list[str]:
        return sorted(self.connections)

    def get(self, entity_id: str, dimension: Dimension) -> tuple[Connection, ...]:
        return self.connections.get(entity_id, {}).get(bucket_for(dimension), ())

    def buckets(self, entity_id: str) -> Buckets:
        return self.connections.get(entity_id) or empty_buckets()

    def iter_connections(self) -> Iterator[tuple[str, Dimension, Connection]]:
        for entity_id in self.entity_ids():
            for dimension, items in self.connections[entity_id].items():
                for connection in items:
                    yield entity_id, dimension, connection

    def degree(self, entity_id: str) -> int:
        return sum(len(items) for items in self.buckets(entity_id).values())

    def connectivity_tier(self, entity_id: str) -> str:
        return connectivity_tier(self.degree(entity_id))

    def __len__(self) -> int:
        return len(self.connections)

    def to_record(self) -> dict[str, Any]:
        return {
            "graph": {
                entity_id: {
                    dimension.value: [c.to_record() for c in items]
                    for dimension, items in self.connections[entity_id].items()
                }
                for entity_id in self.entity_ids()
            },
            "clusters": {key: sorted(members) for key, members in sorted(self.clusters.items())},
        }

    def to_networkx(self) -> nx.MultiDiGraph:
        """Export as a networkx multigraph for analysis or serialization."""
        graph = nx.MultiDiGraph()
        for entity_id in self.entity_ids():
            graph.add_node(entity_id, tier=self.connectivity_tier(entity_id))
        for source, dimension, connection in self.iter_connections():
            graph.add_edge(
                source,
                connection.target,
                key=f"{dimension.value}:{connection.type}",
                dimension=connection.dimension.value,
                type=connection.type,
                strength=connection.strength,
                confidence=connection.confidence,
                final_score=connection.final_score,
                origin=connection.origin.value,
            )
        for key, members in self.clusters.items():
            for member in members:
                if member in graph:
                    graph.nodes[member].setdefault("clusters", []).append(key)
        return graph
