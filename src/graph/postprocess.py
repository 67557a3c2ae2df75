"""Bidirectional enhancement: mirror, derive peer connections, bound fan-out."""

from collections import defaultdict
from dataclasses import replace
import logging

from .config import DEFAULT_GRAPH_CONFIG, GraphConfig
from .types import (
    GRAPH_DIMENSIONS,
    Connection,
    Dimension,
    Factor,
    Origin,
    RelationshipGraph,
    bucket_for,
    connection_sort_key,
)

log = logging.getLogger(__name__)

Working = dict[str, dict[Dimension, list[Connection]]]


def mirror_of(connection: Connection, source: str, discount: float) -> Connection:
    return replace(
        connection,
        target=source,
        strength=connection.strength * discount,
        confidence=connection.confidence * discount,
        factors=tuple(Factor(f.label, f"Reverse: {f.text}", f.weight) for f in connection.factors),
        metadata={**connection.metadata, "original_strength": connection.strength},
        origin=Origin.MIRROR,
    )


class RelationshipPostProcessor:
    """Turns a raw relationship graph into its canonical enhanced form.

    Three passes run in order. Mirroring adds B->A for every A->B that lacks
    one. Consolidation keeps the best connections per entity and dimension
    without ever splitting a mirrored pair. The peer pass then derives A->C
    from the kept direct hops A->B->C and fills the remaining collaborative
    room. Peers only ever read the bounded direct bucket, so enhancing an
    enhanced graph returns it unchanged. The input graph is left untouched.
    """

    def __init__(self, config: GraphConfig = DEFAULT_GRAPH_CONFIG):
        self.config = config
        self.stats = {"mirrored": 0, "peers": 0, "dropped": 0}

    def enhance(self, graph: RelationshipGraph) -> RelationshipGraph:
        working = self._thaw(graph)
        self.stats = {"mirrored": self.mirror(working), "peers": 0, "dropped": 0}
        kept = self.consolidate(working)
        peers = self.derive_peers(kept)
        self.stats["peers"] = sum(len(items) for items in peers.values())
        connections = self.add_peers(kept, peers)
        log.info(
            f"Enhanced graph: {self.stats['mirrored']} mirrored, "
            f"{self.stats['peers']} peer candidates, {self.stats['dropped']} dropped by fan-out bound"
        )
        return RelationshipGraph(connections, dict(graph.clusters))

    def _thaw(self, graph: RelationshipGraph) -> Working:
        """Mutable copy without peer connections, which are always re-derived.

        Keeps the best connection per (dimension, target, type).
        """
        known = set(graph.connections)
        working: Working = {}
        for entity_id in graph.entity_ids():
            buckets: dict[Dimension, list[Connection]] = {dimension: [] for dimension in GRAPH_DIMENSIONS}
            for dimension, items in graph.connections[entity_id].items():
                seen: set[tuple[str, str]] = set()
                for connection in sorted(items, key=connection_sort_key):
                    key = (connection.target, connection.type)
                    if connection.is_peer or connection.target not in known or key in seen:
                        continue
                    seen.add(key)
                    buckets[dimension].append(connection)
            working[entity_id] = buckets
        return working

    def mirror(self, working: Working) -> int:
        present = {
            (source, dimension, c.target, c.type)
            for source, buckets in working.items()
            for dimension, items in buckets.items()
            for c in items
        }
        added = 0
        for source in sorted(working):
            for dimension, items in working[source].items():
                for connection in list(items):
                    key = (connection.target, dimension, source, connection.type)
                    if key in present:
                        continue
                    working[connection.target][dimension].append(
                        mirror_of(connection, source, self.config.reverse_discount)
                    )
                    present.add(key)
                    added += 1
        return added

    def peer_strength(self, first: Connection, second: Connection) -> float:
        cfg = self.config
        boost = cfg.peer_same_type_boost if first.type == second.type else 1.0
        average_confidence = (first.confidence + second.confidence) / 2
        return first.strength * second.strength * cfg.peer_factor * min(1.0, boost * average_confidence)

    def derive_peers(self, working: Working) -> dict[str, list[Connection]]:
        """Best two-hop connection per (source, target) through the consolidated direct bucket."""
        cfg = self.config
        top_direct = {
            entity_id: sorted(buckets[Dimension.DIRECT], key=connection_sort_key)
            for entity_id, buckets in working.items()
        }

        peers: dict[str, list[Connection]] = {}
        for source in sorted(working):
            direct_targets = {c.target for c in working[source][Dimension.DIRECT]}
            best: dict[str, Connection] = {}
            for first in top_direct[source]:
                for second in top_direct.get(first.target, ()):
                    target = second.target
                    if target == source or target in direct_targets:
                        continue
                    strength = self.peer_strength(first, second)
                    if strength <= cfg.peer_floor:
                        continue
                    current = best.get(target)
                    if current is not None and current.strength >= strength:
                        continue
                    best[target] = Connection(
                        target=target,
                        dimension=Dimension.PEER,
                        type="peer_recommendation",
                        strength=min(1.0, strength),
                        confidence=min(1.0, strength * cfg.peer_confidence_factor),
                        factors=(Factor("peer", f"Connected through {first.target}"),),
                        metadata={
                            "path_strength": [first.strength, second.strength],
                            "path_types": [first.type, second.type],
                        },
                        origin=Origin.PEER,
                        via=first.target,
                    )
            peers[source] = list(best.values())
        return peers

    def consolidate(self, working: Working) -> Working:
        """Pair-greedy truncation to the per-dimension bound.

        A unit is one (dimension, unordered pair, type) with both of its
        directions. Units are taken best first and only when both endpoints
        still have room, so a kept connection always keeps its mirror.
        """
        limit = self.config.max_connections_per_dimension
        units: dict[tuple[Dimension, str, str, str], list[tuple[str, Connection]]] = defaultdict(list)
        for source, buckets in working.items():
            for dimension, items in buckets.items():
                for connection in items:
                    a, b = sorted((source, connection.target))
                    units[(dimension, a, b, connection.type)].append((source, connection))

        ranked = sorted(
            units.items(),
            key=lambda item: (-max(c.final_score for _, c in item[1]), item[0][1], item[0][2], item[0][3], item[0][0].value),
        )

        used: dict[tuple[str, Dimension], int] = defaultdict(int)
        kept: Working = {entity_id: {dimension: [] for dimension in GRAPH_DIMENSIONS} for entity_id in working}
        for (dimension, a, b, _), members in ranked:
            if used[(a, dimension)] >= limit or used[(b, dimension)] >= limit:
                self.stats["dropped"] += len(members)
                continue
            for source, connection in members:
                kept[source][dimension].append(connection)
            used[(a, dimension)] += 1
            used[(b, dimension)] += 1
        return kept

    def add_peers(
        self, kept: Working, peers: dict[str, list[Connection]]
    ) -> dict[str, dict[Dimension, tuple[Connection, ...]]]:
        """Fill each collaborative bucket's remaining room with the best peers."""
        limit = self.config.max_connections_per_dimension
        for source in sorted(peers):
            bucket = bucket_for(Dimension.PEER)
            room = limit - len(kept[source][bucket])
            candidates = sorted(peers[source], key=connection_sort_key)
            kept[source][bucket].extend(candidates[: max(0, room)])
            self.stats["dropped"] += max(0, len(candidates) - max(0, room))

        return {
            entity_id: {dimension: tuple(sorted(items, key=connection_sort_key)) for dimension, items in buckets.items()}
            for entity_id, buckets in kept.items()
        }
