"""Relationship graph builder: runs analyzers per entity and merges buckets."""

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
import logging
from typing import Iterable, Mapping

from ..analyzers import default_analyzers
from ..analyzers.base import Analyzer, make_connection
from ..entities.model import Entity, catalog_fingerprint
from .config import DEFAULT_GRAPH_CONFIG, GraphConfig
from .types import (
    GRAPH_DIMENSIONS,
    Connection,
    Dimension,
    Origin,
    RelationshipGraph,
    bucket_for,
    connection_sort_key,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextMovement:
    start: int
    end: int
    keywords: tuple[str, ...]


CONTEXT_MOVEMENTS = {
    "new_hollywood": ContextMovement(1967, 1982, ("independent", "auteur", "artistic")),
    "blockbuster_era": ContextMovement(1975, 1990, ("blockbuster", "adventure", "spectacular")),
    "indie_boom": ContextMovement(1989, 2000, ("independent", "quirky", "alternative")),
    "superhero_renaissance": ContextMovement(2000, 2025, ("superhero", "comic", "marvel", "dc")),
    "streaming_revolution": ContextMovement(2010, 2025, ("netflix", "amazon", "original")),
    "franchise_era": ContextMovement(2000, 2025, ("franchise", "universe", "cinematic")),
}


def context_movement(entity: Entity) -> str | None:
    """First movement whose years cover the entity and whose keywords appear in its text."""
    year = entity.year
    if not year:
        return None
    text = f"{entity.description} {entity.name}".lower()
    for name, movement in CONTEXT_MOVEMENTS.items():
        if movement.start <= year <= movement.end and any(k in text for k in movement.keywords):
            return name
    return None


def cap_catalog(catalog: Mapping[str, Entity], limit: int) -> tuple[dict[str, Entity], int]:
    """Keep the ``limit`` most popular entities; returns the kept catalog and the dropped count."""
    if len(catalog) <= limit:
        return dict(catalog), 0
    ranked = sorted(catalog.values(), key=lambda e: (-e.popularity, e.id))
    kept = {e.id: e for e in ranked[:limit]}
    return kept, len(catalog) - limit


Working = dict[str, dict[Dimension, list[Connection]]]


def _empty_working(entity_ids: Iterable[str]) -> Working:
    return {entity_id: {dimension: [] for dimension in GRAPH_DIMENSIONS} for entity_id in entity_ids}


def freeze(working: Working) -> dict[str, dict[Dimension, tuple[Connection, ...]]]:
    return {
        entity_id: {
            dimension: tuple(sorted(items, key=connection_sort_key)) for dimension, items in buckets.items()
        }
        for entity_id, buckets in working.items()
    }


class RelationshipGraphBuilder:
    """Builds a raw relationship graph from a catalog.

    Analyzer output fills the direct, semantic, temporal and cultural
    buckets. Collaborative and contextual connections are computed here
    directly, and semantic themes shared by enough entities become
    clusters. The last build is cached by catalog fingerprint.
    """

    def __init__(
        self,
        analyzers: list[Analyzer] | None = None,
        config: GraphConfig = DEFAULT_GRAPH_CONFIG,
        today: date | None = None,
    ):
        self.analyzers = analyzers if analyzers is not None else default_analyzers(today=today)
        self.config = config
        self.warnings: list[str] = []
        self.cache_hits = 0
        self._cached: tuple[str, RelationshipGraph] | None = None

    def clear_cache(self) -> None:
        self._cached = None

    async def build(self, catalog: Mapping[str, Entity]) -> RelationshipGraph:
        catalog, dropped = cap_catalog(catalog, self.config.max_catalog_size)
        if dropped:
            message = f"Catalog truncated to {len(catalog)} most popular entities ({dropped} dropped)"
            log.warning(message)
            self.warnings.append(message)

        fingerprint = catalog_fingerprint(catalog)
        if self._cached is not None and self._cached[0] == fingerprint:
            self.cache_hits += 1
            log.info(f"Catalog unchanged ({fingerprint[:12]}), reusing relationship graph")
            return self._cached[1]

        log.info(f"Building relationship graph for {len(catalog)} entities")
        entity_ids = sorted(catalog)
        working = _empty_working(entity_ids)

        analyzed = await asyncio.gather(*(self._analyze(catalog[entity_id], catalog) for entity_id in entity_ids))
        for entity_id, connections in zip(entity_ids, analyzed):
            for connection in connections:
                if connection.target in working and connection.target != entity_id:
                    working[entity_id][bucket_for(connection.dimension)].append(connection)

        for entity_id, connections in self.collaborative(catalog).items():
            working[entity_id][Dimension.COLLABORATIVE].extend(connections)
        for entity_id, connections in self.contextual(catalog).items():
            working[entity_id][Dimension.CONTEXTUAL].extend(connections)

        clusters = self.find_clusters(working)
        for entity_id, connections in self.cluster_connections(clusters, catalog).items():
            working[entity_id][Dimension.CLUSTER].extend(connections)

        graph = RelationshipGraph(freeze(working), clusters)
        total = sum(1 for _ in graph.iter_connections())
        log.info(f"Relationship graph built: {len(graph)} entities, {total} connections, {len(clusters)} clusters")
        self._cached = (fingerprint, graph)
        return graph

    async def _analyze(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        results = await asyncio.gather(*(self._run(analyzer, entity, catalog) for analyzer in self.analyzers))
        return [connection for connections in results for connection in connections]

    async def _run(self, analyzer: Analyzer, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        return [self._with_confidence(c) for c in analyzer.find_connections(entity, catalog)]

    def _with_confidence(self, connection: Connection) -> Connection:
        if connection.confidence > 0:
            return connection
        return connection.with_scores(confidence=self.config.default_confidence(connection.dimension))

    def collaborative(self, catalog: Mapping[str, Entity]) -> dict[str, list[Connection]]:
        """Entities sharing several genres and a similar rating."""
        cfg = self.config
        found: dict[str, list[Connection]] = defaultdict(list)
        rated = [e for e in (catalog[k] for k in sorted(catalog)) if e.genres and e.rating > 0]
        for i, entity in enumerate(rated):
            genres = set(entity.genres)
            for other in rated[i + 1:]:
                overlap = len(genres & set(other.genres))
                if overlap < cfg.collaborative_min_genre_overlap:
                    continue
                distance = abs(entity.rating - other.rating)
                if distance >= cfg.collaborative_max_rating_distance:
                    continue
                strength = overlap / max(len(entity.genres), len(other.genres)) * (1 - distance / 10)
                if strength <= cfg.collaborative_floor:
                    continue
                for source, target in ((entity, other), (other, entity)):
                    found[source.id].append(
                        make_connection(
                            target.id,
                            Dimension.COLLABORATIVE,
                            "collaborative_filtering",
                            strength,
                            strength * cfg.collaborative_confidence_factor,
                            "Users with similar taste enjoy both",
                            metadata={"genre_overlap": overlap, "rating_distance": round(distance, 3)},
                            origin=Origin.COMPUTED,
                        )
                    )
        return found

    def contextual(self, catalog: Mapping[str, Entity]) -> dict[str, list[Connection]]:
        """Decade and cultural-movement co-membership."""
        cfg = self.config
        by_decade: dict[int, list[str]] = defaultdict(list)
        by_movement: dict[str, list[str]] = defaultdict(list)
        for entity_id in sorted(catalog):
            entity = catalog[entity_id]
            if entity.decade > 0:
                by_decade[entity.decade].append(entity_id)
            movement = context_movement(entity)
            if movement:
                by_movement[movement].append(entity_id)

        found: dict[str, list[Connection]] = defaultdict(list)
        for decade, members in by_decade.items():
            self._link_members(
                found, members, "same_decade", cfg.decade_strength, cfg.decade_confidence,
                f"Both from the {decade}s", {"decade": decade},
            )
        for movement, members in by_movement.items():
            self._link_members(
                found, members, "cultural_movement", cfg.movement_strength, cfg.movement_confidence,
                f"Both part of the {movement} movement", {"movement": movement},
            )
        return found

    def _link_members(
        self,
        found: dict[str, list[Connection]],
        members: list[str],
        type_: str,
        strength: float,
        confidence: float,
        reason: str,
        metadata: dict,
        dimension: Dimension = Dimension.CONTEXTUAL,
    ) -> None:
        """Connect group members pairwise, each to at most the per-dimension limit of peers."""
        half = self.config.max_connections_per_dimension // 2
        for i, source in enumerate(members):
            # symmetric window: j is in i's window iff i is in j's
            window = members[max(0, i - half): i] + members[i + 1: i + 1 + half]
            for target in window:
                found[source].append(
                    make_connection(
                        target, dimension, type_, strength, confidence, reason,
                        metadata=metadata, origin=Origin.COMPUTED,
                    )
                )

    def find_clusters(self, working: Working) -> dict[str, frozenset[str]]:
        """Group entities by the themes their semantic connections share."""
        members: dict[str, set[str]] = defaultdict(set)
        for entity_id, buckets in working.items():
            for connection in buckets[Dimension.SEMANTIC]:
                for theme in connection.metadata.get("common_themes", ()):
                    key = f"{theme}_cluster"
                    members[key].add(entity_id)
                    members[key].add(connection.target)
        return {
            key: frozenset(ids)
            for key, ids in sorted(members.items())
            if len(ids) >= self.config.cluster_min_members
        }

    def cluster_connections(
        self, clusters: Mapping[str, frozenset[str]], catalog: Mapping[str, Entity]
    ) -> dict[str, list[Connection]]:
        cfg = self.config
        found: dict[str, list[Connection]] = defaultdict(list)
        linked: set[tuple[str, str]] = set()
        for key, ids in clusters.items():
            ordered = sorted(ids, key=lambda i: (-catalog[i].popularity, i))
            pairs: dict[str, list[Connection]] = defaultdict(list)
            self._link_members(
                pairs, ordered, "cluster_member", cfg.cluster_strength, cfg.cluster_confidence,
                f"Part of {key} cluster", {"cluster": key}, Dimension.CLUSTER,
            )
            for source, connections in pairs.items():
                for connection in connections:
                    if (source, connection.target) in linked:
                        continue
                    linked.add((source, connection.target))
                    found[source].append(connection)
        return found
