"""Shared contract and helpers for connection analyzers."""

from typing import Any, Iterable, Mapping, Protocol

from ..entities.model import Entity
from ..graph.types import Connection, Dimension, Factor, Origin


class Analyzer(Protocol):
    """Pure function over (entity, catalog) emitting connection candidates."""

    dimension: Dimension

    def find_connections(self, entity: Entity, catalog: Mapping[str, Entity]) -> list[Connection]:
        ...


def clamp_01(value: float | int | None) -> float:
    """Clamp a numeric score into [0, 1]."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score < 0.0:
        return 0.0
    if score > 1.0:
        return 1.0
    return score


def make_connection(
    target: str,
    dimension: Dimension,
    type_: str,
    strength: float,
    confidence: float,
    reason: str,
    *,
    label: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    origin: Origin = Origin.ANALYZER,
) -> Connection:
    return Connection(
        target=target,
        dimension=dimension,
        type=type_,
        strength=clamp_01(strength),
        confidence=clamp_01(confidence),
        factors=(Factor(label or type_, reason),),
        metadata=dict(metadata or {}),
        origin=origin,
    )


def sort_by_strength(connections: Iterable[Connection]) -> list[Connection]:
    """Strength descending; target and type break ties deterministically."""
    return sorted(connections, key=lambda c: (-c.strength, c.target, c.type))


def others(entity: Entity, catalog: Mapping[str, Entity]) -> Iterable[Entity]:
    for key in sorted(catalog):
        other = catalog[key]
        if other.id != entity.id:
            yield other


def jaccard(a: set[str] | frozenset[str], b: set[str] | frozenset[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)
