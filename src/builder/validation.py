"""Catalog validation: required fields, score ranges and kind rules."""

from dataclasses import dataclass, field
import logging
from typing import Iterable, Mapping

from ..entities.model import Catalog, Entity, EntityKind

log = logging.getLogger(__name__)

# Minimum popularity per kind; kinds not listed have no floor
MIN_POPULARITY = {
    EntityKind.COMPANY: 5.0,
    EntityKind.PERSON: 10.0,
}
MIN_COLLECTION_MOVIES = 2


@dataclass
class ValidationResult:
    """Result of a validation check."""

    valid: bool
    errors: list[str]
    warnings: list[str]

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class CatalogValidation:
    kept: Catalog = field(default_factory=dict)
    excluded: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.kept) + len(self.excluded)


def validate_entity(entity: Entity) -> ValidationResult:
    """Validate one entity.

    Args:
        entity: Entity to check

    Returns:
        ValidationResult; errors exclude the entity, warnings keep it
    """
    errors = []
    warnings = []

    if not entity.id:
        errors.append("<no id>: missing id")
    if not entity.name:
        errors.append(f"{entity.id or '<no id>'}: missing name")
    if not 0 <= entity.rating <= 10:
        errors.append(f"{entity.id}: rating {entity.rating} outside 0-10")
    if entity.popularity < 0:
        errors.append(f"{entity.id}: negative popularity {entity.popularity}")

    floor = MIN_POPULARITY.get(entity.kind)
    if floor is not None and entity.popularity < floor:
        errors.append(f"{entity.id}: popularity {entity.popularity} below {floor} for {entity.kind.value}")

    if entity.kind is EntityKind.COLLECTION:
        count = entity.payload.get("movie_count", 0) or 0
        if count < MIN_COLLECTION_MOVIES:
            errors.append(f"{entity.id}: collection has {count} movies, needs {MIN_COLLECTION_MOVIES}")

    if entity.kind in (EntityKind.MOVIE, EntityKind.TV) and not entity.year:
        warnings.append(f"{entity.id}: no resolvable release year")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_catalog(entities: Mapping[str, Entity] | Iterable[Entity]) -> CatalogValidation:
    """Split a catalog into kept entities and exclusion warnings."""
    items = entities.values() if isinstance(entities, Mapping) else entities
    result = CatalogValidation()
    for entity in items:
        check = validate_entity(entity)
        result.warnings.extend(check.warnings)
        if check:
            result.kept[entity.id] = entity
            continue
        result.excluded.append(entity.id)
        # Exclusions are reported as warnings; the build carries on without them
        result.warnings.extend(f"excluded {message}" for message in check.errors)

    if result.excluded:
        log.warning(f"Validation excluded {len(result.excluded)} of {result.total} entities")
    log.info(f"Validated {result.total} entities, kept {len(result.kept)}")
    return result
