"""Popularity, recency and calendar signals consumed by trending and seasonal scoring."""

from datetime import date
from typing import Mapping, Protocol

from ..entities.model import Entity


class SignalSource(Protocol):
    def popularity(self, entity_id: str) -> float:
        ...

    def year(self, entity_id: str) -> int:
        ...

    def month(self) -> int:
        ...

    def current_year(self) -> int:
        ...


class CatalogSignals:
    """Signals read from catalog entities with an injectable clock."""

    def __init__(self, catalog: Mapping[str, Entity], today: date | None = None):
        self.catalog = catalog
        self.today = today or date.today()

    def popularity(self, entity_id: str) -> float:
        entity = self.catalog.get(entity_id)
        return entity.popularity if entity else 0.0

    def year(self, entity_id: str) -> int:
        entity = self.catalog.get(entity_id)
        return entity.year if entity else 0

    def month(self) -> int:
        return self.today.month

    def current_year(self) -> int:
        return self.today.year


class NullSignals:
    """No popularity or recency data: trending stays empty."""

    def __init__(self, today: date | None = None):
        self.today = today or date.today()

    def popularity(self, entity_id: str) -> float:
        return 0.0

    def year(self, entity_id: str) -> int:
        return 0

    def month(self) -> int:
        return self.today.month

    def current_year(self) -> int:
        return self.today.year
