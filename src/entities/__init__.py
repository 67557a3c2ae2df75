"""Entity model, metadata client and per-kind processors."""

from .client import FetchError, MetadataClient
from .collection import CollectionProcessor
from .company import CompanyProcessor
from .genre import GenreProcessor
from .keyword import KeywordProcessor
from .model import Catalog, Entity, EntityKind, catalog_fingerprint, load_catalog
from .person import PersonProcessor

__all__ = [
    "Catalog",
    "CollectionProcessor",
    "CompanyProcessor",
    "Entity",
    "EntityKind",
    "FetchError",
    "GenreProcessor",
    "KeywordProcessor",
    "MetadataClient",
    "PersonProcessor",
    "catalog_fingerprint",
    "load_catalog",
]
