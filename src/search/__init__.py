"""Search indexes over the catalog and its relationship graph."""

from .index import SearchHit, SearchIndex, SearchIndexBuilder, fuzzy_variations

__all__ = ["SearchHit", "SearchIndex", "SearchIndexBuilder", "fuzzy_variations"]
