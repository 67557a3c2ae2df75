import pytest

from src.analyzers.base import make_connection
from src.entities.model import Entity, EntityKind
from src.graph.types import Dimension, RelationshipGraph, empty_buckets
from src.search.config import SearchConfig
from src.search.index import SearchIndexBuilder, company_variations, fuzzy_variations
from src.search.query import expand_query, query_terms


def create_movie(entity_id: str, name: str, **fields) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.MOVIE, name=name, **fields)


@pytest.fixture
def catalog():
    batman = create_movie(
        "movie_268",
        "Batman",
        description="The dark knight fights crime to protect Gotham",
        genres=("Action", "Crime"),
        release_date="1989-06-23",
        rating=7.6,
        popularity=60.0,
        language="en",
        companies=({"id": 174, "name": "Warner Bros. Pictures"},),
        cast=({"id": 2232, "name": "Michael Keaton", "order": 0},),
        crew=({"id": 510, "name": "Tim Burton", "job": "Director"},),
        collection_id=120794,
        collection_name="Batman Collection",
    )
    scream = create_movie(
        "movie_4232",
        "Scream",
        description="A killer stalks teenagers in a quiet town",
        genres=("Horror", "Mystery"),
        release_date="1996-12-20",
        rating=7.4,
        popularity=3.0,
        language="fr",
    )
    return {batman.id: batman, scream.id: scream}


@pytest.fixture
def graph():
    buckets = empty_buckets()
    buckets[Dimension.DIRECT] = (
        make_connection("movie_4232", Dimension.DIRECT, "genre_match", 0.9, 0.9, "Shared genre"),
    )
    return RelationshipGraph(
        {"movie_268": buckets, "movie_4232": empty_buckets()},
        {"Action Cluster": frozenset({"movie_268"})},
    )


def test_fuzzy_variations_of_batman_are_bounded_and_resolve_back(catalog, graph):
    variations = fuzzy_variations("batman")

    assert variations[0] == "batman"
    assert 1 < len(variations) <= 10
    for variant in variations[1:]:
        assert len(variant) == len("batman")
        assert sum(a != b for a, b in zip(variant, "batman")) == 1

    index = SearchIndexBuilder().build(catalog, graph)
    for variant in variations:
        assert "batman" in index.fuzzy_index[variant]


def test_short_terms_have_no_fuzzy_variants():
    assert fuzzy_variations("cat") == ["cat"]
    assert all(len(v) == 5 for v in fuzzy_variations("joker"))


def test_term_extraction_filters_and_normalizes(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)

    assert index.term_index["batman"] == ("movie_268",)
    assert index.term_index["michael keaton"] == ("movie_268",)
    assert index.term_index["tim burton"] == ("movie_268",)
    assert index.term_index["warner bros"] == ("movie_268",)
    assert index.term_index["wbp"] == ("movie_268",)
    assert index.term_index["batman collection"] == ("movie_268",)
    assert index.term_index["1980s"] == ("movie_268",)
    assert "1989" not in index.term_index
    assert "the" not in index.term_index
    assert "movie_268" in index.inverse_index
    assert "gotham" in index.inverse_index["movie_268"]


def test_categories_cover_brackets(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)
    categories = {key for key, ids in index.category_index.items() if "movie_268" in ids}

    assert {
        "type_movie",
        "genre_action",
        "studio_warner",
        "rating_great",
        "popularity_trending",
        "decade_1980s",
        "era_vintage",
        "language_en",
    } <= categories
    assert "international" not in categories
    assert index.category_index["international"] == ("movie_4232",)
    assert index.category_index["popularity_niche"] == ("movie_4232",)
    assert index.category_index["era_contemporary"] == ("movie_4232",)


def test_contexts_and_concepts_come_from_graph(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)

    for context in (
        "connected_direct",
        "strongly_connected_direct",
        "relationship_genre_match",
        "franchise_member",
    ):
        assert index.context_index[context] == ("movie_268",)
    assert index.context_index["isolated"] == ("movie_268", "movie_4232")
    assert index.semantic_index["action_cluster"] == ("movie_268",)
    assert "movie_268" in index.semantic_index["good_vs_evil"]
    assert index.semantic_index["fear"] == ("movie_4232",)
    assert index.metadata["version"] == "3.0"
    assert index.stats()["entity_count"] == 2


def test_search_ranks_exact_over_fuzzy(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)

    exact = index.search("batman")
    assert exact[0].entity_id == "movie_268"
    assert exact[0].score == pytest.approx(1.0)

    typo = index.search("betman")
    assert [hit.entity_id for hit in typo] == ["movie_268"]
    assert typo[0].score == pytest.approx(0.6)

    tagged = index.search("horror")
    assert tagged[0].entity_id == "movie_4232"
    assert tagged[0].score == pytest.approx(1.4)

    assert index.search("zzzz") == []


def test_query_expansion_adds_synonyms():
    assert query_terms("The Dark Knight") == ["dark knight", "dark", "knight"]
    assert "horror" in expand_query("scary")
    assert "science fiction" in expand_query("scfi")
    assert expand_query("gotham") == []


def test_company_variations():
    assert company_variations("Marvel Studios") == ["marvel", "ms"]
    assert company_variations("Pixar") == []


def test_disabled_phases_leave_indexes_empty(catalog, graph):
    from src.search.config import SearchConfig

    config = SearchConfig(enable_fuzzy=False, enable_semantic=False, enable_inverse=False)
    index = SearchIndexBuilder(config).build(catalog, graph)

    assert index.fuzzy_index == {}
    assert index.semantic_index == {}
    assert index.inverse_index == {}
    assert index.term_index


def test_search_applies_intent_filters(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)

    era = index.search("show me 90s movies")
    assert [hit.entity_id for hit in era] == ["movie_4232"]
    assert era[0].score == pytest.approx(0.4)
    assert era[0].matched == ("era:90s",)

    cast = index.search("find films starring michael keaton")
    assert [hit.entity_id for hit in cast] == ["movie_268"]
    assert cast[0].matched == ("cast:michael keaton",)


def test_hidden_gem_constraints_drop_popular_entities(catalog, graph):
    index = SearchIndexBuilder().build(catalog, graph)

    hits = index.search("underrated horror")

    assert [hit.entity_id for hit in hits] == ["movie_4232"]
    assert hits[0].score == pytest.approx(1.0 + 0.4 + 0.3 + 0.36)
    assert "popularity:20.0" in hits[0].matched


def test_intent_can_be_disabled(catalog, graph):
    index = SearchIndexBuilder(SearchConfig(enable_intent=False)).build(catalog, graph)

    assert index.search("show me 90s movies") == []
    assert index.analyze("show me 90s movies").primary is None
