from datetime import date

import pytest

from src.analyzers import default_analyzers
from src.analyzers.content import ContentAnalyzer, genre_strength
from src.analyzers.cultural import CulturalAnalyzer, time_relevance
from src.analyzers.semantic import SemanticAnalyzer, extract_profile
from src.entities.model import Entity, EntityKind
from src.graph.types import Dimension

TODAY = date(2026, 1, 1)


def _entity(entity_id: str, name: str, **fields) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.MOVIE, name=name, **fields)


def _catalog(*entities: Entity) -> dict[str, Entity]:
    return {e.id: e for e in entities}


def _of_type(connections, type_):
    return [c for c in connections if c.type == type_]


def test_genre_match_weighted_and_floored():
    scream = _entity("movie_1", "Scream", genres=("Horror",))
    halloween = _entity("movie_2", "Halloween", genres=("Horror",))
    mixed = _entity("movie_3", "Mixed", genres=("Horror", "Comedy", "Drama", "Romance"))

    connections = ContentAnalyzer().find_connections(scream, _catalog(scream, halloween, mixed))

    genre = _of_type(connections, "genre_match")
    assert [c.target for c in genre] == ["movie_2"]
    assert genre[0].strength == pytest.approx(0.9)
    assert genre[0].confidence == pytest.approx(0.9)
    assert genre[0].dimension is Dimension.DIRECT


def test_genre_strength_multi_genre_bonus():
    common = ["Action", "Thriller"]
    expected = (2 / 3) * 0.85 * 0.85 * 1.1
    assert genre_strength(("Action", "Thriller"), ("Action", "Thriller", "Crime"), common) == pytest.approx(expected)


def test_studio_talent_collection_and_rating():
    studio = {"id": 420, "name": "Marvel Studios"}
    director = {"id": 7, "name": "Jon Favreau", "job": "Director"}
    first = _entity(
        "movie_1",
        "Iron Man",
        companies=(studio,),
        crew=(director,),
        collection_id=131292,
        collection_name="Iron Man Collection",
        rating=8.0,
    )
    second = _entity(
        "movie_2",
        "Iron Man 2",
        companies=(studio,),
        crew=(director,),
        collection_id=131292,
        collection_name="Iron Man Collection",
        rating=7.5,
    )

    connections = ContentAnalyzer().find_connections(first, _catalog(first, second))
    by_type = {c.type: c for c in connections}

    assert by_type["studio_universe"].strength == pytest.approx(0.95 * 0.95)
    assert by_type["talent_overlap"].strength == pytest.approx((0.4 + 0.095) * 1.3 * 0.95)
    assert by_type["talent_overlap"].confidence == pytest.approx(0.9)
    assert by_type["franchise_member"].strength == pytest.approx(0.92)
    assert by_type["franchise_member"].reason == "Part of Iron Man Collection collection"
    assert by_type["rating_similarity"].strength == pytest.approx(0.95 * 0.6)


def test_franchise_member_from_titles_without_collection():
    first = _entity("movie_1", "Rocky II")
    second = _entity("movie_2", "Rocky III")

    connections = ContentAnalyzer().find_connections(first, _catalog(first, second))

    franchise = _of_type(connections, "franchise_member")
    assert len(franchise) == 1
    assert franchise[0].confidence == pytest.approx(0.6)
    assert franchise[0].factors[0].label == "franchise_title"


def test_semantic_profile_from_genres_and_title():
    profile = extract_profile(_entity("movie_1", "Home Alone", genres=("Comedy",)))

    assert "comedy" in profile.themes
    assert "family" in profile.themes
    assert "family_friendly" in profile.audience
    assert "humorous" in profile.moods


def test_semantic_connections_share_themes():
    shining = _entity("movie_1", "The Shining", description="A haunted hotel", genres=("Horror",))
    conjuring = _entity("movie_2", "The Conjuring", description="A demon in the house", genres=("Horror",))
    blank = _entity("movie_3", "Zzq")

    analyzer = SemanticAnalyzer()
    connections = analyzer.find_connections(shining, _catalog(shining, conjuring, blank))

    assert [c.target for c in connections] == ["movie_2"]
    assert "horror" in connections[0].metadata["common_themes"]
    assert connections[0].type == "semantic_similarity"
    assert analyzer.find_connections(blank, _catalog(shining, conjuring, blank)) == []


def test_semantic_caps_connections():
    entities = [_entity(f"movie_{i}", f"Scare {i}", genres=("Horror",)) for i in range(30)]
    connections = SemanticAnalyzer(max_connections=5).find_connections(entities[0], _catalog(*entities))
    assert len(connections) == 5


def test_cultural_blockbusters_connect():
    fields = dict(
        description="A massive blockbuster phenomenon",
        popularity=90.0,
        rating=8.6,
        vote_count=5000,
        release_date="2024-05-01",
        countries=("US",),
    )
    first = _entity("movie_1", "Boom", **fields)
    second = _entity("movie_2", "Bang", **fields)

    connections = CulturalAnalyzer(today=TODAY).find_connections(first, _catalog(first, second))

    assert len(connections) == 1
    cultural = connections[0]
    assert cultural.type == "cultural_significance"
    assert cultural.dimension is Dimension.CULTURAL
    assert "blockbuster" in cultural.metadata["shared_markers"]
    assert cultural.confidence == pytest.approx(0.9)
    assert cultural.reason.startswith("Cultural significance:")


def test_cultural_insignificant_entity_is_skipped():
    plain = _entity("movie_1", "Zzq")
    other = _entity("movie_2", "Qzz", description="A massive blockbuster", popularity=90.0)
    assert CulturalAnalyzer(today=TODAY).find_connections(plain, _catalog(plain, other)) == []


def test_time_relevance_interpolates_and_clamps():
    table = {1990: 0.5, 2000: 0.8, 2010: 1.0}
    assert time_relevance(table, 1995) == pytest.approx(0.65)
    assert time_relevance(table, 1980) == 0.5
    assert time_relevance(table, 2020) == 1.0
    assert time_relevance(table, 0) == 0.0


def test_isolated_entity_yields_nothing_from_any_analyzer():
    isolated = _entity("movie_1", "Zzq")
    dated = _entity("movie_2", "Dated", release_date="2001-01-01", genres=("Drama",), rating=7.5)
    catalog = _catalog(isolated, dated)

    for analyzer in default_analyzers(today=TODAY):
        assert analyzer.find_connections(isolated, catalog) == []
