import pytest

from src.analyzers.franchise import analyze_franchise, are_franchise_related, base_title
from src.analyzers.temporal import TemporalAnalyzer, eras_for, generation_for
from src.entities.model import Entity, EntityKind
from src.graph.types import Dimension


def _movie(
    entity_id: str,
    *,
    name: str,
    year: int | None = None,
    genres: tuple[str, ...] = (),
    description: str = "",
    collection_id: int | None = None,
) -> Entity:
    return Entity(
        id=entity_id,
        kind=EntityKind.MOVIE,
        name=name,
        description=description,
        release_date=f"{year}-06-01" if year else None,
        genres=genres,
        collection_id=collection_id,
        collection_name="Movie Collection" if collection_id else None,
    )


def _by_type(connections, target, type_):
    matches = [c for c in connections if c.target == target and c.type == type_]
    assert len(matches) == 1, [c.type for c in connections]
    return matches[0]


def test_same_year_release_includes_bonus():
    alpha = _movie("movie_1", name="Alpha", year=2010)
    beta = _movie("movie_2", name="Beta", year=2010)
    catalog = {alpha.id: alpha, beta.id: beta}

    connections = TemporalAnalyzer().find_connections(alpha, catalog)

    same_year = _by_type(connections, "movie_2", "same_year_release")
    assert same_year.dimension is Dimension.TEMPORAL
    assert same_year.strength == pytest.approx(0.72)
    assert same_year.confidence == pytest.approx(0.8)
    assert same_year.reason == "Both released in 2010"
    assert [c.strength for c in connections] == sorted((c.strength for c in connections), reverse=True)


def test_concurrent_release_outside_window_is_dropped():
    alpha = _movie("movie_1", name="Alpha", year=2010)
    beta = _movie("movie_2", name="Beta", year=2013)

    connections = TemporalAnalyzer().find_connections(alpha, {alpha.id: alpha, beta.id: beta})

    types = {c.type for c in connections}
    assert "same_year_release" not in types
    assert "concurrent_release" not in types


def test_franchise_timing_peaks_at_three_year_gap():
    first = _movie("movie_1", name="Movie Part II", year=2015, collection_id=5)
    second = _movie("movie_2", name="Movie Part III", year=2018, collection_id=5)
    catalog = {first.id: first, second.id: second}

    connections = TemporalAnalyzer().find_connections(first, catalog)

    timing = _by_type(connections, "movie_2", "franchise_timing")
    assert timing.strength >= 0.85
    assert timing.confidence == pytest.approx(0.85)
    assert timing.metadata["franchise_relation"] == "sequel_pair"
    sequel = _by_type(connections, "movie_2", "sequel_pattern")
    assert sequel.strength == pytest.approx(0.9)


def test_entity_without_year_has_no_temporal_connections():
    undated = _movie("movie_1", name="Undated")
    dated = _movie("movie_2", name="Dated", year=2000)

    assert TemporalAnalyzer().find_connections(undated, {undated.id: undated, dated.id: dated}) == []


def test_cultural_movement_requires_text_cue():
    hero = _movie("movie_1", name="Caped", year=2012, description="A superhero story")
    other_hero = _movie("movie_2", name="Cowled", year=2014, description="Comic villain returns")
    plain = _movie("movie_3", name="Quiet", year=2013, description="A walk in the park")
    catalog = {e.id: e for e in (hero, other_hero, plain)}

    connections = TemporalAnalyzer().find_connections(hero, catalog)

    movement = _by_type(connections, "movie_2", "cultural_movement")
    assert movement.strength == pytest.approx(0.6 * 0.95)
    assert not [c for c in connections if c.target == "movie_3" and c.type == "cultural_movement"]


def test_decade_strength_boosted_by_shared_genre():
    a = _movie("movie_1", name="Alpha", year=1994, genres=("Drama",))
    b = _movie("movie_2", name="Beta", year=1999, genres=("Drama",))

    decade = _by_type(TemporalAnalyzer().find_connections(a, {a.id: a, b.id: b}), "movie_2", "same_decade")

    assert decade.strength == pytest.approx(0.4 * 0.9 * 1.2)
    assert decade.reason == "Both from the 1990s"


def test_era_and_generation_tables():
    assert eras_for(1980) == ["new_hollywood", "blockbuster_era"]
    assert eras_for(1962) == []
    assert generation_for(1990) == "generation_x"
    assert generation_for(1900) is None


def test_franchise_detection_from_title_and_collection():
    sequel = _movie("movie_1", name="Movie Part II", year=2015)
    info = analyze_franchise(sequel)
    assert info.is_sequel
    assert info.sequel_number == "ii"
    assert base_title("movie part 2") == "movie"
    assert base_title("the dark chronicles ii") == "the dark"

    a = _movie("movie_2", name="Saga", year=2000, collection_id=1)
    b = _movie("movie_3", name="Saga", year=2001, collection_id=2)
    assert not are_franchise_related(a, b, analyze_franchise(a), analyze_franchise(b))
