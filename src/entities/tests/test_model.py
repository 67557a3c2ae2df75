"""Tests for the catalog entity model."""

import json

from src.entities.model import (
    Entity,
    EntityKind,
    catalog_fingerprint,
    catalog_from_records,
    load_catalog,
)


def test_from_provider_record_normalizes_fields():
    entity = Entity.from_record(
        {
            "id": 603,
            "title": "The Matrix",
            "overview": "A hacker learns the truth.",
            "release_date": "1999-03-30",
            "genre_ids": [28, 878],
            "vote_average": 8.2,
            "belongs_to_collection": {"id": 2344, "name": "The Matrix Collection"},
            "production_companies": [{"id": 79, "name": "Village Roadshow", "logo_path": None}],
            "original_title": "The Matrix",
        },
        kind="movie",
    )

    assert entity.id == "movie_603"
    assert entity.kind is EntityKind.MOVIE
    assert entity.name == "The Matrix"
    assert entity.genres == ("Action", "Science Fiction")
    assert entity.collection_id == 2344
    assert entity.companies == ({"id": 79, "name": "Village Roadshow"},)
    assert entity.year == 1999
    assert entity.decade == 1990
    assert entity.aliases == ()


def test_year_is_zero_without_date():
    entity = Entity(id="movie_1", kind=EntityKind.MOVIE, name="Untitled")
    assert entity.year == 0
    assert entity.decade == 0


def test_year_falls_back_to_first_air_date():
    entity = Entity.from_record({"id": 5, "name": "Show", "first_air_date": "2011-04-17"}, kind="tv")
    assert entity.id == "tv_5"
    assert entity.year == 2011


def test_record_round_trip_keeps_identity():
    original = Entity.from_record(
        {"id": "movie_7", "kind": "movie", "name": "Seven", "genres": ["Crime", "Thriller"]}
    )
    restored = Entity.from_record(original.to_record())
    assert restored == original


def test_fingerprint_ignores_insertion_order():
    records = [
        {"id": 1, "kind": "movie", "name": "A"},
        {"id": 2, "kind": "movie", "name": "B"},
    ]
    forward = catalog_from_records(records)
    backward = catalog_from_records(list(reversed(records)))

    assert catalog_fingerprint(forward) == catalog_fingerprint(backward)


def test_fingerprint_changes_with_content():
    a = catalog_from_records([{"id": 1, "kind": "movie", "name": "A"}])
    b = catalog_from_records([{"id": 1, "kind": "movie", "name": "A", "popularity": 3}])
    assert catalog_fingerprint(a) != catalog_fingerprint(b)


def test_load_catalog_accepts_wrapped_entities(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps({"entities": {"movie_1": {"id": "movie_1", "kind": "movie", "name": "A"}}}),
        encoding="utf-8",
    )
    catalog = load_catalog(path)
    assert list(catalog) == ["movie_1"]
