"""Tests for the phased build orchestrator and catalog validation."""

import asyncio
from datetime import date
from unittest.mock import patch

import httpx
import pytest

from src.builder.config import build_config_from_dict
from src.builder.database import BuildError, BuildPhase, DatabaseBuilder, entity_counts
from src.builder.validation import validate_catalog, validate_entity
from src.entities.client import FetchError
from src.entities.model import Entity, EntityKind

TODAY = date(2026, 5, 1)


def _movie(n, *, year, genres, popularity=50.0, rating=7.0):
    return Entity(
        id=f"movie_{n}",
        kind=EntityKind.MOVIE,
        name=f"Movie {n}",
        description="A story of heroes",
        popularity=popularity,
        rating=rating,
        release_date=f"{year}-06-01",
        genres=tuple(genres),
    )


@pytest.fixture
def catalog():
    movies = [
        _movie(1, year=2010, genres=["Action", "Adventure"]),
        _movie(2, year=2010, genres=["Action", "Adventure"], rating=7.5),
        _movie(3, year=2012, genres=["Action", "Science Fiction"]),
        _movie(4, year=1995, genres=["Horror"], popularity=20.0),
        _movie(5, year=2011, genres=["Action", "Adventure"], popularity=90.0),
    ]
    return {m.id: m for m in movies}


def _offline_config(**processing):
    return build_config_from_dict(
        {"processing": {"rate_limit_delay": 0, "min_request_interval": 0, **processing}}
    )


def test_build_from_catalog_assembles_artifact(catalog):
    builder = DatabaseBuilder(_offline_config(), today=TODAY)
    artifact = asyncio.run(builder.build_from_catalog(catalog))

    record = artifact.to_record()
    assert set(record) == {"entities", "relationshipGraph", "searchIndex", "recommendationEngine", "metadata"}
    assert set(record["relationshipGraph"]) == {"graph", "clusters"}
    assert {"quick", "deep", "category", "trending"} <= set(record["recommendationEngine"])
    assert sorted(record["entities"]) == sorted(catalog)

    metadata = record["metadata"]
    assert metadata["entityCounts"] == {"movie": 5}
    assert metadata["errors"] == []
    assert metadata["quality"]["successRate"] == 1.0
    assert metadata["version"] == "3.0"
    assert metadata["graph"]["connections"] > 0

    progress = builder.progress()
    assert progress["phase"] == "completed"
    assert progress["percentage"] == 100

    report = str(artifact.report())
    assert "Entities: 5 (movie: 5)" in report


def test_validation_exclusions_are_warnings(catalog):
    obscure = Entity(id="company_9", kind=EntityKind.COMPANY, name="Tiny Films", popularity=1.0)
    builder = DatabaseBuilder(_offline_config(), today=TODAY)

    artifact = asyncio.run(builder.build_from_catalog({**catalog, obscure.id: obscure}))

    assert "company_9" not in artifact.entities
    assert artifact.metadata["errors"] == []
    assert artifact.metadata["warnings"] == ["excluded company_9: popularity 1.0 below 5.0 for company"]
    assert artifact.metadata["quality"]["successRate"] == 1.0
    assert artifact.metadata["quality"]["warningCount"] == 1


def test_phase_failure_raises_build_error(catalog):
    builder = DatabaseBuilder(_offline_config(), today=TODAY)

    with patch("src.builder.database.SearchIndexBuilder.build", side_effect=RuntimeError("boom")):
        with pytest.raises(BuildError) as excinfo:
            asyncio.run(builder.build_from_catalog(catalog))

    error = excinfo.value
    assert error.phase is BuildPhase.SEARCH_INDEXING
    assert error.message == "boom"
    assert error.diagnostics["entities_processed"] == 5
    assert builder.state.phase is BuildPhase.ERROR


def test_progress_estimates_remaining_time():
    builder = DatabaseBuilder(clock=lambda: 10.0)

    assert builder.progress()["estimated_remaining_seconds"] is None
    assert builder.progress()["phase"] == "initialization"

    builder.state.started = 0.0
    builder.state.processed = 25
    builder.state.total = 100
    progress = builder.progress()
    assert progress["percentage"] == 25
    assert progress["elapsed_seconds"] == 10.0
    assert progress["estimated_remaining_seconds"] == pytest.approx(30.0)


def _genre_only_transport(html_paths=()):
    routes = {
        "/genre/movie/list": {"genres": [{"id": 28, "name": "Action"}, {"id": 18, "name": "Drama"}]},
        "/genre/tv/list": {"genres": [{"id": 18, "name": "Drama"}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/3")
        if path in html_paths:
            return httpx.Response(200, text="<html>gateway</html>")
        payload = routes.get(path)
        if payload is None:
            return httpx.Response(404, json={})
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def test_build_gathers_from_provider():
    builder = DatabaseBuilder(_offline_config(), transport=_genre_only_transport(), today=TODAY)
    artifact = asyncio.run(builder.build())

    assert artifact.metadata["entityCounts"] == {"genre": 2}
    assert sorted(artifact.entities) == ["genre_18", "genre_28"]
    assert builder.state.phase is BuildPhase.COMPLETED


class FailingProcessor:
    kind = EntityKind.COMPANY

    async def gather(self, client, terms, limit):
        raise FetchError("/search/company", 503, "HTTP 503")


def test_kind_failure_becomes_warning():
    builder = DatabaseBuilder(_offline_config(), transport=_genre_only_transport(), today=TODAY)
    working = builder.processors()
    working["companies"] = (FailingProcessor(), (), 5)
    builder.processors = lambda: working

    artifact = asyncio.run(builder.build())

    assert any("Failed to gather companies" in w for w in artifact.metadata["warnings"])
    assert artifact.metadata["entityCounts"] == {"genre": 2}


def test_html_search_response_is_skipped(caplog):
    transport = _genre_only_transport(html_paths={"/search/company"})
    builder = DatabaseBuilder(_offline_config(), transport=transport, today=TODAY)

    with caplog.at_level("WARNING"):
        artifact = asyncio.run(builder.build())

    assert builder.state.phase is BuildPhase.COMPLETED
    assert artifact.metadata["entityCounts"] == {"genre": 2}
    assert any("invalid JSON" in record.getMessage() for record in caplog.records)


class BrokenProcessor:
    kind = EntityKind.PERSON

    async def gather(self, client, terms, limit):
        raise ValueError("unexpected payload shape")


def test_unexpected_kind_error_becomes_warning():
    builder = DatabaseBuilder(_offline_config(), transport=_genre_only_transport(), today=TODAY)
    working = builder.processors()
    working["people"] = (BrokenProcessor(), (), 5)
    builder.processors = lambda: working

    artifact = asyncio.run(builder.build())

    assert builder.state.phase is BuildPhase.COMPLETED
    assert "Failed to gather people entities: unexpected payload shape" in artifact.metadata["warnings"]
    assert artifact.metadata["entityCounts"] == {"genre": 2}


def test_validate_entity_rules():
    assert validate_entity(Entity(id="person_1", kind=EntityKind.PERSON, name="P", popularity=12.0))
    assert not validate_entity(Entity(id="person_2", kind=EntityKind.PERSON, name="P", popularity=3.0))
    assert not validate_entity(Entity(id="movie_1", kind=EntityKind.MOVIE, name="", release_date="2000"))
    assert not validate_entity(Entity(id="movie_2", kind=EntityKind.MOVIE, name="M", rating=11.0))

    small = Entity(id="collection_1", kind=EntityKind.COLLECTION, name="C", payload={"movie_count": 1})
    large = Entity(id="collection_2", kind=EntityKind.COLLECTION, name="C", payload={"movie_count": 3})
    assert not validate_entity(small)
    assert validate_entity(large)

    undated = validate_entity(Entity(id="movie_3", kind=EntityKind.MOVIE, name="M"))
    assert undated.valid
    assert undated.warnings == ["movie_3: no resolvable release year"]


def test_validate_catalog_splits_kept_and_excluded(catalog):
    bad = Entity(id="movie_9", kind=EntityKind.MOVIE, name="Bad", popularity=-1.0, release_date="2001")
    result = validate_catalog([*catalog.values(), bad])

    assert sorted(result.kept) == sorted(catalog)
    assert result.excluded == ["movie_9"]
    assert result.warnings == ["excluded movie_9: negative popularity -1.0"]
    assert result.total == 6
    assert entity_counts(result.kept) == {"movie": 5}
