"""Tests for the entity-intel command line."""

import json

from click.testing import CliRunner
import pytest

from src.cli import cli


def _movie(n, title, year, genres, popularity=50.0):
    return {
        "id": n,
        "kind": "movie",
        "title": title,
        "overview": f"{title} is a film.",
        "popularity": popularity,
        "vote_average": 7.0,
        "release_date": f"{year}-06-01",
        "genres": [{"name": g} for g in genres],
    }


@pytest.fixture
def catalog_path(tmp_path):
    records = [
        _movie(1, "Batman", 1989, ["Action", "Adventure"], popularity=80.0),
        _movie(2, "Batman Returns", 1992, ["Action", "Adventure"]),
        _movie(3, "Dick Tracy", 1990, ["Action", "Adventure"]),
        _movie(4, "Scream", 1996, ["Horror", "Mystery"]),
    ]
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_build_catalog_writes_artifact(catalog_path, tmp_path):
    output = tmp_path / "out" / "artifact.json"
    result = CliRunner().invoke(cli, ["build-catalog", str(catalog_path), "--output", str(output)])

    assert result.exit_code == 0, result.output
    assert "Build Complete!" in result.output
    assert "Entities: 4 (movie: 4)" in result.output

    artifact = json.loads(output.read_text(encoding="utf-8"))
    assert sorted(artifact["entities"]) == ["movie_1", "movie_2", "movie_3", "movie_4"]
    assert artifact["metadata"]["entityCounts"] == {"movie": 4}


def test_recommend_from_artifact_and_catalog(catalog_path, tmp_path):
    output = tmp_path / "artifact.json"
    runner = CliRunner()
    runner.invoke(cli, ["build-catalog", str(catalog_path), "--output", str(output)])

    from_artifact = runner.invoke(cli, ["recommend", str(output), "movie_1", "--tier", "deep"])
    assert from_artifact.exit_code == 0, from_artifact.output
    assert "Deep recommendations for Batman" in from_artifact.output
    assert "1. [" in from_artifact.output

    from_catalog = runner.invoke(cli, ["recommend", str(catalog_path), "movie_1", "--tier", "deep"])
    assert from_catalog.exit_code == 0, from_catalog.output
    assert "Deep recommendations for Batman" in from_catalog.output
    assert "1. [" in from_catalog.output


def test_recommend_rejects_unknown_entity_and_missing_category(catalog_path):
    runner = CliRunner()

    unknown = runner.invoke(cli, ["recommend", str(catalog_path), "movie_99"])
    assert unknown.exit_code == 1
    assert "unknown entity movie_99" in unknown.output

    missing = runner.invoke(cli, ["recommend", str(catalog_path), "movie_1", "--tier", "category"])
    assert missing.exit_code == 1
    assert "--category is required" in missing.output


def test_search_finds_exact_and_fuzzy_terms(catalog_path):
    runner = CliRunner()

    exact = runner.invoke(cli, ["search", str(catalog_path), "scream"])
    assert exact.exit_code == 0, exact.output
    assert "1. [1.000] Scream (movie)" in exact.output

    fuzzy = runner.invoke(cli, ["search", str(catalog_path), "scraam"])
    assert "Scream (movie)" in fuzzy.output


def test_search_reports_query_intent(catalog_path):
    result = CliRunner().invoke(cli, ["search", str(catalog_path), "show me horror movies"])

    assert result.exit_code == 0, result.output
    assert "Intent: discover_by_genre (0.90), sorted by popularity" in result.output
    assert "filter genre:horror x2.0" in result.output
    assert "Scream (movie)" in result.output


def test_diagnose_reports_and_saves_graph(catalog_path, tmp_path):
    saved = tmp_path / "graph.json"
    result = CliRunner().invoke(cli, ["diagnose", str(catalog_path), "--save", str(saved)])

    assert result.exit_code == 0, result.output
    assert "Graph Stats:" in result.output
    assert "Valid: yes" in result.output
    assert saved.exists()


def test_build_rejects_bad_config(tmp_path):
    config = tmp_path / "build.yaml"
    config.write_text("limits:\n  studios: 3\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["build", str(config)])

    assert result.exit_code == 1
    assert "Unknown keys in 'limits'" in result.output


def test_build_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    config = tmp_path / "build.yaml"
    config.write_text("limits:\n  companies: 3\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["build", str(config)])

    assert result.exit_code == 1
    assert "no API key" in result.output


def test_invalid_json_exits(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    result = CliRunner().invoke(cli, ["search", str(path), "batman"])

    assert result.exit_code == 1
    assert "not valid JSON" in result.output
