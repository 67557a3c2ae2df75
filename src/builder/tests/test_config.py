"""Tests for YAML build configuration loading."""

import pytest

from src.builder.config import (
    DEFAULT_BUILD_CONFIG,
    ConfigError,
    build_config_from_dict,
    load_build_config,
)


def test_defaults():
    cfg = DEFAULT_BUILD_CONFIG
    assert cfg.limits.companies == 200
    assert cfg.limits.keywords == 500
    assert cfg.processing.concurrency == 3
    assert cfg.processing.retry_attempts == 3
    assert cfg.processing.rate_limit_delay == pytest.approx(0.3)
    assert cfg.processing.max_catalog_size == 2000
    assert cfg.search_terms.companies == ()


def test_load_yaml_overrides(tmp_path):
    path = tmp_path / "build.yaml"
    path.write_text(
        "limits:\n"
        "  companies: 10\n"
        "search_terms:\n"
        "  people: [nolan, villeneuve]\n"
        "processing:\n"
        "  rate_limit_delay: 0\n"
        "  max_catalog_size: 500\n"
        "validate_data: false\n",
        encoding="utf-8",
    )

    cfg = load_build_config(path)

    assert cfg.limits.companies == 10
    assert cfg.limits.collections == 300
    assert cfg.search_terms.people == ("nolan", "villeneuve")
    assert cfg.processing.rate_limit_delay == 0.0
    assert isinstance(cfg.processing.rate_limit_delay, float)
    assert cfg.processing.max_catalog_size == 500
    assert cfg.validate_data is False


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_build_config(path) == DEFAULT_BUILD_CONFIG


@pytest.mark.parametrize(
    "data",
    [
        {"limit": {"companies": 1}},
        {"limits": {"studios": 1}},
        {"limits": {"companies": "many"}},
        {"limits": {"companies": -1}},
        {"search_terms": {"people": "nolan"}},
        {"processing": ["concurrency"]},
        {"validate_data": "yes"},
    ],
)
def test_invalid_config_rejected(data):
    with pytest.raises(ConfigError):
        build_config_from_dict(data)


def test_invalid_yaml_raises_config_error(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("limits: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_build_config(path)


def test_api_key_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "from-env")
    assert DEFAULT_BUILD_CONFIG.resolved_api_key() == "from-env"
    assert build_config_from_dict({"api_key": "explicit"}).resolved_api_key() == "explicit"
