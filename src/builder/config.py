"""Build configuration: entity limits, search terms and processing options."""

from dataclasses import dataclass, field, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml


class ConfigError(ValueError):
    """Raised for malformed or unknown build configuration."""


@dataclass(frozen=True)
class EntityLimits:
    companies: int = 200
    collections: int = 300
    genres: int = 50
    keywords: int = 500
    people: int = 100


@dataclass(frozen=True)
class SearchTerms:
    """Per-kind search terms; empty means the processor's built-in list."""

    companies: tuple[str, ...] = ()
    collections: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    people: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessingOptions:
    concurrency: int = 3
    retry_attempts: int = 3
    rate_limit_delay: float = 0.3
    max_pages_per_term: int = 2
    max_catalog_size: int = 2000
    min_request_interval: float = 0.025


@dataclass(frozen=True)
class BuildConfig:
    limits: EntityLimits = field(default_factory=EntityLimits)
    search_terms: SearchTerms = field(default_factory=SearchTerms)
    processing: ProcessingOptions = field(default_factory=ProcessingOptions)
    api_key: str = ""
    validate_data: bool = True

    def resolved_api_key(self) -> str:
        return self.api_key or os.environ.get("TMDB_API_KEY", "")


DEFAULT_BUILD_CONFIG = BuildConfig()


def _section(cls, data: Any, name: str):
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigError(f"'{name}' must be a mapping, got {type(data).__name__}")
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(map(str, unknown))}")

    values = {}
    for key, value in data.items():
        default = getattr(cls(), key)
        if isinstance(default, tuple):
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ConfigError(f"'{name}.{key}' must be a list of strings")
            values[key] = tuple(str(v) for v in value)
        elif isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"'{name}.{key}' must be true or false")
            values[key] = value
        elif isinstance(default, (int, float)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'{name}.{key}' must be a number")
            if value < 0:
                raise ConfigError(f"'{name}.{key}' must not be negative")
            values[key] = type(default)(value)
        else:
            values[key] = str(value)
    return cls(**values)


def build_config_from_dict(data: Mapping[str, Any] | None) -> BuildConfig:
    """Build a BuildConfig from a parsed mapping, rejecting unknown keys."""
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigError("Build configuration must be a mapping")
    top = {"limits", "search_terms", "processing", "api_key", "validate_data"}
    unknown = sorted(set(data) - top)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(map(str, unknown))}")

    config = BuildConfig(
        limits=_section(EntityLimits, data.get("limits"), "limits"),
        search_terms=_section(SearchTerms, data.get("search_terms"), "search_terms"),
        processing=_section(ProcessingOptions, data.get("processing"), "processing"),
    )
    if "api_key" in data:
        config = replace(config, api_key=str(data["api_key"] or ""))
    if "validate_data" in data:
        if not isinstance(data["validate_data"], bool):
            raise ConfigError("'validate_data' must be true or false")
        config = replace(config, validate_data=data["validate_data"])
    return config


def load_build_config(path: str | Path) -> BuildConfig:
    """Load a YAML build configuration file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return build_config_from_dict(data)
