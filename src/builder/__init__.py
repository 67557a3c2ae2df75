"""Build configuration, catalog validation and the phased build orchestrator."""

from .config import DEFAULT_BUILD_CONFIG, BuildConfig, ConfigError, load_build_config
from .database import BuildArtifact, BuildError, BuildPhase, BuildReport, DatabaseBuilder
from .validation import validate_catalog

__all__ = [
    "BuildArtifact",
    "BuildConfig",
    "BuildError",
    "BuildPhase",
    "BuildReport",
    "ConfigError",
    "DEFAULT_BUILD_CONFIG",
    "DatabaseBuilder",
    "load_build_config",
    "validate_catalog",
]
