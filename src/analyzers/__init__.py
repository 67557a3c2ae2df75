"""Connection analyzers: content, semantic, temporal and cultural."""

from datetime import date

from .base import Analyzer, clamp_01
from .content import ContentAnalyzer
from .cultural import CulturalAnalyzer
from .semantic import SemanticAnalyzer
from .temporal import TemporalAnalyzer

__all__ = [
    "Analyzer",
    "ContentAnalyzer",
    "CulturalAnalyzer",
    "SemanticAnalyzer",
    "TemporalAnalyzer",
    "clamp_01",
    "default_analyzers",
]


def default_analyzers(today: date | None = None) -> list[Analyzer]:
    return [ContentAnalyzer(), SemanticAnalyzer(), TemporalAnalyzer(), CulturalAnalyzer(today=today)]
