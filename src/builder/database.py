"""Build orchestrator: collect, validate, graph, index, recommend, assemble."""

import asyncio
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
import logging
import time
from typing import Any, Callable, Mapping

import httpx

from ..entities import (
    CollectionProcessor,
    CompanyProcessor,
    GenreProcessor,
    KeywordProcessor,
    MetadataClient,
    PersonProcessor,
)
from ..entities.base import EntityProcessor
from ..entities.model import Catalog, Entity
from ..graph.builder import RelationshipGraphBuilder
from ..graph.config import DEFAULT_GRAPH_CONFIG, GraphConfig
from ..graph.postprocess import RelationshipPostProcessor
from ..graph.types import RelationshipGraph
from ..recommendations.config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from ..recommendations.engine import RecommendationEngine, RecommendationTiers
from ..recommendations.signals import CatalogSignals
from ..search.config import DEFAULT_SEARCH_CONFIG, SearchConfig
from ..search.index import SearchIndex, SearchIndexBuilder
from .config import DEFAULT_BUILD_CONFIG, BuildConfig
from .validation import validate_catalog

log = logging.getLogger(__name__)

ARTIFACT_VERSION = "3.0"


class BuildPhase(str, Enum):
    INITIALIZATION = "initialization"
    DATA_COLLECTION = "data_collection"
    DATA_VALIDATION = "data_validation"
    INTELLIGENCE_PROCESSING = "intelligence_processing"
    SEARCH_INDEXING = "search_indexing"
    RECOMMENDATION_BUILDING = "recommendation_building"
    FINAL_ASSEMBLY = "final_assembly"
    COMPLETED = "completed"
    ERROR = "error"


class BuildError(RuntimeError):
    """A build phase failed; no artifact was produced."""

    def __init__(self, phase: BuildPhase, message: str, diagnostics: dict[str, Any]):
        super().__init__(f"Build failed during {phase.value}: {message}")
        self.phase = phase
        self.message = message
        self.diagnostics = diagnostics


@dataclass
class BuildState:
    phase: BuildPhase = BuildPhase.INITIALIZATION
    started: float | None = None
    processed: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BuildArtifact:
    """Everything one build produces, ready for serialization."""

    entities: Catalog
    graph: RelationshipGraph
    search_index: SearchIndex
    recommendations: RecommendationTiers
    metadata: dict[str, Any]

    def to_record(self) -> dict[str, Any]:
        return {
            "entities": {entity_id: self.entities[entity_id].to_record() for entity_id in sorted(self.entities)},
            "relationshipGraph": self.graph.to_record(),
            "searchIndex": self.search_index.to_record(),
            "recommendationEngine": self.recommendations.to_record(),
            "metadata": self.metadata,
        }

    def report(self) -> "BuildReport":
        return BuildReport(
            entity_counts=dict(self.metadata["entityCounts"]),
            connections=sum(1 for _ in self.graph.iter_connections()),
            clusters=len(self.graph.clusters),
            terms=len(self.search_index.term_index),
            duration=self.metadata["buildDuration"],
            errors=list(self.metadata["errors"]),
            warnings=list(self.metadata["warnings"]),
        )


@dataclass
class BuildReport:
    """Summary of a finished build."""

    entity_counts: dict[str, int] = field(default_factory=dict)
    connections: int = 0
    clusters: int = 0
    terms: int = 0
    duration: float = 0.0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        counts = ", ".join(f"{kind}: {n}" for kind, n in sorted(self.entity_counts.items())) or "none"
        lines = [
            f"Entities: {sum(self.entity_counts.values())} ({counts})",
            f"Connections: {self.connections}",
            f"Clusters: {self.clusters}",
            f"Search terms: {self.terms}",
            f"Duration: {self.duration:.2f}s",
        ]
        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
        if self.warnings:
            lines.append(f"Warnings: {len(self.warnings)}")
        return "\n".join(lines)


def entity_counts(catalog: Mapping[str, Entity]) -> dict[str, int]:
    return dict(sorted(Counter(entity.kind.value for entity in catalog.values()).items()))


class DatabaseBuilder:
    """Runs the build phases in order and tracks progress.

    A fresh MetadataClient is opened per build, so its cache and rate-limit
    window never outlive the run. Per-kind gather failures become warnings;
    a failure in any later phase raises BuildError.
    """

    def __init__(
        self,
        config: BuildConfig = DEFAULT_BUILD_CONFIG,
        *,
        graph_config: GraphConfig = DEFAULT_GRAPH_CONFIG,
        search_config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        recommendation_config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
        today: date | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.graph_config = replace(graph_config, max_catalog_size=config.processing.max_catalog_size)
        self.search_config = search_config
        self.recommendation_config = recommendation_config
        self.transport = transport
        self.today = today
        self.clock = clock
        self.state = BuildState()

    def processors(self) -> dict[str, tuple[EntityProcessor, tuple[str, ...], int]]:
        """Processor, search terms and entity limit for every gathered kind."""
        cfg = self.config
        pages = cfg.processing.max_pages_per_term
        delay = cfg.processing.rate_limit_delay
        return {
            "companies": (
                CompanyProcessor(max_pages_per_term=pages, delay=delay, today=self.today),
                cfg.search_terms.companies,
                cfg.limits.companies,
            ),
            "collections": (
                CollectionProcessor(max_pages_per_term=pages, delay=delay, today=self.today),
                cfg.search_terms.collections,
                cfg.limits.collections,
            ),
            "genres": (GenreProcessor(), (), cfg.limits.genres),
            "keywords": (
                KeywordProcessor(max_pages_per_term=pages, delay=delay, today=self.today),
                cfg.search_terms.keywords,
                cfg.limits.keywords,
            ),
            "people": (
                PersonProcessor(max_pages_per_term=pages, delay=delay),
                cfg.search_terms.people,
                cfg.limits.people,
            ),
        }

    def progress(self) -> dict[str, Any]:
        state = self.state
        elapsed = self.clock() - state.started if state.started is not None else 0.0
        return {
            "phase": state.phase.value,
            "processed": state.processed,
            "total": state.total,
            "percentage": round(state.processed / state.total * 100) if state.total else 0,
            "elapsed_seconds": elapsed,
            "estimated_remaining_seconds": self._estimate_remaining(elapsed),
            "errors": len(state.errors),
            "warnings": len(state.warnings),
        }

    def _estimate_remaining(self, elapsed: float) -> float | None:
        state = self.state
        if state.started is None or state.processed == 0 or elapsed <= 0:
            return None
        remaining = state.total - state.processed
        return remaining / (state.processed / elapsed) if remaining > 0 else 0.0

    def _enter(self, phase: BuildPhase) -> None:
        self.state.phase = phase
        log.info(f"Build phase: {phase.value}")

    def _start(self) -> None:
        self.state = BuildState(started=self.clock())
        self._enter(BuildPhase.INITIALIZATION)

    async def build(self) -> BuildArtifact:
        """Gather every kind from the metadata provider, then run the pipeline."""
        self._start()
        self._enter(BuildPhase.DATA_COLLECTION)
        processors = self.processors()
        self.state.total = sum(limit for _, _, limit in processors.values())

        processing = self.config.processing
        async with MetadataClient(
            self.config.resolved_api_key(),
            min_interval=processing.min_request_interval,
            max_retries=processing.retry_attempts,
            transport=self.transport,
        ) as client:
            slots = asyncio.Semaphore(max(1, processing.concurrency))
            gathered = await asyncio.gather(
                *(self._gather_kind(kind, plan, client, slots) for kind, plan in processors.items())
            )
            log.info(f"Provider requests issued: {client.request_count}")

        catalog: Catalog = {}
        for entities in gathered:
            catalog.update(entities)
        log.info(f"Total entities collected: {len(catalog)}")
        return await self._pipeline(catalog)

    async def build_from_catalog(self, catalog: Mapping[str, Entity]) -> BuildArtifact:
        """Run the pipeline over an already collected catalog."""
        self._start()
        return await self._pipeline(dict(catalog))

    async def _gather_kind(
        self,
        kind: str,
        plan: tuple[EntityProcessor, tuple[str, ...], int],
        client: MetadataClient,
        slots: asyncio.Semaphore,
    ) -> dict[str, Entity]:
        processor, terms, limit = plan
        async with slots:
            log.info(f"Gathering {kind} (limit {limit})")
            try:
                entities = await processor.gather(client, terms, limit)
            except Exception as e:
                warning = f"Failed to gather {kind} entities: {e}"
                log.warning(warning)
                self.state.warnings.append(warning)
                return {}
        log.info(f"Collected {len(entities)} {kind} entities")
        self.state.processed += len(entities)
        return entities

    async def _pipeline(self, catalog: Catalog) -> BuildArtifact:
        state = self.state
        state.total = len(catalog)
        state.processed = len(catalog)
        try:
            if self.config.validate_data:
                self._enter(BuildPhase.DATA_VALIDATION)
                validation = validate_catalog(catalog)
                state.warnings.extend(validation.warnings)
                catalog = validation.kept

            self._enter(BuildPhase.INTELLIGENCE_PROCESSING)
            builder = RelationshipGraphBuilder(config=self.graph_config, today=self.today)
            raw = await builder.build(catalog)
            state.warnings.extend(builder.warnings)
            graph = RelationshipPostProcessor(self.graph_config).enhance(raw)

            self._enter(BuildPhase.SEARCH_INDEXING)
            search_index = SearchIndexBuilder(self.search_config).build(catalog, graph)

            self._enter(BuildPhase.RECOMMENDATION_BUILDING)
            signals = CatalogSignals(catalog, today=self.today)
            tiers = RecommendationEngine(self.recommendation_config, signals).build(graph)

            self._enter(BuildPhase.FINAL_ASSEMBLY)
            artifact = self._assemble(catalog, graph, search_index, tiers)
        except Exception as e:
            failed = state.phase
            state.phase = BuildPhase.ERROR
            diagnostics = {
                "entities_processed": state.processed,
                "elapsed_seconds": self.clock() - state.started if state.started is not None else 0.0,
                "errors": list(state.errors),
                "warnings": list(state.warnings),
            }
            log.error(f"Build failed during {failed.value}: {e}")
            raise BuildError(failed, str(e), diagnostics) from e

        self._enter(BuildPhase.COMPLETED)
        log.info(f"Build completed in {artifact.metadata['buildDuration']:.2f}s")
        return artifact

    def _assemble(
        self,
        catalog: Catalog,
        graph: RelationshipGraph,
        search_index: SearchIndex,
        tiers: RecommendationTiers,
    ) -> BuildArtifact:
        state = self.state
        duration = self.clock() - state.started if state.started is not None else 0.0
        metadata = {
            "version": ARTIFACT_VERSION,
            "entityCounts": entity_counts(catalog),
            "buildDuration": duration,
            "errors": list(state.errors),
            "warnings": list(state.warnings),
            "quality": {
                "errorCount": len(state.errors),
                "warningCount": len(state.warnings),
                "successRate": 1 - len(state.errors) / max(1, state.processed),
            },
            "graph": {
                "connections": sum(1 for _ in graph.iter_connections()),
                "clusters": len(graph.clusters),
            },
            "search": search_index.stats(),
        }
        return BuildArtifact(catalog, graph, search_index, tiers, metadata)
