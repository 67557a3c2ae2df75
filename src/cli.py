"""CLI for entity-intel."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click

from .builder.config import DEFAULT_BUILD_CONFIG, ConfigError, load_build_config
from .builder.database import BuildArtifact, BuildError, DatabaseBuilder
from .entities.model import Catalog, catalog_from_records
from .graph.builder import RelationshipGraphBuilder
from .graph.diagnostics import (
    analyze_relationship_patterns,
    find_isolated,
    graph_stats,
    save_graph,
    validate_relationships,
)
from .graph.postprocess import RelationshipPostProcessor
from .graph.types import RelationshipGraph
from .recommendations.config import TIERS
from .recommendations.engine import RecommendationEngine, recommendations_from_record
from .recommendations.signals import CatalogSignals
from .search.index import SearchIndexBuilder


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log build phases and progress")
def cli(verbose: bool):
    """Entity Intel - relationship graph, search and recommendations for a content catalog."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        click.echo(f"Error: {path} is not valid JSON: {e}", err=True)
        raise SystemExit(1)


def _catalog(data: Any) -> Catalog:
    if isinstance(data, dict) and "entities" in data:
        data = data["entities"]
    try:
        return catalog_from_records(data)
    except (KeyError, TypeError, ValueError) as e:
        click.echo(f"Error: invalid catalog record: {e}", err=True)
        raise SystemExit(1)


def _enhanced_graph(catalog: Catalog) -> RelationshipGraph:
    raw = asyncio.run(RelationshipGraphBuilder().build(catalog))
    return RelationshipPostProcessor().enhance(raw)


def _write_artifact(artifact: BuildArtifact, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(artifact.to_record(), f, indent=2, ensure_ascii=False, default=str)

    click.echo("\nBuild Complete!")
    click.echo(str(artifact.report()))
    click.echo(f"File: {output}")

    warnings = artifact.metadata["warnings"]
    if warnings:
        click.echo("\nWarnings:")
        for warning in warnings[:20]:
            click.echo(f"  - {warning}")
        if len(warnings) > 20:
            click.echo(f"  ... and {len(warnings) - 20} more")


def _run_build(coro) -> BuildArtifact:
    try:
        return asyncio.run(coro)
    except BuildError as e:
        click.echo(f"Error: build failed during {e.phase.value}: {e.message}", err=True)
        click.echo(f"Entities processed: {e.diagnostics['entities_processed']}", err=True)
        raise SystemExit(1)


@cli.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default="data/intelligence.json")
def build(config_path: Path, output: Path):
    """Fetch entities from TMDb and build the full artifact."""
    try:
        config = load_build_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not config.resolved_api_key():
        click.echo("Error: no API key; set TMDB_API_KEY or api_key in the config", err=True)
        raise SystemExit(1)

    click.echo(f"Building from provider: {config_path} -> {output}")
    builder = DatabaseBuilder(config)
    _write_artifact(_run_build(builder.build()), output)


@cli.command("build-catalog")
@click.argument("catalog_path", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default="data/intelligence.json")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), default=None)
def build_catalog(catalog_path: Path, output: Path, config_path: Path | None):
    """Build the artifact from an already fetched catalog JSON file."""
    config = DEFAULT_BUILD_CONFIG
    if config_path is not None:
        try:
            config = load_build_config(config_path)
        except ConfigError as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)

    catalog = _catalog(_read_json(catalog_path))
    click.echo(f"Building from catalog: {catalog_path} ({len(catalog)} entities) -> {output}")
    builder = DatabaseBuilder(config)
    _write_artifact(_run_build(builder.build_from_catalog(catalog)), output)


@cli.command()
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.argument("entity_id", type=str)
@click.option("--tier", type=click.Choice(TIERS), default="quick", help="Recommendation tier")
@click.option("--category", default=None, help="Category for the category tier")
@click.option("--limit", "-n", type=int, default=10, help="Number of results")
def recommend(source: Path, entity_id: str, tier: str, category: str | None, limit: int):
    """Show recommendations from a built artifact or a raw catalog."""
    data = _read_json(source)
    if tier == "category" and not category:
        click.echo("Error: --category is required for the category tier", err=True)
        raise SystemExit(1)

    if isinstance(data, dict) and "recommendationEngine" in data:
        names = {key: record.get("name", key) for key, record in data.get("entities", {}).items()}
        if entity_id not in names:
            click.echo(f"Error: unknown entity {entity_id}", err=True)
            raise SystemExit(1)
        results = recommendations_from_record(data["recommendationEngine"], entity_id, tier, category, limit)
    else:
        catalog = _catalog(data)
        if entity_id not in catalog:
            click.echo(f"Error: unknown entity {entity_id}", err=True)
            raise SystemExit(1)
        names = {key: entity.name for key, entity in catalog.items()}
        engine = RecommendationEngine(signals=CatalogSignals(catalog))
        engine.build(_enhanced_graph(catalog))
        results = [r.to_record() for r in engine.get_recommendations(entity_id, tier, category, limit)]

    click.echo(f"{tier.capitalize()} recommendations for {names.get(entity_id, entity_id)}:\n")
    if not results:
        click.echo("No recommendations.")
        return
    for i, r in enumerate(results, 1):
        click.echo(f"{i}. [{r['score']:.3f}] {names.get(r['id'], r['id'])} ({r['type']})")
        if r.get("reason"):
            click.echo(f"   {r['reason']}")


@cli.command()
@click.argument("catalog_path", type=click.Path(exists=True, path_type=Path))
@click.argument("query", type=str)
@click.option("--limit", "-n", type=int, default=10, help="Number of results")
def search(catalog_path: Path, query: str, limit: int):
    """Search a catalog by term, tag, fuzzy match and query intent."""
    catalog = _catalog(_read_json(catalog_path))
    index = SearchIndexBuilder().build(catalog, _enhanced_graph(catalog))

    click.echo(f"Searching for: {query}")
    analysis = index.analyze(query)
    if analysis.primary is not None:
        click.echo(f"Intent: {analysis.primary.name} ({analysis.confidence:.2f}), sorted by {analysis.sort_order}")
        for query_filter in analysis.filters:
            click.echo(f"  filter {query_filter.label} x{query_filter.boost}")
    hits = index.search(query, limit=limit)
    click.echo(f"\nFound {len(hits)} results:\n")
    for i, hit in enumerate(hits, 1):
        entity = catalog[hit.entity_id]
        click.echo(f"{i}. [{hit.score:.3f}] {entity.name} ({entity.kind.value})")
        click.echo(f"   matched: {', '.join(hit.matched)}")


@cli.command()
@click.argument("catalog_path", type=click.Path(exists=True, path_type=Path))
@click.option("--save", type=click.Path(path_type=Path), default=None, help="Write the graph as node-link JSON")
def diagnose(catalog_path: Path, save: Path | None):
    """Report relationship patterns, isolated entities and validation issues."""
    catalog = _catalog(_read_json(catalog_path))
    graph = _enhanced_graph(catalog)

    click.echo(str(graph_stats(graph)))

    patterns = analyze_relationship_patterns(graph)
    click.echo(f"  Mirrored: {patterns['mirrored_connections']}  Hubs: {patterns['cluster_nodes']}")
    click.echo(f"  Average per entity: {patterns['average_connections']:.2f}")

    isolated = find_isolated(graph)
    click.echo(f"\nIsolated: {len(isolated)}")
    for entity_id in isolated:
        click.echo(f"  - {entity_id}")

    report = validate_relationships(graph)
    click.echo(f"\nValid: {'yes' if report.is_valid else 'no'}")
    for error in report.errors:
        click.echo(f"  ERROR {error}")
    for warning in report.warnings:
        click.echo(f"  WARN  {warning}")

    if save is not None:
        save_graph(graph, save)
        click.echo(f"\nGraph saved: {save}")


if __name__ == "__main__":
    cli()
