#!/usr/bin/env python
"""
CLI tool for analyzing lap telemetry sessions.

Supports:
- Analysis of delimited lap exports (comma, semicolon or tab separated)
- Race catalog listing and per-race analysis from exported database tables
- Optional driver/entity scope for dual-context KPIs

Database tables are read from a JSON file mapping table name to a list of
row objects.

Usage:
    python scripts/analyze_session.py analyze laps.csv
    python scripts/analyze_session.py analyze laps.csv --driver "A. Driver" --exclude-pits
    python scripts/analyze_session.py catalog tables.json
    python scripts/analyze_session.py race tables.json --race-id 12
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.utils.logger import get_logger, setup_logging_from_settings
from config.settings import get_settings
from data_pipeline.base.base_ingestor import IngestionResult
from data_pipeline.orchestrator import IngestionOrchestrator
from data_pipeline.schemas.analysis_schema import AnalysisScope, LapFilters
from features import (
    apply_filters,
    apply_scope,
    build_session_cache,
    compute_kpis,
    compute_rolling_pace,
    compute_track_benchmark,
    compute_user_gap_metrics,
    interpret_all_kpis,
    lttb_downsample,
    scoped_comparison,
    target_points_for_width,
)


logger = get_logger(__name__)

DEFAULT_CHART_WIDTH = 1200


def rolling_pace_series(laps, chart_width: int) -> List[Dict[str, Any]]:
    """Rolling pace points reduced to what a chart of ``chart_width`` pixels can show."""
    settings = get_settings()
    points = compute_rolling_pace(
        laps,
        window_seconds=settings.cache.rolling_window_seconds,
        max_points=settings.cache.rolling_max_points,
    )
    target = target_points_for_width(
        chart_width,
        min_points=settings.downsample.min_points,
        max_points=settings.downsample.max_points,
        pixels_per_point=settings.downsample.pixels_per_point,
    )
    sampled = lttb_downsample(points, target, lambda p: p.elapsed, lambda p: p.pace)
    return [point.to_dict() for point in sampled]


def summarize(
    result: IngestionResult,
    scope: AnalysisScope,
    include_pit_laps: bool,
    chart_width: int = DEFAULT_CHART_WIDTH,
) -> Dict[str, Any]:
    """Build the JSON summary of one ingested dataset."""
    settings = get_settings()
    laps = apply_filters(result.records, LapFilters(include_pit_laps=include_pit_laps))
    kpis = compute_kpis(
        laps,
        include_pit_laps=include_pit_laps,
        degradation_window=settings.metrics.degradation_window,
    )
    benchmark = compute_track_benchmark(result.records)
    cache = build_session_cache(laps)

    summary = {
        "meta": result.meta.model_dump(mode="json") if result.meta else None,
        "qa": result.qa_report.to_dict() if result.qa_report else None,
        "kpis": kpis.model_dump(),
        "interpretation": {
            key: value.model_dump(mode="json") for key, value in interpret_all_kpis(kpis).items()
        },
        "benchmark": benchmark.model_dump(),
        "cache": {
            "total_laps": cache.total_laps,
            "total_valid_laps": cache.total_valid_laps,
            "global_best": cache.global_best,
            "drivers": sorted(cache.drivers),
        },
        "rolling_pace": rolling_pace_series(laps, chart_width),
    }

    comparison = scoped_comparison(laps, scope, include_pit_laps=include_pit_laps)
    if comparison is not None:
        summary["scope"] = comparison.model_dump()
        summary["gap"] = compute_user_gap_metrics(apply_scope(laps, scope), benchmark).model_dump()

    return summary


def emit(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def load_tables(path: str) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        tables = json.load(handle)
    if not isinstance(tables, dict):
        raise click.BadParameter("expected an object mapping table names to row lists")
    return tables


def fail(result: IngestionResult) -> None:
    click.echo(f"❌ Ingestion failed: {'; '.join(result.errors)}", err=True)
    raise click.Abort()


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def cli(verbose: bool):
    """StintLab session analysis CLI"""
    settings = get_settings()
    setup_logging_from_settings(settings.logging)
    if verbose:
        import logging
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command('analyze')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--driver', '-d', 'drivers', multiple=True, help='Scope to driver(s)')
@click.option('--entity', '-e', 'entities', multiple=True, help='Scope to car model(s) or team number(s)')
@click.option('--lane', '-l', 'lanes', multiple=True, type=int, help='Scope to lane(s)')
@click.option('--exclude-pits', is_flag=True, help='Drop pit laps from the analyzed laps')
@click.option('--chart-width', type=int, default=DEFAULT_CHART_WIDTH, show_default=True, help='Chart width in pixels for the rolling pace series')
def analyze(
    path: str,
    drivers: tuple,
    entities: tuple,
    lanes: tuple,
    exclude_pits: bool,
    chart_width: int,
):
    """
    Analyze a delimited lap export.

    Examples:
        analyze session.csv
        analyze session.csv -d "A. Driver" -d "B. Driver"
    """
    content = Path(path).read_text(encoding="utf-8-sig")
    result = IngestionOrchestrator().ingest_delimited(content)
    if not result.success:
        fail(result)

    scope = AnalysisScope.from_selection(entity_ids=entities, drivers=drivers, track_positions=lanes)
    emit(summarize(result, scope, include_pit_laps=not exclude_pits, chart_width=chart_width))


@cli.command('catalog')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
def catalog(path: str):
    """List races found in exported database tables (newest first)."""
    entries = IngestionOrchestrator().scan_race_catalog(load_tables(path))
    emit([entry.model_dump(mode="json") for entry in entries])


@cli.command('race')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--race-id', '-r', required=True, help='Race identifier')
@click.option('--driver', '-d', 'drivers', multiple=True, help='Only ingest these drivers')
@click.option('--best-laps-only', is_flag=True, help='Keep each driver\'s best lap only')
@click.option('--time-unit', type=click.Choice(['ms', 's', 'auto']), help='Override database time unit')
@click.option('--exclude-pits', is_flag=True, help='Drop pit laps from the analyzed laps')
@click.option('--chart-width', type=int, default=DEFAULT_CHART_WIDTH, show_default=True, help='Chart width in pixels for the rolling pace series')
def race(
    path: str,
    race_id: str,
    drivers: tuple,
    best_laps_only: bool,
    time_unit: Optional[str],
    exclude_pits: bool,
    chart_width: int,
):
    """
    Analyze one race from exported database tables.

    Examples:
        race tables.json -r 12
        race tables.json -r 12 --time-unit auto
    """
    config = {"race_database": {"time_unit": time_unit}} if time_unit else None
    orchestrator = IngestionOrchestrator(config)
    result = orchestrator.ingest_race(
        load_tables(path),
        race_id,
        drivers=list(drivers) or None,
        best_laps_only=best_laps_only,
    )
    if not result.success:
        fail(result)

    emit(summarize(result, AnalysisScope(), include_pit_laps=not exclude_pits, chart_width=chart_width))


if __name__ == '__main__':
    cli()
