"""
StintLab Engine - Analysis Module

Pure calculators over the canonical lap dataset produced by data_pipeline.

Architecture:
    canonical laps → scope view → KPIs / benchmark / setup metrics → interpretation

Main Components:
    - metrics: session KPIs, driver/stint stats, pit events, insights
    - scope: zero-copy scope views and dual-context KPIs
    - benchmark: track benchmark and user gap metrics
    - setup_performance: benchmark-normalized setup comparison
    - session_cache: per-stint/per-driver rollups and rolling pace
    - downsample: LTTB chart downsampling
    - interpretation: status + label key per metric

Usage Example:
    from features import compute_kpis, compute_track_benchmark

    kpis = compute_kpis(result.records)
    benchmark = compute_track_benchmark(result.records)
"""

from features.metrics import (
    compute_kpis,
    compute_driver_stats,
    compute_stint_stats,
    extract_pit_events,
    compute_insights,
    get_filter_options,
    apply_filters,
    kpi_summary,
)
from features.scope import (
    ScopedLaps,
    apply_scope,
    get_scope_options,
    compute_dual_context_kpis,
    scoped_comparison,
)
from features.benchmark import compute_track_benchmark, compute_user_gap_metrics
from features.setup_performance import (
    normalize_lap,
    compute_setup_performance,
    compare_setups,
)
from features.session_cache import (
    SessionCache,
    StintCache,
    DriverCache,
    RollingPacePoint,
    build_session_cache,
    compute_rolling_pace,
)
from features.downsample import lttb_downsample, target_points_for_width
from features.interpretation import (
    interpret_pace_delta,
    interpret_consistency,
    interpret_degradation,
    interpret_pit_stops,
    interpret_total_pit_time,
    interpret_all_kpis,
    interpret_performance_index,
    interpret_setup_performance_index,
    interpret_setup_consistency,
)

# Utilities
from features import utils
from features.utils import valid_laps_only


__all__ = [
    # Metrics
    'compute_kpis',
    'compute_driver_stats',
    'compute_stint_stats',
    'extract_pit_events',
    'compute_insights',
    'get_filter_options',
    'apply_filters',
    'kpi_summary',

    # Scope
    'ScopedLaps',
    'apply_scope',
    'get_scope_options',
    'compute_dual_context_kpis',
    'scoped_comparison',

    # Benchmark & setup
    'compute_track_benchmark',
    'compute_user_gap_metrics',
    'normalize_lap',
    'compute_setup_performance',
    'compare_setups',

    # Cache & charts
    'SessionCache',
    'StintCache',
    'DriverCache',
    'RollingPacePoint',
    'build_session_cache',
    'compute_rolling_pace',
    'lttb_downsample',
    'target_points_for_width',

    # Interpretation
    'interpret_pace_delta',
    'interpret_consistency',
    'interpret_degradation',
    'interpret_pit_stops',
    'interpret_total_pit_time',
    'interpret_all_kpis',
    'interpret_performance_index',
    'interpret_setup_performance_index',
    'interpret_setup_consistency',

    # Utilities
    'utils',
    'valid_laps_only',
]


__version__ = '1.0.0'
