"""
KPI interpretation.

Maps already-computed numbers to a status and a label key for the UI. Nothing
here touches lap data; every function is O(1) over its inputs. Thresholds are
ratios against the session's own average pace so they hold across tracks and
car classes.
"""

from typing import Dict, Optional, Sequence, Tuple

from data_pipeline.schemas.analysis_schema import (
    Interpretation,
    InterpretationStatus,
    KPIData,
)


OK = InterpretationStatus.OK
WARNING = InterpretationStatus.WARNING
CRITICAL = InterpretationStatus.CRITICAL

NO_DATA = "interp_no_data"

# (upper bound inclusive, status, label key); first match wins
PACE_DELTA_BANDS = (
    (0.01, OK, "interp_pace_delta_ok"),
    (0.03, WARNING, "interp_pace_delta_warn"),
)
CONSISTENCY_BANDS = (
    (0.01, OK, "interp_consistency_ok"),
    (0.03, WARNING, "interp_consistency_warn"),
)
DEGRADATION_BANDS = (
    (0.01, OK, "interp_degradation_ok"),
    (0.03, WARNING, "interp_degradation_warn"),
)
PIT_RATIO_BANDS = (
    (0.05, OK, "interp_pit_ok"),
    (0.1, WARNING, "interp_pit_warn"),
)
PIT_TIME_BANDS = (
    (0.5, OK, "interp_pit_time_ok"),
    (1.5, WARNING, "interp_pit_time_warn"),
)
SETUP_INDEX_BANDS = (
    (1.01, OK, "setup_perf_excellent"),
    (1.03, OK, "setup_perf_good"),
    (1.06, WARNING, "setup_perf_moderate"),
    (1.10, WARNING, "setup_perf_developing"),
)
SETUP_CONSISTENCY_BANDS = (
    (0.01, OK, "setup_cons_excellent"),
    (0.025, OK, "setup_cons_good"),
    (0.05, WARNING, "setup_cons_moderate"),
)

Band = Tuple[float, InterpretationStatus, str]


def _grade(value: float, bands: Sequence[Band], worst: str) -> Interpretation:
    for upper, status, label_key in bands:
        if value <= upper:
            return Interpretation(status=status, label_key=label_key)
    return Interpretation(status=CRITICAL, label_key=worst)


def _no_data(label_key: str = NO_DATA) -> Interpretation:
    return Interpretation(status=OK, label_key=label_key)


def _has_pace(kpis: KPIData) -> bool:
    return kpis.average_pace is not None and kpis.average_pace != 0


def interpret_pace_delta(kpis: KPIData) -> Interpretation:
    """Pace delta as a fraction of average pace."""
    if kpis.pace_delta is None or not _has_pace(kpis):
        return _no_data()
    return _grade(kpis.pace_delta / kpis.average_pace, PACE_DELTA_BANDS, "interp_pace_delta_crit")


def interpret_consistency(kpis: KPIData) -> Interpretation:
    """Coefficient of variation (stddev / average pace)."""
    if kpis.consistency is None or not _has_pace(kpis):
        return _no_data()
    return _grade(kpis.consistency / kpis.average_pace, CONSISTENCY_BANDS, "interp_consistency_crit")


def interpret_degradation(kpis: KPIData) -> Interpretation:
    if kpis.degradation is None or not _has_pace(kpis):
        return _no_data()
    if kpis.degradation <= 0:
        return Interpretation(status=OK, label_key="interp_degradation_improving")
    return _grade(
        abs(kpis.degradation) / kpis.average_pace,
        DEGRADATION_BANDS,
        "interp_degradation_crit",
    )


def interpret_pit_stops(kpis: KPIData) -> Interpretation:
    """Pit stops relative to total laps."""
    if kpis.total_laps == 0:
        return _no_data()
    if kpis.pit_stops == 0:
        return _no_data("interp_pit_none")
    return _grade(kpis.pit_stops / kpis.total_laps, PIT_RATIO_BANDS, "interp_pit_crit")


def interpret_total_pit_time(kpis: KPIData) -> Interpretation:
    """Average pit duration relative to average lap pace."""
    if kpis.total_pit_time <= 0:
        return _no_data("interp_pit_time_none")
    if kpis.pit_stops == 0:
        return _no_data()
    if kpis.average_pace is None or kpis.average_pace <= 0:
        return _no_data()
    average_pit = kpis.total_pit_time / kpis.pit_stops
    return _grade(average_pit / kpis.average_pace, PIT_TIME_BANDS, "interp_pit_time_crit")


def interpret_all_kpis(kpis: KPIData) -> Dict[str, Interpretation]:
    """
    Interpret every KPI at once.

    Reference KPIs (best lap, average pace, total laps) carry a fixed ``ok``
    explanation.

    Returns:
        Mapping of KPIData field name to Interpretation
    """
    return {
        "best_lap": _no_data("interp_best_lap_ref"),
        "average_pace": _no_data("interp_avg_pace_ref"),
        "pace_delta": interpret_pace_delta(kpis),
        "consistency": interpret_consistency(kpis),
        "degradation": interpret_degradation(kpis),
        "total_laps": _no_data("interp_total_laps_ref"),
        "pit_stops": interpret_pit_stops(kpis),
        "total_pit_time": interpret_total_pit_time(kpis),
    }


def interpret_performance_index(performance_index: Optional[float]) -> Interpretation:
    """User performance index (percent of track best; higher is better)."""
    if performance_index is None:
        return _no_data("bench_interp_no_data")
    if performance_index >= 98:
        return Interpretation(status=OK, label_key="bench_interp_excellent")
    if performance_index >= 95:
        return Interpretation(status=OK, label_key="bench_interp_good")
    if performance_index >= 90:
        return Interpretation(status=WARNING, label_key="bench_interp_moderate")
    if performance_index >= 85:
        return Interpretation(status=WARNING, label_key="bench_interp_developing")
    return Interpretation(status=CRITICAL, label_key="bench_interp_significant_gap")


def interpret_weakest_sector(sector: Optional[str], gap: Optional[float]) -> str:
    """Label key explaining the weakest-sector callout."""
    if not sector or gap is None:
        return "bench_interp_no_sector"
    return "bench_interp_weak_sector"


def interpret_setup_performance_index(performance_index: Optional[float]) -> Interpretation:
    """Setup performance index (ratio to track best; lower is better)."""
    if performance_index is None:
        return _no_data("setup_perf_no_data")
    return _grade(performance_index, SETUP_INDEX_BANDS, "setup_perf_significant_gap")


def interpret_setup_consistency(consistency_score: Optional[float]) -> Interpretation:
    if consistency_score is None:
        return _no_data("setup_cons_no_data")
    return _grade(consistency_score, SETUP_CONSISTENCY_BANDS, "setup_cons_poor")
