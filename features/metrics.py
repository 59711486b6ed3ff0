"""
Session KPI calculators.

Computes best lap, average pace, consistency, degradation and pit statistics
for any lap subset, plus per-driver / per-stint breakdowns used by dashboards.
Input laps must already be in chronological order.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from app.utils.time_utils import format_lap_time
from data_pipeline.schemas.analysis_schema import (
    DriverStats,
    FilterOptions,
    KPIData,
    LapFilters,
    PitEvent,
    SessionInsights,
    StintStats,
)
from data_pipeline.schemas.lap_schema import SECTOR_LABELS, ParsedLap
from features.utils import clean_laps, lap_times, mean, sample_std, sector_values


DEGRADATION_WINDOW = 10


def compute_kpis(
    laps: Sequence[ParsedLap],
    include_pit_laps: bool = True,
    degradation_window: int = DEGRADATION_WINDOW,
) -> KPIData:
    """
    Compute session KPIs for a lap subset.

    Formula:
        pace_delta   = average_pace - best_lap
        consistency  = sample stddev of clean lap times
        degradation  = mean(last N clean) - mean(first N clean), N = degradation_window

    Lap-time statistics always come from clean laps, while total_laps,
    pit_stops and total_pit_time always cover the whole subset. Pit-lap
    selection belongs to the caller (see ``apply_filters``).

    Args:
        laps: Chronologically ordered laps
        include_pit_laps: Pit-inclusion setting of the view the subset came
            from; it does not change any KPI
        degradation_window: Clean laps averaged at each end

    Returns:
        KPIData; statistics undefined for the input are None
    """
    times = lap_times(clean_laps(laps))
    pit_laps = [lap for lap in laps if lap.pit_type != ""]

    best_lap = float(times.min()) if len(times) else None
    average_pace = mean(times)

    degradation = None
    if len(times) >= degradation_window:
        degradation = float(times[-degradation_window:].mean() - times[:degradation_window].mean())

    return KPIData(
        best_lap=best_lap,
        average_pace=average_pace,
        consistency=sample_std(times),
        pace_delta=average_pace - best_lap if best_lap is not None else None,
        degradation=degradation,
        total_laps=len(laps),
        pit_stops=len(pit_laps),
        total_pit_time=float(sum(lap.pit_time_s or 0.0 for lap in pit_laps)),
    )


def _group_by(laps: Sequence[ParsedLap], attribute: str) -> Dict[object, List[ParsedLap]]:
    """Laps grouped by an attribute, groups in first-seen order."""
    groups: Dict[object, List[ParsedLap]] = {}
    for lap in laps:
        groups.setdefault(getattr(lap, attribute), []).append(lap)
    return groups


def compute_driver_stats(laps: Sequence[ParsedLap]) -> List[DriverStats]:
    """Best, average and consistency of clean laps per driver (first-seen order)."""
    stats = []
    for driver, driver_laps in _group_by(laps, "driver").items():
        times = lap_times(clean_laps(driver_laps))
        stats.append(
            DriverStats(
                driver=driver,
                best_lap=float(times.min()) if len(times) else 0.0,
                average_pace=mean(times) or 0.0,
                consistency=sample_std(times) or 0.0,
            )
        )
    return stats


def compute_stint_stats(laps: Sequence[ParsedLap]) -> List[StintStats]:
    """Average clean pace, lap count and pit presence per stint, stints ascending."""
    groups = _group_by(laps, "stint")
    stats = []
    for stint in sorted(groups):
        stint_laps = groups[stint]
        stats.append(
            StintStats(
                stint=stint,
                avg_pace=mean(lap_times(clean_laps(stint_laps))) or 0.0,
                lap_count=len(stint_laps),
                has_pit=any(lap.pit_type != "" for lap in stint_laps),
            )
        )
    return stats


def extract_pit_events(laps: Sequence[ParsedLap]) -> List[PitEvent]:
    return [
        PitEvent(
            lap_number=lap.lap_number,
            pit_type=lap.pit_type,
            pit_time_s=lap.pit_time_s,
            timestamp=lap.timestamp,
            driver=lap.driver,
        )
        for lap in laps
        if lap.pit_type != ""
    ]


def compute_insights(laps: Sequence[ParsedLap], min_samples: int = 3) -> SessionInsights:
    """
    Session highlights.

    - Most consistent driver: lowest clean-lap stddev among drivers with
      at least ``min_samples`` clean laps (first driver wins ties)
    - Highest variance sector: largest stddev among sectors with at least
      ``min_samples`` clean-lap values
    """
    most_consistent: Optional[str] = None
    best_spread = np.inf
    for driver, driver_laps in _group_by(laps, "driver").items():
        times = lap_times(clean_laps(driver_laps))
        if len(times) >= min_samples:
            spread = sample_std(times)
            if spread < best_spread:
                best_spread, most_consistent = spread, driver

    highest_variance: Optional[str] = None
    max_spread = -1.0
    clean = clean_laps(laps)
    for index, label in enumerate(SECTOR_LABELS):
        values = sector_values(clean, index)
        if len(values) >= min_samples:
            spread = sample_std(values)
            if spread > max_spread:
                max_spread, highest_variance = spread, label

    return SessionInsights(
        most_consistent_driver=most_consistent,
        highest_variance_sector=highest_variance,
    )


def get_filter_options(laps: Sequence[ParsedLap]) -> FilterOptions:
    """Sorted distinct non-empty tracks, sessions and drivers, plus stints."""
    return FilterOptions(
        tracks=sorted({lap.track for lap in laps if lap.track}),
        sessions=sorted({lap.session_id for lap in laps if lap.session_id}),
        drivers=sorted({lap.driver for lap in laps if lap.driver}),
        stints=sorted({lap.stint for lap in laps}),
    )


def apply_filters(laps: Sequence[ParsedLap], filters: LapFilters) -> List[ParsedLap]:
    """Dashboard filter; empty selections do not restrict."""
    drivers = set(filters.drivers)
    stints = set(filters.stints)

    def keep(lap: ParsedLap) -> bool:
        if filters.track and lap.track != filters.track:
            return False
        if filters.session_id and lap.session_id != filters.session_id:
            return False
        if drivers and lap.driver not in drivers:
            return False
        if stints and lap.stint not in stints:
            return False
        if not filters.include_pit_laps and lap.pit_type != "":
            return False
        return True

    return [lap for lap in laps if keep(lap)]


def kpi_summary(kpis: KPIData) -> Dict[str, str]:
    """Display strings for the time-valued KPIs."""
    return {
        "best_lap": format_lap_time(kpis.best_lap),
        "average_pace": format_lap_time(kpis.average_pace),
        "pace_delta": f"{kpis.pace_delta:+.3f}s" if kpis.pace_delta is not None else format_lap_time(None),
        "consistency": f"{kpis.consistency:.3f}s" if kpis.consistency is not None else format_lap_time(None),
        "total_pit_time": format_lap_time(kpis.total_pit_time),
    }
