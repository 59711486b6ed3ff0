"""
Track benchmark calculators.

The benchmark is a session-level constant: it is computed from the full,
unscoped canonical dataset and only from valid, non-pit laps.
"""

from typing import List, Optional, Sequence

from data_pipeline.schemas.analysis_schema import TrackBenchmark, UserGapMetrics
from data_pipeline.schemas.lap_schema import SECTOR_LABELS, ValidatedLap
from features.utils import benchmark_laps, lap_times, mean, sector_values


def compute_track_benchmark(laps: Sequence[ValidatedLap]) -> TrackBenchmark:
    """
    Compute the track benchmark.

    Each sector best is taken independently over the laps reporting that
    sector. The theoretical best is the sum of the three sector bests and only
    exists when every sector is reported by at least one lap.

    Args:
        laps: Full canonical dataset (never a scope-reduced subset)

    Returns:
        TrackBenchmark (all None when no lap qualifies)
    """
    eligible = benchmark_laps(laps)
    if not eligible:
        return TrackBenchmark()

    sector_bests: List[Optional[float]] = []
    for index in range(3):
        values = sector_values(eligible, index)
        sector_bests.append(float(values.min()) if len(values) else None)

    has_sector_data = all(best is not None for best in sector_bests)

    return TrackBenchmark(
        track_best_lap=float(lap_times(eligible).min()),
        best_s1=sector_bests[0],
        best_s2=sector_bests[1],
        best_s3=sector_bests[2],
        theoretical_best=sum(sector_bests) if has_sector_data else None,
        has_sector_data=has_sector_data,
    )


def compute_user_gap_metrics(
    laps: Sequence[ValidatedLap],
    benchmark: TrackBenchmark
) -> UserGapMetrics:
    """
    Measure a lap subset against the track benchmark.

    Formula:
        gap_to_track       = user_best - track_best
        gap_to_theoretical = user_avg - theoretical_best
        performance_index  = track_best / user_avg * 100

    The weakest sector (largest mean-minus-best gap) is only reported when the
    benchmark has sector data.
    """
    eligible = benchmark_laps(laps)
    if not eligible or benchmark.track_best_lap is None:
        return UserGapMetrics()

    times = lap_times(eligible)
    user_best = float(times.min())
    user_avg = mean(times)

    weakest: Optional[str] = None
    if benchmark.has_sector_data:
        largest_gap = None
        for index, label in enumerate(SECTOR_LABELS):
            values = sector_values(eligible, index)
            best = benchmark.best_sector(index)
            if len(values) and best is not None:
                gap = float(values.mean()) - best
                if largest_gap is None or gap > largest_gap:
                    largest_gap, weakest = gap, label

    return UserGapMetrics(
        user_best_lap=user_best,
        user_avg_lap=user_avg,
        gap_to_track=user_best - benchmark.track_best_lap,
        gap_to_theoretical=(
            user_avg - benchmark.theoretical_best
            if benchmark.theoretical_best is not None else None
        ),
        performance_index=benchmark.track_best_lap / user_avg * 100,
        weakest_sector=weakest,
    )
