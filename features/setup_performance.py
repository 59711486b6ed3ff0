"""
Setup performance normalization.

Expresses a lap subset (e.g. the laps driven on one setup) as ratios against
the track benchmark, so setups can be compared across sessions and tracks.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from app.utils.logger import get_logger
from data_pipeline.schemas.analysis_schema import (
    SectorDeltas,
    SetupPerformanceMetrics,
    TrackBenchmark,
)
from data_pipeline.schemas.lap_schema import SECTOR_LABELS, ValidatedLap
from features.utils import benchmark_laps, lap_times, population_std, sector_values


logger = get_logger(__name__)


def normalize_lap(lap_time: float, track_best: float) -> float:
    """Ratio of a lap to the track best; 1.0 = track pace."""
    return lap_time / track_best


def compute_setup_performance(
    laps: Sequence[ValidatedLap],
    benchmark: TrackBenchmark,
    setup_id: str = "",
) -> SetupPerformanceMetrics:
    """
    Compute benchmark-normalized performance of a lap subset.

    Formula:
        ratio_i           = lap_time_i / track_best_lap
        performance_index = mean(ratio)
        consistency_score = population stddev(ratio)   (N denominator)
        sector_delta_k    = mean(S_k) - best_S_k

    Only valid, non-pit laps are used. Sector deltas exist for sectors with at
    least one reporting lap and a benchmark best. Weakest/strongest are the
    largest/smallest delta; ties resolve to the earlier sector.

    Args:
        laps: Laps linked to the setup
        benchmark: Track benchmark of the session
        setup_id: Identifier echoed in the result

    Returns:
        SetupPerformanceMetrics (empty values when nothing is computable)
    """
    eligible = benchmark_laps(laps)
    if not eligible or benchmark.track_best_lap is None:
        return SetupPerformanceMetrics(setup_id=setup_id)

    ratios = normalize_lap(lap_times(eligible), benchmark.track_best_lap)

    deltas: Dict[str, Optional[float]] = {}
    computed: List[Tuple[str, float]] = []
    for index, label in enumerate(SECTOR_LABELS):
        values = sector_values(eligible, index)
        best = benchmark.best_sector(index)
        delta = None
        if len(values) and best is not None:
            delta = float(values.mean()) - best
            computed.append((label, delta))
        deltas[label.lower()] = delta

    weakest = strongest = None
    if computed:
        weakest = max(computed, key=lambda item: item[1])[0]
        strongest = min(computed, key=lambda item: item[1])[0]

    return SetupPerformanceMetrics(
        setup_id=setup_id,
        lap_count=len(eligible),
        performance_index=float(np.mean(ratios)),
        consistency_score=population_std(ratios),
        sector_deltas=SectorDeltas(**deltas),
        weakest_sector=weakest,
        strongest_sector=strongest,
    )


def compare_setups(
    laps_by_setup: Dict[str, Sequence[ValidatedLap]],
    benchmark: TrackBenchmark,
) -> List[SetupPerformanceMetrics]:
    """
    Compute and rank several setups against one benchmark.

    Returns:
        Metrics ordered by performance index ascending (best first); setups
        without a computable index come last in input order
    """
    results = [
        compute_setup_performance(laps, benchmark, setup_id=setup_id)
        for setup_id, laps in laps_by_setup.items()
    ]
    ranked = sorted(
        results,
        key=lambda m: (m.performance_index is None, m.performance_index or 0.0),
    )

    logger.info(
        f"Compared {len(ranked)} setups",
        extra={"extra_data": {
            "ranking": [m.setup_id for m in ranked],
            "track_best_lap": benchmark.track_best_lap,
        }},
    )
    return ranked
