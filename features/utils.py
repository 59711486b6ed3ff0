"""
Utility functions for lap statistics.

Provides the small numeric helpers and lap selectors shared by the metrics,
benchmark, setup-performance and cache modules.
"""

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from data_pipeline.schemas.lap_schema import LapStatus, ParsedLap, ValidatedLap


def mean(values: Union[Sequence[float], np.ndarray]) -> Optional[float]:
    """
    Arithmetic mean, or None for an empty input.

    Example:
        >>> mean([30.0, 31.0])
        30.5
    """
    if len(values) == 0:
        return None
    return float(np.mean(values))


def sample_std(values: Union[Sequence[float], np.ndarray]) -> Optional[float]:
    """
    Sample standard deviation (N-1 denominator).

    Formula:
        s = sqrt(Σ(x_i - x̄)² / (N - 1))

    Returns:
        Standard deviation, or None with fewer than 2 values

    Example:
        >>> round(sample_std([30.0, 31.0]), 3)
        0.707
    """
    if len(values) < 2:
        return None
    return float(np.std(values, ddof=1))


def population_std(values: Union[Sequence[float], np.ndarray]) -> Optional[float]:
    """
    Population standard deviation (N denominator).

    Formula:
        σ = sqrt(Σ(x_i - μ)² / N)

    Returns:
        Standard deviation, or None for an empty input
    """
    if len(values) == 0:
        return None
    return float(np.std(values, ddof=0))


def difference(a: Optional[float], b: Optional[float]) -> Optional[float]:
    """a - b, or None when either side is None."""
    if a is None or b is None:
        return None
    return a - b


def clean_laps(laps: Iterable[ParsedLap]) -> List[ParsedLap]:
    return [lap for lap in laps if lap.pit_type == ""]


def benchmark_laps(laps: Iterable[ValidatedLap]) -> List[ValidatedLap]:
    """Laps eligible for benchmark statistics: status valid and no pit marker."""
    return [
        lap for lap in laps
        if lap.lap_status == LapStatus.VALID and lap.pit_type == ""
    ]


def valid_laps_only(laps: Iterable[ValidatedLap]) -> List[ValidatedLap]:
    """Laps with status valid (suspect and invalid laps removed)."""
    return [lap for lap in laps if lap.lap_status == LapStatus.VALID]


def lap_times(laps: Iterable[ParsedLap]) -> np.ndarray:
    return np.fromiter((lap.lap_time_s for lap in laps), dtype=float)


def sector_values(laps: Iterable[ParsedLap], index: int) -> np.ndarray:
    """Reported values of one sector (zero-based index), absent sectors skipped."""
    values = (lap.sector(index) for lap in laps)
    return np.fromiter((v for v in values if v is not None), dtype=float)
