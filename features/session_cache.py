"""
Session cache for large endurance datasets.

Pre-aggregates per-stint and per-driver rollups in a single pass so views over
100k+ laps do not rescan the dataset on every interaction. The cache is
disposable: rebuild it whenever the canonical dataset changes, never patch it.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from app.utils.logger import get_logger
from data_pipeline.schemas.lap_schema import LapStatus, ValidatedLap


logger = get_logger(__name__)

ROLLING_WINDOW_SECONDS = 300.0
ROLLING_MAX_POINTS = 500


@dataclass
class StintCache:
    """Rollup of one (driver, stint)."""

    driver: str
    stint: int
    lap_count: int = 0
    valid_lap_count: int = 0
    best_lap: Optional[float] = None
    average_pace: Optional[float] = None
    total_time: float = 0.0
    start_elapsed: Optional[float] = None
    end_elapsed: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DriverCache:
    """Rollup of one driver across stints."""

    driver: str
    lap_count: int = 0
    valid_lap_count: int = 0
    best_lap: Optional[float] = None
    average_pace: Optional[float] = None
    stints: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionCache:
    """All rollups of one canonical dataset."""

    stints: Dict[str, StintCache] = field(default_factory=dict)
    drivers: Dict[str, DriverCache] = field(default_factory=dict)
    total_laps: int = 0
    total_valid_laps: int = 0
    global_best: Optional[float] = None

    def stint(self, driver: str, stint: int) -> Optional[StintCache]:
        return self.stints.get(stint_cache_key(driver, stint))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stints": {key: cache.to_dict() for key, cache in self.stints.items()},
            "drivers": {key: cache.to_dict() for key, cache in self.drivers.items()},
            "total_laps": self.total_laps,
            "total_valid_laps": self.total_valid_laps,
            "global_best": self.global_best,
        }


@dataclass
class RollingPacePoint:
    elapsed: float
    pace: float
    lap_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def stint_cache_key(driver: str, stint: int) -> str:
    return f"{driver}__{stint}"


def _counts_for_pace(lap: ValidatedLap) -> bool:
    return lap.lap_status == LapStatus.VALID and lap.lap_time_s > 0


def build_session_cache(laps: Sequence[ValidatedLap]) -> SessionCache:
    """
    Build all rollups in one pass over the dataset.

    Stint averages are maintained incrementally. Driver averages are finalized
    afterwards with one scan of the dataset per driver, restricted to that
    driver's valid positive-time laps.

    Args:
        laps: Canonical validated laps

    Returns:
        SessionCache
    """
    cache = SessionCache()

    for lap in laps:
        cache.total_laps += 1
        is_valid = lap.lap_status == LapStatus.VALID
        if is_valid:
            cache.total_valid_laps += 1
        counts = is_valid and lap.lap_time_s > 0
        elapsed = lap.session_elapsed_s

        key = stint_cache_key(lap.driver, lap.stint)
        stint = cache.stints.get(key)
        if stint is None:
            stint = StintCache(driver=lap.driver, stint=lap.stint)
            cache.stints[key] = stint
        stint.lap_count += 1
        if counts:
            stint.valid_lap_count += 1
            stint.total_time += lap.lap_time_s
            if stint.best_lap is None or lap.lap_time_s < stint.best_lap:
                stint.best_lap = lap.lap_time_s
            stint.average_pace = stint.total_time / stint.valid_lap_count
        if elapsed is not None:
            if stint.start_elapsed is None or elapsed < stint.start_elapsed:
                stint.start_elapsed = elapsed
            if stint.end_elapsed is None or elapsed > stint.end_elapsed:
                stint.end_elapsed = elapsed

        driver = cache.drivers.get(lap.driver)
        if driver is None:
            driver = DriverCache(driver=lap.driver)
            cache.drivers[lap.driver] = driver
        driver.lap_count += 1
        if counts:
            driver.valid_lap_count += 1
            if driver.best_lap is None or lap.lap_time_s < driver.best_lap:
                driver.best_lap = lap.lap_time_s
        if lap.stint not in driver.stints:
            driver.stints.append(lap.stint)

        if counts and (cache.global_best is None or lap.lap_time_s < cache.global_best):
            cache.global_best = lap.lap_time_s

    # Second scan per driver for the final average
    for driver in cache.drivers.values():
        if driver.valid_lap_count > 0:
            total = sum(
                lap.lap_time_s for lap in laps
                if lap.driver == driver.driver and _counts_for_pace(lap)
            )
            driver.average_pace = total / driver.valid_lap_count

    logger.debug(
        f"Session cache built: {cache.total_laps} laps, {len(cache.stints)} stints, "
        f"{len(cache.drivers)} drivers"
    )
    return cache


def decimate(points: List[Any], max_points: int) -> List[Any]:
    """
    Keep ``max_points`` points at a fixed stride, always including the last one.

    Index i of the output is point floor(i * (n - 1) / (max_points - 1)).
    """
    n = len(points)
    if n <= max_points:
        return points
    if max_points < 2:
        return [points[-1]]
    return [points[(i * (n - 1)) // (max_points - 1)] for i in range(max_points)]


def compute_rolling_pace(
    laps: Sequence[ValidatedLap],
    window_seconds: float = ROLLING_WINDOW_SECONDS,
    max_points: int = ROLLING_MAX_POINTS,
) -> List[RollingPacePoint]:
    """
    Rolling mean pace over a sliding elapsed-time window.

    Only valid, positive-time laps with a session-elapsed value are used,
    ordered by elapsed time. For each lap the window holds every earlier lap
    whose elapsed time is within ``window_seconds`` of it. The window start
    only moves forward, so the whole series is O(n).

    Args:
        laps: Canonical validated laps
        window_seconds: Window duration
        max_points: Maximum series length (decimated beyond it)

    Returns:
        One RollingPacePoint per eligible lap (or max_points after decimation)
    """
    series = sorted(
        (lap for lap in laps if _counts_for_pace(lap) and lap.session_elapsed_s is not None),
        key=lambda lap: lap.session_elapsed_s,
    )
    if not series:
        return []

    points: List[RollingPacePoint] = []
    start = 0
    window_sum = 0.0

    for i, lap in enumerate(series):
        window_sum += lap.lap_time_s
        current = lap.session_elapsed_s
        while start < i and current - series[start].session_elapsed_s > window_seconds:
            window_sum -= series[start].lap_time_s
            start += 1
        count = i - start + 1
        points.append(RollingPacePoint(elapsed=current, pace=window_sum / count, lap_count=count))

    return decimate(points, max_points)
