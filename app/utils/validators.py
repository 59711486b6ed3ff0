"""
Data Validation Utilities for Lap Telemetry Quality Checks

Provides lenient cell parsers for raw telemetry exports and the robust
statistics used to flag anomalous lap times.
"""

from typing import Iterable, List, Optional, Tuple
import math
import re

import numpy as np


# Leading decimal number, optional exponent. Trailing garbage is ignored.
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^[+-]?\d+")


def is_blank(value: object) -> bool:
    """Return True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    return isinstance(value, str) and not value.strip()


def parse_float(value: object) -> Optional[float]:
    """
    Parse a numeric cell without locale handling.

    Accepts the longest leading decimal number of the cell ('12.5s' -> 12.5,
    '1,5' -> 1.0). Returns None when nothing numeric can be read.

    Args:
        value: Raw cell (string, number or None)

    Returns:
        Parsed float, or None
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None

    match = _FLOAT_PREFIX.match(str(value).strip())
    if match is None:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def parse_int(value: object) -> Optional[int]:
    """
    Parse an integer cell, truncating any fractional part ('3.7' -> 3).

    Args:
        value: Raw cell (string, number or None)

    Returns:
        Parsed int, or None
    """
    if is_blank(value):
        return None
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return int(value) if math.isfinite(value) else None

    match = _INT_PREFIX.match(str(value).strip())
    if match is None:
        return None
    return int(match.group(0))


def clean_text(value: object) -> str:
    """Trimmed string form of a cell; blanks become ''."""
    if is_blank(value):
        return ""
    return str(value).strip()


def median_of_sorted(values: List[float]) -> float:
    """Middle element of an ascending list (upper middle for even sizes)."""
    return values[len(values) // 2]


def robust_bounds(
    values: Iterable[float],
    k: float = 4.0,
    min_samples: int = 5,
    mad_floor: float = 1.0,
) -> Optional[Tuple[float, float]]:
    """
    Compute outlier bounds as median +/- k * MAD.

    Args:
        values: Strictly positive lap times
        k: Band half-width in MAD units
        min_samples: Minimum sample count, below which no bounds exist
        mad_floor: MAD substituted when the measured MAD is zero

    Returns:
        (lower, upper) tuple, or None when there are too few samples
    """
    ordered = sorted(values)
    if len(ordered) < min_samples:
        return None

    median = median_of_sorted(ordered)
    deviations = sorted(abs(v - median) for v in ordered)
    mad = median_of_sorted(deviations) or mad_floor

    return median - k * mad, median + k * mad


def validate_sector_times(
    sector_1: Optional[float],
    sector_2: Optional[float],
    sector_3: Optional[float],
    lap_time: Optional[float] = None,
    tolerance: float = 0.1,
) -> Tuple[bool, Optional[str]]:
    """
    Check that sector times are positive and roughly sum to the lap time.

    Returns:
        Tuple of (is_valid, error_message)
    """
    sectors = [sector_1, sector_2, sector_3]
    if any(s is None for s in sectors):
        return False, "Incomplete sector data"

    if any(s <= 0 for s in sectors):
        return False, "Sector times must be positive"

    if lap_time is not None and lap_time > 0:
        sector_sum = sector_1 + sector_2 + sector_3
        if abs(lap_time - sector_sum) > tolerance:
            return False, f"Sector sum ({sector_sum:.3f}s) doesn't match lap time ({lap_time:.3f}s)"

    return True, None
