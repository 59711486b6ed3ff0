"""
Time Conversion Utilities for Lap Telemetry

Handles lap time formatting, millisecond conversion and timestamp parsing.
"""

from datetime import date, datetime
from typing import List, Optional, Sequence

import pandas as pd


NO_TIME = "—"


def lap_time_to_seconds(lap_time: str) -> float:
    """
    Convert lap time string to seconds.

    Args:
        lap_time: Lap time in format 'M:SS.mmm' or 'SS.mmm'
                  Examples: '1:23.456', '83.456'

    Returns:
        Lap time in seconds as float

    Raises:
        ValueError: If format is invalid
    """
    try:
        if ":" in lap_time:
            parts = lap_time.split(":")
            if len(parts) != 2:
                raise ValueError(f"Invalid lap time format: {lap_time}")

            minutes = int(parts[0])
            seconds = float(parts[1])
            return minutes * 60 + seconds

        return float(lap_time)

    except (ValueError, IndexError) as e:
        raise ValueError(f"Invalid lap time format: {lap_time}") from e


def format_lap_time(seconds: Optional[float]) -> str:
    """
    Format a lap time for display.

    Args:
        seconds: Lap time in seconds; None or 0 means no time

    Returns:
        'M:SS.mmm' when at least a minute, 'SS.mmm' otherwise, or an em dash
    """
    if seconds is None or seconds == 0:
        return NO_TIME

    minutes = int(seconds // 60)
    remaining_seconds = seconds % 60
    if minutes > 0:
        return f"{minutes}:{remaining_seconds:06.3f}"
    return f"{remaining_seconds:.3f}"


def timestamp_to_string(value: object) -> str:
    """
    Render a raw timestamp cell as text.

    datetime values become ISO 8601 strings; anything else is str()-ed.
    """
    if value is None:
        return ""
    if isinstance(value, pd.Timestamp):
        return "" if pd.isna(value) else value.isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def parse_epoch_seconds(timestamps: Sequence[Optional[str]]) -> List[Optional[float]]:
    """
    Parse timestamp strings to epoch seconds in one vectorized pass.

    Naive timestamps are read as UTC. Unparseable or empty entries map to None.

    Args:
        timestamps: Raw timestamp strings (None/'' allowed)

    Returns:
        Epoch seconds per input entry, or None
    """
    if not timestamps:
        return []

    series = pd.Series([ts if ts else None for ts in timestamps], dtype="object")
    parsed = pd.to_datetime(series, errors="coerce", utc=True, format="mixed")

    epochs: List[Optional[float]] = []
    for value in parsed:
        if pd.isna(value):
            epochs.append(None)
        else:
            epochs.append(value.timestamp())
    return epochs
