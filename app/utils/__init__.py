"""
Utilities Module - Shared helper functions for the StintLab engine
"""

from app.utils.logger import get_logger, setup_logging, setup_logging_from_settings
from app.utils.time_utils import (
    format_lap_time,
    lap_time_to_seconds,
    parse_epoch_seconds,
    timestamp_to_string,
)
from app.utils.validators import (
    clean_text,
    is_blank,
    parse_float,
    parse_int,
    robust_bounds,
    validate_sector_times,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_settings",
    "format_lap_time",
    "lap_time_to_seconds",
    "parse_epoch_seconds",
    "timestamp_to_string",
    "clean_text",
    "is_blank",
    "parse_float",
    "parse_int",
    "robust_bounds",
    "validate_sector_times",
]
