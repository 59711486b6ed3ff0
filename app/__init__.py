"""
StintLab Engine - Core Application Package
"""

__version__ = "0.1.0"
__author__ = "StintLab Team"

# Package-level imports for common utilities
from app.utils.logger import get_logger
from app.utils.time_utils import format_lap_time, lap_time_to_seconds

__all__ = [
    "get_logger",
    "format_lap_time",
    "lap_time_to_seconds",
]
