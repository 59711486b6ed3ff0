"""
Sort-Key Assigner - chronological ordering of parsed laps

Key precedence per lap:
    1. session-elapsed seconds (when present and >= 0)
    2. timestamp as epoch seconds (when parseable)
    3. original row index
"""

from typing import List, Optional, Sequence

from app.utils.time_utils import parse_epoch_seconds
from data_pipeline.schemas.lap_schema import KeyedLap, ParsedLap


_PARSED_FIELDS = set(ParsedLap.model_fields)


def resolve_sort_key(lap: ParsedLap, timestamp_epoch: Optional[float] = None) -> float:
    """Sort key of one lap given its pre-parsed timestamp."""
    if lap.session_elapsed_s is not None and lap.session_elapsed_s >= 0:
        return float(lap.session_elapsed_s)
    if timestamp_epoch is not None:
        return timestamp_epoch
    return float(lap.row_index)


def assign_sort_keys(laps: Sequence[ParsedLap]) -> List[KeyedLap]:
    """
    Key every lap and return them in ascending key order.

    The sort is stable: laps sharing a key keep their input order. Input laps
    are not modified; derived fields from earlier passes are discarded.

    Args:
        laps: Parsed laps in input order

    Returns:
        New KeyedLap instances sorted by sort_key
    """
    epochs = parse_epoch_seconds([lap.timestamp for lap in laps])
    keyed = [
        KeyedLap(
            **lap.model_dump(include=_PARSED_FIELDS),
            sort_key=resolve_sort_key(lap, epoch),
        )
        for lap, epoch in zip(laps, epochs)
    ]
    keyed.sort(key=lambda lap: lap.sort_key)
    return keyed
