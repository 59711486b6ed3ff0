"""
Record Parser - turns normalized raw rows into ParsedLap records

Malformed cells never fail parsing: the lap time degrades to 0 and optional
numeric fields to None. Rows are dropped only by ``should_retain``.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from app.utils.logger import get_logger
from app.utils.time_utils import timestamp_to_string
from app.utils.validators import clean_text, parse_float, parse_int
from data_pipeline.base.column_normalizer import (
    MILLISECOND_FIELDS,
    SECTOR_COLUMNS,
    ColumnMapping,
)
from data_pipeline.base.exceptions import EmptyDatasetError
from data_pipeline.schemas.lap_schema import ParsedLap, SessionMeta


logger = get_logger(__name__)

_PARSED_FIELDS = (
    "session_id", "date", "track", "car_model", "brand", "driver", "stint",
    "lap_number", "lap_time_s", "s1_s", "s2_s", "s3_s", "pit_type",
    "pit_time_s", "timestamp", "lane", "driving_station", "team_number",
    "stint_elapsed_s", "session_elapsed_s",
)


def should_retain(lap_time_s: float, session_elapsed_s: Optional[float]) -> bool:
    """
    Row retention predicate.

    A row is dropped only when it carries no time signal at all: lap time
    exactly 0 and no session-elapsed value.
    """
    return not (lap_time_s == 0 and session_elapsed_s is None)


class RecordParser:
    """
    Parser bound to the column mapping of one table.

    Args:
        mapping: Header mapping produced by the column normalizer
        time_scale: Factor applied to time fields (1/1000 for millisecond exports).
            Defaults to 1/1000 for the alternate dialect, 1 otherwise.
    """

    def __init__(self, mapping: ColumnMapping, time_scale: Optional[float] = None):
        self.mapping = mapping
        self.has_sector_data = mapping.has_sector_data
        if time_scale is None:
            time_scale = 0.001 if mapping.is_pclap else 1.0
        self.time_scale = time_scale

        # Resolve candidate headers once per table, not per row
        self._sources: Dict[str, List[str]] = {
            name: mapping.candidates(name) for name in _PARSED_FIELDS
        }

    def value(self, row: Mapping[str, object], canonical: str) -> Optional[object]:
        """Raw cell for a canonical field: direct name first, then aliases."""
        if canonical in row:
            return row[canonical]
        for original in self._sources.get(canonical, ()):
            if original in row:
                return row[original]
        return None

    def _text(self, row: Mapping[str, object], canonical: str) -> str:
        return clean_text(self.value(row, canonical))

    def _optional_text(self, row: Mapping[str, object], canonical: str) -> Optional[str]:
        return self._text(row, canonical) or None

    def _time(self, row: Mapping[str, object], canonical: str) -> Optional[float]:
        seconds = parse_float(self.value(row, canonical))
        if seconds is None:
            return None
        if canonical in MILLISECOND_FIELDS:
            seconds *= self.time_scale
        return seconds

    def _sector(self, row: Mapping[str, object], canonical: str) -> Optional[float]:
        if not self.has_sector_data:
            return None
        seconds = self._time(row, canonical)
        # A zero sector means "not recorded"
        if seconds is None or seconds <= 0:
            return None
        return seconds

    def parse_row(self, row: Mapping[str, object], row_index: int) -> ParsedLap:
        """Parse one raw row. Never raises on malformed cells."""
        lap_number = parse_int(self.value(row, "lap_number"))
        timestamp = timestamp_to_string(self.value(row, "timestamp")) or None

        return ParsedLap(
            session_id=self._text(row, "session_id"),
            date=timestamp_to_string(self.value(row, "date")),
            track=self._text(row, "track"),
            car_model=self._text(row, "car_model"),
            brand=self._text(row, "brand"),
            driver=self._text(row, "driver"),
            stint=max(parse_int(self.value(row, "stint")) or 0, 0),
            lap_number=row_index if lap_number is None else lap_number,
            lap_time_s=self._time(row, "lap_time_s") or 0.0,
            s1_s=self._sector(row, "s1_s"),
            s2_s=self._sector(row, "s2_s"),
            s3_s=self._sector(row, "s3_s"),
            pit_type=self._text(row, "pit_type"),
            pit_time_s=self._time(row, "pit_time_s"),
            timestamp=timestamp,
            lane=parse_int(self.value(row, "lane")),
            driving_station=parse_int(self.value(row, "driving_station")),
            team_number=self._optional_text(row, "team_number"),
            stint_elapsed_s=self._time(row, "stint_elapsed_s"),
            session_elapsed_s=self._time(row, "session_elapsed_s"),
            row_index=row_index,
        )

    def session_meta(self, first_row: Mapping[str, object], total_laps: int) -> SessionMeta:
        """Session-level metadata taken from the first input row."""
        return SessionMeta(
            session_id=self._text(first_row, "session_id"),
            track=self._text(first_row, "track"),
            car_model=self._text(first_row, "car_model"),
            brand=self._text(first_row, "brand"),
            date=timestamp_to_string(self.value(first_row, "date")),
            has_sector_data=self.has_sector_data,
            data_mode=self.mapping.data_mode,
            total_laps=total_laps,
        )

    def parse_rows(self, rows: Sequence[Mapping[str, object]]) -> Tuple[List[ParsedLap], SessionMeta]:
        """
        Parse a whole table, applying the retention rule.

        Args:
            rows: Raw rows keyed by original header

        Returns:
            Tuple of (retained laps in input order, session metadata)

        Raises:
            EmptyDatasetError: If no row is retained
        """
        laps: List[ParsedLap] = []
        for row_index, row in enumerate(rows):
            lap = self.parse_row(row, row_index)
            if should_retain(lap.lap_time_s, lap.session_elapsed_s):
                laps.append(lap)

        dropped = len(rows) - len(laps)
        logger.info(
            f"Parsed {len(laps)} laps ({dropped} rows without time signal dropped)",
            extra={"extra_data": {
                "rows": len(rows),
                "retained": len(laps),
                "data_mode": self.mapping.data_mode.value,
                "has_sector_data": self.has_sector_data,
            }},
        )

        if not laps:
            raise EmptyDatasetError()

        return laps, self.session_meta(rows[0], len(laps))


def parse_records(
    rows: Sequence[Mapping[str, object]],
    mapping: ColumnMapping,
    time_scale: Optional[float] = None,
) -> Tuple[List[ParsedLap], SessionMeta]:
    """Check required columns, then parse ``rows`` with ``mapping``."""
    mapping.check_required()
    return RecordParser(mapping, time_scale=time_scale).parse_rows(rows)
