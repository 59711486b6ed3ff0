"""
Column Normalizer - maps raw export headers to canonical lap fields

Resolution is a static alias table plus an ordered candidate lookup. The
alternate timing dialect is recognised only when its whole signature is
present verbatim in the header.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from data_pipeline.base.exceptions import MissingColumnsError
from data_pipeline.schemas.lap_schema import DataMode


LAP_TIME_COLUMN = "lap_time_s"
SECTOR_COLUMNS = ("s1_s", "s2_s", "s3_s")

COLUMN_ALIASES: Dict[str, str] = {
    # Generic spellings
    "lap_time_sec": "lap_time_s",
    "laptime": "lap_time_s",
    "lap_time": "lap_time_s",
    "circuit": "track",
    "car": "car_model",
    "pilote": "driver",
    "tour": "lap_number",
    "relais": "stint",
    "stint_id": "stint",
    "stint_elapsed_sec": "stint_elapsed_s",
    "session_elapsed_sec": "session_elapsed_s",
    "S1_s": "s1_s",
    "S2_s": "s2_s",
    "S3_s": "s3_s",
    # Alternate timing dialect
    "RaceID": "session_id",
    "SegmentID": "stint",
    "RaceTime": "session_elapsed_s",
    "LapTime": "lap_time_s",
    "LaneID": "lane",
    "DriverID": "driver",
    "TeamID": "team_number",
    "CarID": "car_model",
}

PCLAP_SIGNATURE = ("RaceID", "SegmentID", "RaceTime", "LapTime")

REQUIRED_COLUMNS = ("session_id", "track", "car_model", "driver", "stint", "lap_number")
PCLAP_REQUIRED_COLUMNS = ("session_id", "stint")

# Time fields exported in milliseconds by the alternate dialect
MILLISECOND_FIELDS = (
    "lap_time_s",
    "s1_s",
    "s2_s",
    "s3_s",
    "pit_time_s",
    "stint_elapsed_s",
    "session_elapsed_s",
)


def clean_header(header: object) -> str:
    """Trimmed header text without a byte-order mark."""
    return str(header).strip().lstrip("\ufeff").strip()


def canonical_name(header: str) -> str:
    """Canonical field for one header (unknown headers map to themselves)."""
    return COLUMN_ALIASES.get(header, header)


def detect_data_mode(headers: Iterable[str]) -> DataMode:
    """Alternate dialect only when every signature column is present verbatim."""
    present = set(headers)
    if all(column in present for column in PCLAP_SIGNATURE):
        return DataMode.PCLAP
    return DataMode.GENERIC


@dataclass
class ColumnMapping:
    """Header -> canonical mapping of one raw table."""

    columns: Dict[str, str] = field(default_factory=dict)
    data_mode: DataMode = DataMode.GENERIC

    @property
    def is_pclap(self) -> bool:
        return self.data_mode == DataMode.PCLAP

    @property
    def canonical_names(self) -> set:
        return set(self.columns.values())

    @property
    def has_sector_data(self) -> bool:
        """All three sector columns resolve."""
        names = self.canonical_names
        return all(sector in names for sector in SECTOR_COLUMNS)

    def resolves(self, canonical: str) -> bool:
        return canonical in self.canonical_names

    def candidates(self, canonical: str) -> List[str]:
        """
        Original headers that can supply ``canonical``, in lookup order.

        The canonical spelling comes first, then aliased headers in header order.
        """
        ordered = [canonical] if canonical in self.columns else []
        ordered.extend(
            original
            for original, mapped in self.columns.items()
            if mapped == canonical and original != canonical
        )
        return ordered

    def lookup(self, row: Mapping[str, object], canonical: str) -> Optional[object]:
        """Raw cell for ``canonical`` in ``row``; None when no header supplies it."""
        if canonical in row:
            return row[canonical]
        for original in self.candidates(canonical):
            if original in row:
                return row[original]
        return None

    def required_columns(self) -> Sequence[str]:
        return PCLAP_REQUIRED_COLUMNS if self.is_pclap else REQUIRED_COLUMNS

    def missing_columns(self) -> List[str]:
        """Required canonical fields (lap time included) absent from the header."""
        names = self.canonical_names
        missing = [column for column in self.required_columns() if column not in names]
        if LAP_TIME_COLUMN not in names:
            missing.append(LAP_TIME_COLUMN)
        return missing

    def check_required(self) -> None:
        """
        Raise when required columns are absent.

        Raises:
            MissingColumnsError: Naming every absent canonical field
        """
        missing = self.missing_columns()
        if missing:
            raise MissingColumnsError(missing)


def normalize_columns(headers: Iterable[str]) -> ColumnMapping:
    """
    Build the canonical mapping for a header row.

    Args:
        headers: Raw column names (whitespace is trimmed)

    Returns:
        ColumnMapping with the detected dialect
    """
    cleaned = [clean_header(header) for header in headers]
    columns = {header: canonical_name(header) for header in cleaned if header}
    return ColumnMapping(columns=columns, data_mode=detect_data_mode(cleaned))
