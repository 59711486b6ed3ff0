"""
Race Database Ingestor - Lap history from race-management database exports

The database container is opened by the caller; this module receives its
tables in memory (table name -> DataFrame or list of row dicts). Table and
column names are matched case-, underscore- and space-insensitively.

Tables used:
- RaceHistoryLap: one row per lap (required for extraction)
- RaceHistory: race name, date and track (required for the catalog)
- RaceHistoryClas: per-driver classification (names, lap totals, averages)
- RaceHistorySum: per-race summary (minimum lap time)
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union
import re

import pandas as pd
from pydantic import BaseModel, Field

from app.utils.time_utils import parse_epoch_seconds, timestamp_to_string
from app.utils.validators import clean_text, is_blank, median_of_sorted, parse_float, parse_int
from config.settings import get_settings
from data_pipeline.base.base_ingestor import BaseIngestor
from data_pipeline.base.column_normalizer import normalize_columns
from data_pipeline.base.exceptions import EmptyDatasetError, TableNotFoundError
from data_pipeline.base.qa_engine import LapValidator
from data_pipeline.base.record_parser import RecordParser
from data_pipeline.schemas.lap_schema import ParsedLap, SessionMeta


TableData = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]
Row = Mapping[str, Any]

LAP_TABLE = "RaceHistoryLap"
RACE_TABLE = "RaceHistory"
CLASSIFICATION_TABLE = "RaceHistoryClas"
SUMMARY_TABLE = "RaceHistorySum"

SYSTEM_TABLE_PREFIXES = ("MSys", "pbcat")

# Ordered candidate spellings per field
RACE_ID_COLUMNS = ["RaceID", "Race_ID"]
LAP_TIME_COLUMNS = ["LapTime", "Lap_Time"]
RACE_TIME_COLUMNS = ["RaceTime", "Race_Time"]
PIT_TIME_COLUMNS = ["PitStopTime", "Pit_Stop_Time"]
PIT_FLAG_COLUMNS = ["Pit", "PitStop", "IsPit"]
REC_TIME_COLUMNS = ["RecDateTime", "Rec_Date_Time"]
DRIVER_COLUMNS = ["DriverID", "Driver_ID"]
DRIVER_NAME_COLUMNS = ["DriverName", "Driver_Name", "Name"]
LANE_COLUMNS = ["LaneID", "Lane_ID", "Lane"]
TEAM_COLUMNS = ["TeamID", "Team_ID"]
SEGMENT_COLUMNS = ["SegmentID", "Segment_ID", "Stint"]
LAP_NUMBER_COLUMNS = ["Lap", "LapNumber", "Lap_Number", "LapNr"]
SECTOR_COLUMNS = (
    ["Sector1", "S1", "Sector_1"],
    ["Sector2", "S2", "Sector_2"],
    ["Sector3", "S3", "Sector_3"],
)
RACE_NAME_COLUMNS = ["RaceName", "Race_Name", "Name"]
RACE_DATE_COLUMNS = ["RaceDate", "Race_Date", "Date"]
TRACK_COLUMNS = ["TrackID", "Track_ID", "TrackName", "Track"]
TRACK_LENGTH_COLUMNS = ["TrackLength", "Track_Length", "TrackLenght"]
DURATION_COLUMNS = ["TimeRace", "Time_Race", "RaceDuration"]
SEG_NUMBER_COLUMNS = ["SegNumber", "Seg_Number"]
COMMENT_COLUMNS = ["Comment", "Comments", "Notes"]
TOTAL_LAPS_COLUMNS = ["TotalLaps", "Total_Laps"]
AVERAGE_LAP_COLUMNS = ["AverageLap", "Average_Lap"]
MIN_LAP_COLUMNS = ["LapTimeMin", "Lap_Time_Min"]

CANONICAL_COLUMNS = [
    "session_id", "date", "track", "driver", "stint", "lap_number",
    "lap_time_s", "s1_s", "s2_s", "s3_s", "pit_type", "pit_time_s",
    "timestamp", "lane", "team_number", "session_elapsed_s",
]

_TRUE_FLAGS = {"true", "yes", "y", "1", "-1"}
_NAME_NOISE = re.compile(r"[_\s]")


class CatalogDriver(BaseModel):
    """One classified driver of a race."""

    name: str
    lane: Optional[int] = None
    average_lap: Optional[float] = Field(None, description="Average lap in seconds")


class RaceCatalogEntry(BaseModel):
    """Summary of one race stored in the database."""

    race_id: str
    name: str
    date: str = ""
    track: str = ""
    track_length: Optional[float] = None
    duration: str = ""
    lap_count: int = 0
    best_lap: Optional[float] = None
    seg_number: Optional[int] = None
    has_sectors: bool = False
    comment: str = ""
    drivers: List[CatalogDriver] = Field(default_factory=list)


def normalize_name(name: object) -> str:
    """Lowercase name without underscores or whitespace."""
    return _NAME_NOISE.sub("", str(name).lower())


def find_table(tables: Mapping[str, TableData], name: str) -> Optional[str]:
    """Name of the user table matching ``name``, or None."""
    target = normalize_name(name)
    for table_name in tables:
        if str(table_name).startswith(SYSTEM_TABLE_PREFIXES):
            continue
        if normalize_name(table_name) == target:
            return table_name
    return None


def table_rows(table: TableData) -> List[Dict[str, Any]]:
    """Row dicts of a table; NaN/NaT cells become None."""
    if isinstance(table, pd.DataFrame):
        return table.astype(object).where(table.notna(), None).to_dict("records")
    return [dict(row) for row in table]


def matching_columns(columns: Iterable[str], candidates: Sequence[str]) -> List[str]:
    """Existing columns matching the candidates, in candidate order."""
    by_name: Dict[str, str] = {}
    for column in columns:
        by_name.setdefault(normalize_name(column), column)
    resolved = []
    for candidate in candidates:
        column = by_name.get(normalize_name(candidate))
        if column is not None and column not in resolved:
            resolved.append(column)
    return resolved


def find_column(row: Row, candidates: Sequence[str]) -> Any:
    """First non-null cell among the candidate columns of ``row``."""
    for column in matching_columns(row.keys(), candidates):
        value = row.get(column)
        if value is not None and not is_blank(value):
            return value
    return None


class _ColumnResolver:
    """Candidate columns resolved once per table, looked up per row."""

    def __init__(self, rows: Sequence[Row]):
        columns: List[str] = []
        seen: Set[str] = set()
        for row in rows[:1]:
            for column in row.keys():
                if column not in seen:
                    seen.add(column)
                    columns.append(column)
        self.columns = columns
        self._cache: Dict[Tuple[str, ...], List[str]] = {}

    def get(self, row: Row, candidates: Sequence[str]) -> Any:
        key = tuple(candidates)
        if key not in self._cache:
            self._cache[key] = matching_columns(self.columns, candidates)
        for column in self._cache[key]:
            value = row.get(column)
            if value is not None and not is_blank(value):
                return value
        return None


def is_truthy(value: Any) -> bool:
    """Boolean flag cell (database booleans export as -1/1/True)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    number = parse_float(value)
    if number is not None:
        return number != 0
    return clean_text(value).lower() in _TRUE_FLAGS


def detect_time_divisor(
    raw_times: Iterable[float],
    unit: str = "ms",
    threshold: float = 200.0,
    sample_size: int = 200,
) -> float:
    """
    Divisor turning raw database times into seconds.

    Args:
        raw_times: Raw lap time values in table order
        unit: 'ms', 's' or 'auto'
        threshold: Median raw value at or above which 'auto' reads milliseconds
        sample_size: Positive values sampled for 'auto'

    Returns:
        1000.0 for milliseconds, 1.0 for seconds
    """
    if unit == "ms":
        return 1000.0
    if unit == "s":
        return 1.0

    sample: List[float] = []
    for raw in raw_times:
        if len(sample) >= sample_size:
            break
        if raw is not None and raw > 0:
            sample.append(raw)
    if not sample:
        return 1.0
    return 1000.0 if median_of_sorted(sorted(sample)) >= threshold else 1.0


def identifier(value: Any) -> str:
    """Id cell as text; integral floats lose their '.0' suffix."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return clean_text(value)


def _scaled(value: Any, divisor: float) -> Optional[float]:
    number = parse_float(value)
    return None if number is None else number / divisor


class RaceDatabaseIngestor(BaseIngestor):
    """
    Ingestor for race database lap history.

    Features:
    - Race catalog (newest first) from history, classification and summary tables
    - Lap extraction by race ids, drivers and best-laps-only
    - Explicit or auto-detected time unit
    """

    def __init__(
        self,
        validator: Optional[LapValidator] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        super().__init__("race_database", validator=validator, config=config)
        ingestion = get_settings().ingestion
        self.time_unit: str = self.config.get("time_unit", ingestion.database_time_unit)
        self.auto_unit_threshold: float = self.config.get(
            "auto_unit_threshold", ingestion.auto_unit_threshold
        )

    def _rows(self, tables: Mapping[str, TableData], name: str, required: bool = False) -> List[Dict[str, Any]]:
        table_name = find_table(tables, name)
        if table_name is None:
            if required:
                raise TableNotFoundError(name)
            return []
        return table_rows(tables[table_name])

    def _race_info(self, tables: Mapping[str, TableData]) -> Dict[str, Dict[str, str]]:
        """race id -> name/date/track from the race history table."""
        info: Dict[str, Dict[str, str]] = {}
        for row in self._rows(tables, RACE_TABLE):
            race_id = identifier(find_column(row, RACE_ID_COLUMNS + ["ID"]))
            if not race_id:
                continue
            info[race_id] = {
                "name": clean_text(find_column(row, RACE_NAME_COLUMNS)),
                "date": timestamp_to_string(find_column(row, RACE_DATE_COLUMNS)),
                "track": clean_text(find_column(row, TRACK_COLUMNS)),
            }
        return info

    def _driver_names(self, tables: Mapping[str, TableData]) -> Dict[Tuple[str, str], str]:
        """(race id, driver id) -> driver name from the classification table."""
        names: Dict[Tuple[str, str], str] = {}
        for row in self._rows(tables, CLASSIFICATION_TABLE):
            race_id = identifier(find_column(row, RACE_ID_COLUMNS))
            driver_id = identifier(find_column(row, DRIVER_COLUMNS))
            name = clean_text(find_column(row, DRIVER_NAME_COLUMNS))
            if race_id and driver_id and name:
                names[(race_id, driver_id)] = name
        return names

    def scan_race_catalog(self, tables: Mapping[str, TableData]) -> List[RaceCatalogEntry]:
        """
        Build the race catalog.

        Returns:
            One entry per race history row, newest date first (undated last)

        Raises:
            TableNotFoundError: If the race history table is absent
        """
        race_rows = self._rows(tables, RACE_TABLE, required=True)
        clas_rows = self._rows(tables, CLASSIFICATION_TABLE)
        sum_rows = self._rows(tables, SUMMARY_TABLE)

        samples = [parse_float(find_column(row, AVERAGE_LAP_COLUMNS)) for row in clas_rows]
        samples += [parse_float(find_column(row, MIN_LAP_COLUMNS)) for row in sum_rows]
        divisor = detect_time_divisor(
            samples,
            unit=self.time_unit,
            threshold=self.auto_unit_threshold,
            sample_size=max(len(samples), 1),
        )

        lap_counts: Dict[str, int] = {}
        drivers: Dict[str, List[CatalogDriver]] = {}
        for row in clas_rows:
            race_id = identifier(find_column(row, RACE_ID_COLUMNS))
            if not race_id:
                continue
            lap_counts[race_id] = lap_counts.get(race_id, 0) + (parse_int(find_column(row, TOTAL_LAPS_COLUMNS)) or 0)
            driver_id = identifier(find_column(row, DRIVER_COLUMNS))
            drivers.setdefault(race_id, []).append(
                CatalogDriver(
                    name=clean_text(find_column(row, DRIVER_NAME_COLUMNS)) or driver_id or "Unknown",
                    lane=parse_int(find_column(row, LANE_COLUMNS)),
                    average_lap=_scaled(find_column(row, AVERAGE_LAP_COLUMNS), divisor),
                )
            )

        best_laps: Dict[str, float] = {}
        for row in sum_rows:
            race_id = identifier(find_column(row, RACE_ID_COLUMNS))
            lap_time = _scaled(find_column(row, MIN_LAP_COLUMNS), divisor)
            if race_id and lap_time is not None and lap_time > 0:
                if race_id not in best_laps or lap_time < best_laps[race_id]:
                    best_laps[race_id] = lap_time

        catalog: List[RaceCatalogEntry] = []
        for row in race_rows:
            race_id = identifier(find_column(row, RACE_ID_COLUMNS + ["ID"]))
            seg_number = parse_int(find_column(row, SEG_NUMBER_COLUMNS))
            catalog.append(
                RaceCatalogEntry(
                    race_id=race_id,
                    name=clean_text(find_column(row, RACE_NAME_COLUMNS)) or f"Race {race_id}",
                    date=timestamp_to_string(find_column(row, RACE_DATE_COLUMNS)),
                    track=clean_text(find_column(row, TRACK_COLUMNS)),
                    track_length=parse_float(find_column(row, TRACK_LENGTH_COLUMNS)),
                    duration=clean_text(find_column(row, DURATION_COLUMNS)),
                    lap_count=lap_counts.get(race_id, 0),
                    best_lap=best_laps.get(race_id),
                    seg_number=seg_number,
                    has_sectors=seg_number is not None and seg_number > 0,
                    comment=clean_text(find_column(row, COMMENT_COLUMNS)),
                    drivers=drivers.get(race_id, []),
                )
            )

        # Newest first; undated or unparseable dates last
        epochs = parse_epoch_seconds([entry.date or None for entry in catalog])
        order = sorted(
            range(len(catalog)),
            key=lambda i: (epochs[i] is None, -(epochs[i] or 0.0)),
        )
        catalog = [catalog[i] for i in order]

        self.logger.info(
            f"Catalog built: {len(catalog)} races",
            extra={"extra_data": {"time_divisor": divisor}},
        )
        return catalog

    def extract_laps(
        self,
        tables: Mapping[str, TableData],
        race_ids: Iterable[str],
        drivers: Optional[Iterable[str]] = None,
        best_laps_only: bool = False,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Extract canonical lap rows per race, times converted to seconds.

        Args:
            tables: Database tables by name
            race_ids: Races to extract
            drivers: Optional driver ids or names (case-insensitive)
            best_laps_only: Keep only each driver's fastest lap per race

        Returns:
            race id -> canonical row dicts in table order

        Raises:
            TableNotFoundError: If the lap table is absent
        """
        lap_rows = self._rows(tables, LAP_TABLE, required=True)
        wanted_races = {str(race_id) for race_id in race_ids}
        wanted_drivers = {d.lower() for d in drivers} if drivers else None
        race_info = self._race_info(tables)
        driver_names = self._driver_names(tables)

        columns = _ColumnResolver(lap_rows)
        divisor = detect_time_divisor(
            (parse_float(columns.get(row, LAP_TIME_COLUMNS)) for row in lap_rows),
            unit=self.time_unit,
            threshold=self.auto_unit_threshold,
        )

        extracted: Dict[str, List[Dict[str, Any]]] = {}
        skipped_race = 0
        for row in lap_rows:
            race_id = identifier(columns.get(row, RACE_ID_COLUMNS))
            if race_id not in wanted_races:
                skipped_race += 1
                continue

            driver_id = identifier(columns.get(row, DRIVER_COLUMNS))
            driver = driver_names.get((race_id, driver_id), driver_id)
            if wanted_drivers is not None and not (
                driver_id.lower() in wanted_drivers or driver.lower() in wanted_drivers
            ):
                continue

            pit_time = _scaled(columns.get(row, PIT_TIME_COLUMNS), divisor)
            is_pit = (pit_time is not None and pit_time > 0) or is_truthy(
                columns.get(row, PIT_FLAG_COLUMNS)
            )
            info = race_info.get(race_id, {})

            extracted.setdefault(race_id, []).append({
                "session_id": race_id,
                "date": info.get("date", ""),
                "track": info.get("track", ""),
                "driver": driver,
                "stint": columns.get(row, SEGMENT_COLUMNS),
                "lap_number": columns.get(row, LAP_NUMBER_COLUMNS),
                "lap_time_s": _scaled(columns.get(row, LAP_TIME_COLUMNS), divisor),
                "s1_s": _scaled(columns.get(row, SECTOR_COLUMNS[0]), divisor),
                "s2_s": _scaled(columns.get(row, SECTOR_COLUMNS[1]), divisor),
                "s3_s": _scaled(columns.get(row, SECTOR_COLUMNS[2]), divisor),
                "pit_type": "pit" if is_pit else "",
                "pit_time_s": pit_time if pit_time is not None and pit_time > 0 else None,
                "timestamp": timestamp_to_string(columns.get(row, REC_TIME_COLUMNS)) or None,
                "lane": columns.get(row, LANE_COLUMNS),
                "team_number": identifier(columns.get(row, TEAM_COLUMNS)),
                "session_elapsed_s": _scaled(columns.get(row, RACE_TIME_COLUMNS), divisor),
            })

        if best_laps_only:
            extracted = {race_id: _best_laps(rows) for race_id, rows in extracted.items()}

        self.logger.info(
            f"Extracted {sum(len(rows) for rows in extracted.values())} laps "
            f"for {len(extracted)} races",
            extra={"extra_data": {
                "skipped_other_races": skipped_race,
                "time_divisor": divisor,
                "best_laps_only": best_laps_only,
            }},
        )
        return extracted

    def ingest(
        self,
        tables: Mapping[str, TableData],
        race_id: str,
        drivers: Optional[Iterable[str]] = None,
        best_laps_only: bool = False,
    ) -> Tuple[List[ParsedLap], SessionMeta]:
        """
        Parse the laps of one race.

        Raises:
            TableNotFoundError: If the lap table is absent
            EmptyDatasetError: If the race has no lap carrying a time signal
        """
        rows = self.extract_laps(tables, [race_id], drivers, best_laps_only).get(str(race_id), [])
        if not rows:
            raise EmptyDatasetError(f"No laps found for race {race_id}")

        # Times are already in seconds and sectors resolve for every row
        parser = RecordParser(normalize_columns(CANONICAL_COLUMNS), time_scale=1.0)
        laps, meta = parser.parse_rows(rows)
        has_sectors = any(lap.s1_s is not None or lap.s2_s is not None or lap.s3_s is not None for lap in laps)
        return laps, meta.model_copy(update={"has_sector_data": has_sectors})

    def run_races(
        self,
        tables: Mapping[str, TableData],
        race_ids: Iterable[str],
        drivers: Optional[Iterable[str]] = None,
        best_laps_only: bool = False,
    ) -> Dict[str, Any]:
        """Run the full pipeline once per race id."""
        drivers = list(drivers) if drivers else None
        return {
            str(race_id): self.run(tables, str(race_id), drivers=drivers, best_laps_only=best_laps_only)
            for race_id in race_ids
        }


def _best_laps(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows matching their driver's fastest positive lap time."""
    best: Dict[str, float] = {}
    for row in rows:
        lap_time = row["lap_time_s"]
        if lap_time is not None and lap_time > 0:
            driver = row["driver"]
            if driver not in best or lap_time < best[driver]:
                best[driver] = lap_time
    return [row for row in rows if row["lap_time_s"] is not None and row["lap_time_s"] == best.get(row["driver"])]
