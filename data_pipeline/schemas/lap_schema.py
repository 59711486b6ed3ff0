"""
Lap Record Schema - canonical lap shape shared by every ingestion path

A lap moves through three immutable stages:

    ParsedLap     raw fields read from one input row
    KeyedLap      + chronological sort key
    ValidatedLap  + validation status and anomaly flags

Each stage is a new instance; earlier stages never carry derived fields.
"""

from pydantic import BaseModel, Field
from typing import Optional, Tuple
from enum import Enum


class LapStatus(str, Enum):
    """Validation outcome of a lap."""

    VALID = "valid"
    SUSPECT = "suspect"
    INVALID = "invalid"


class ValidationFlag(str, Enum):
    """Anomaly tags raised by the lap validator."""

    NON_POSITIVE_TIME = "non_positive_time"
    STATISTICAL_OUTLIER = "statistical_outlier"
    NEGATIVE_TIME_DELTA = "negative_time_delta"
    DUPLICATE_TIMESTAMP = "duplicate_timestamp"


class DataMode(str, Enum):
    """Source dialect of a delimited export."""

    GENERIC = "generic"
    PCLAP = "pclap"


SECTOR_FIELDS = ("s1_s", "s2_s", "s3_s")
SECTOR_LABELS = ("S1", "S2", "S3")


class ParsedLap(BaseModel):
    """
    One completed lap or pit event as read from an input row.

    Identity fields (session, stint, lap, driver) never change after parsing.
    """

    session_id: str = Field(default="", description="Session identifier")
    date: str = Field(default="", description="Session date as exported")
    track: str = Field(default="", description="Track identifier")
    car_model: str = Field(default="", description="Car model / entity identifier")
    brand: str = Field(default="", description="Car brand")
    driver: str = Field(default="", description="Driver identifier")
    stint: int = Field(default=0, ge=0, description="Stint number")
    lap_number: int = Field(default=0, description="Lap number")
    lap_time_s: float = Field(default=0.0, description="Lap time in seconds (0 = unknown)")
    s1_s: Optional[float] = Field(None, description="Sector 1 time in seconds")
    s2_s: Optional[float] = Field(None, description="Sector 2 time in seconds")
    s3_s: Optional[float] = Field(None, description="Sector 3 time in seconds")
    pit_type: str = Field(default="", description="Pit marker; empty string = not a pit lap")
    pit_time_s: Optional[float] = Field(None, description="Pit duration in seconds")
    timestamp: Optional[str] = Field(None, description="Raw timestamp string")
    lane: Optional[int] = Field(None, description="Lane / track position")
    driving_station: Optional[int] = Field(None, description="Driving station")
    team_number: Optional[str] = Field(None, description="Team number")
    stint_elapsed_s: Optional[float] = Field(None, description="Elapsed seconds within the stint")
    session_elapsed_s: Optional[float] = Field(None, description="Elapsed seconds within the session")
    row_index: int = Field(default=0, ge=0, description="Position of the row in its input table")

    @property
    def is_pit_lap(self) -> bool:
        """True when the lap carries a pit marker."""
        return self.pit_type != ""

    def sector(self, index: int) -> Optional[float]:
        """Sector time by zero-based index (0 -> S1)."""
        return getattr(self, SECTOR_FIELDS[index])

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "session_id": "2024_LEMANS_24H",
                "track": "Le Mans",
                "car_model": "GT3",
                "driver": "A",
                "stint": 1,
                "lap_number": 12,
                "lap_time_s": 30.412,
                "s1_s": 10.101,
                "s2_s": 10.205,
                "s3_s": 10.106,
                "pit_type": "",
                "session_elapsed_s": 365.2,
            }
        }


class KeyedLap(ParsedLap):
    """Parsed lap carrying its chronological sort key."""

    sort_key: float = Field(description="Monotonic ordering key")


class ValidatedLap(KeyedLap):
    """Keyed lap carrying the validator's verdict."""

    lap_status: LapStatus = Field(default=LapStatus.VALID, description="Validation status")
    validation_flags: Tuple[ValidationFlag, ...] = Field(
        default=(), description="Anomaly tags in detection order"
    )

    @property
    def is_valid(self) -> bool:
        return self.lap_status == LapStatus.VALID


class SessionMeta(BaseModel):
    """Session-level facts gathered while parsing a table."""

    session_id: str = Field(default="", description="Session identifier of the first row")
    track: str = Field(default="", description="Track of the first row")
    car_model: str = Field(default="", description="Car model of the first row")
    brand: str = Field(default="", description="Brand of the first row")
    date: str = Field(default="", description="Date of the first row")
    has_sector_data: bool = Field(default=False, description="All three sector columns resolved")
    data_mode: DataMode = Field(default=DataMode.GENERIC, description="Source dialect")
    total_laps: int = Field(default=0, ge=0, description="Rows retained after parsing")
