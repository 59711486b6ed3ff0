"""
Analysis Schemas - value objects returned by the statistics layer

Every model here is a plain, serializable result. Numeric fields are None
whenever the input does not define them (too few laps, missing benchmark).
"""

from pydantic import BaseModel, Field
from typing import Iterable, List, Optional
from enum import Enum


class AnalysisScope(BaseModel):
    """
    Virtual filter over the canonical dataset.

    Callers keep ``enabled`` false whenever all three selections are empty;
    the engine treats ``enabled=False`` as "no filtering" whatever the lists hold.
    """

    entity_ids: List[str] = Field(default_factory=list, description="Car models or team numbers")
    drivers: List[str] = Field(default_factory=list, description="Driver identifiers")
    track_positions: List[int] = Field(default_factory=list, description="Lane numbers")
    enabled: bool = Field(default=False, description="Whether the scope filters at all")

    @classmethod
    def from_selection(
        cls,
        entity_ids: Iterable[str] = (),
        drivers: Iterable[str] = (),
        track_positions: Iterable[int] = (),
    ) -> "AnalysisScope":
        """Build a scope whose ``enabled`` flag follows the selections."""
        entity_ids, drivers, track_positions = list(entity_ids), list(drivers), list(track_positions)
        return cls(
            entity_ids=entity_ids,
            drivers=drivers,
            track_positions=track_positions,
            enabled=bool(entity_ids or drivers or track_positions),
        )


class KPIData(BaseModel):
    """Session KPIs for a lap subset."""

    best_lap: Optional[float] = Field(None, description="Fastest clean lap")
    average_pace: Optional[float] = Field(None, description="Mean clean lap time")
    consistency: Optional[float] = Field(None, description="Sample stddev of clean lap times")
    pace_delta: Optional[float] = Field(None, description="Average pace minus best lap")
    degradation: Optional[float] = Field(None, description="Last-N mean minus first-N mean")
    total_laps: int = Field(default=0, ge=0, description="Laps in the subset, pit laps included")
    pit_stops: int = Field(default=0, ge=0, description="Laps with a pit marker")
    total_pit_time: float = Field(default=0.0, description="Summed pit durations as reported")


class DualContextKPIs(BaseModel):
    """Scoped KPIs next to the full-session reference."""

    scoped_kpis: KPIData
    global_kpis: KPIData
    relative_pace: Optional[float] = Field(None, description="Scoped minus global average pace")
    relative_consistency: Optional[float] = Field(None, description="Scoped minus global consistency")
    lap_count_ratio: str = Field(description="'{scoped laps} / {global laps}'")


class TrackBenchmark(BaseModel):
    """Session-wide reference values from the unscoped dataset."""

    track_best_lap: Optional[float] = None
    best_s1: Optional[float] = None
    best_s2: Optional[float] = None
    best_s3: Optional[float] = None
    theoretical_best: Optional[float] = None
    has_sector_data: bool = False

    def best_sector(self, index: int) -> Optional[float]:
        """Best sector time by zero-based index (0 -> S1)."""
        return (self.best_s1, self.best_s2, self.best_s3)[index]


class UserGapMetrics(BaseModel):
    """A lap subset measured against the track benchmark."""

    user_best_lap: Optional[float] = None
    user_avg_lap: Optional[float] = None
    gap_to_track: Optional[float] = None
    gap_to_theoretical: Optional[float] = None
    performance_index: Optional[float] = Field(None, description="Track best / user average, in %")
    weakest_sector: Optional[str] = None


class SectorDeltas(BaseModel):
    """Mean sector time minus benchmark best sector (positive = slower)."""

    s1: Optional[float] = None
    s2: Optional[float] = None
    s3: Optional[float] = None


class SetupPerformanceMetrics(BaseModel):
    """Benchmark-normalized performance of one lap subset."""

    setup_id: str = ""
    lap_count: int = 0
    performance_index: Optional[float] = Field(None, description="Mean of lap / track best; 1.0 = track pace")
    consistency_score: Optional[float] = Field(None, description="Population stddev of normalized laps")
    sector_deltas: SectorDeltas = Field(default_factory=SectorDeltas)
    weakest_sector: Optional[str] = None
    strongest_sector: Optional[str] = None


class InterpretationStatus(str, Enum):
    """Traffic-light status for a metric."""

    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class Interpretation(BaseModel):
    """Status plus a label key resolved by the presentation layer."""

    status: InterpretationStatus
    label_key: str


class LapFilters(BaseModel):
    """Classic dashboard filters (independent of the analysis scope)."""

    track: Optional[str] = None
    session_id: Optional[str] = None
    drivers: List[str] = Field(default_factory=list)
    stints: List[int] = Field(default_factory=list)
    include_pit_laps: bool = True


class DriverStats(BaseModel):
    driver: str
    best_lap: float
    average_pace: float
    consistency: float


class StintStats(BaseModel):
    stint: int
    avg_pace: float
    lap_count: int
    has_pit: bool


class PitEvent(BaseModel):
    lap_number: int
    pit_type: str
    pit_time_s: Optional[float] = None
    timestamp: Optional[str] = None
    driver: str


class SessionInsights(BaseModel):
    most_consistent_driver: Optional[str] = None
    highest_variance_sector: Optional[str] = None


class FilterOptions(BaseModel):
    tracks: List[str] = Field(default_factory=list)
    sessions: List[str] = Field(default_factory=list)
    drivers: List[str] = Field(default_factory=list)
    stints: List[int] = Field(default_factory=list)


class ScopeOptions(BaseModel):
    entities: List[str] = Field(default_factory=list)
    drivers: List[str] = Field(default_factory=list)
    lanes: List[int] = Field(default_factory=list)
