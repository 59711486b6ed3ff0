"""
Data Schemas Package - Pydantic models for laps and analysis results
"""

from data_pipeline.schemas.lap_schema import (
    DataMode,
    KeyedLap,
    LapStatus,
    ParsedLap,
    SessionMeta,
    ValidatedLap,
    ValidationFlag,
)
from data_pipeline.schemas.analysis_schema import (
    AnalysisScope,
    DualContextKPIs,
    Interpretation,
    InterpretationStatus,
    KPIData,
    LapFilters,
    SectorDeltas,
    SetupPerformanceMetrics,
    TrackBenchmark,
    UserGapMetrics,
)

__all__ = [
    "DataMode",
    "KeyedLap",
    "LapStatus",
    "ParsedLap",
    "SessionMeta",
    "ValidatedLap",
    "ValidationFlag",
    "AnalysisScope",
    "DualContextKPIs",
    "Interpretation",
    "InterpretationStatus",
    "KPIData",
    "LapFilters",
    "SectorDeltas",
    "SetupPerformanceMetrics",
    "TrackBenchmark",
    "UserGapMetrics",
]
