"""Shared fixtures for lap pipeline and analysis tests."""

from typing import Any, Callable, Dict, List

import pytest

from data_pipeline.schemas.lap_schema import (
    KeyedLap,
    LapStatus,
    ParsedLap,
    ValidatedLap,
)


TEST_SESSION_ID = "2024_SPA_24H"
TEST_TRACK = "Spa"
TEST_CAR = "GT3"

GENERIC_HEADER = [
    "session_id", "date", "track", "car_model", "driver", "stint",
    "lap_number", "lap_time_s", "s1_s", "s2_s", "s3_s", "pit_type",
    "pit_time_s", "session_elapsed_s",
]


def _lap_fields(overrides: Dict[str, Any]) -> Dict[str, Any]:
    fields = {
        "session_id": TEST_SESSION_ID,
        "track": TEST_TRACK,
        "car_model": TEST_CAR,
        "driver": "A",
        "stint": 1,
        "lap_number": 1,
        "lap_time_s": 30.0,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def make_parsed() -> Callable[..., ParsedLap]:
    """Factory for ParsedLap with sensible defaults."""
    def factory(**overrides: Any) -> ParsedLap:
        return ParsedLap(**_lap_fields(overrides))
    return factory


@pytest.fixture
def make_keyed() -> Callable[..., KeyedLap]:
    """Factory for KeyedLap; sort_key defaults to row_index."""
    def factory(**overrides: Any) -> KeyedLap:
        fields = _lap_fields(overrides)
        fields.setdefault("sort_key", float(fields.get("row_index", 0)))
        return KeyedLap(**fields)
    return factory


@pytest.fixture
def make_lap() -> Callable[..., ValidatedLap]:
    """Factory for ValidatedLap (status valid unless overridden)."""
    def factory(**overrides: Any) -> ValidatedLap:
        fields = _lap_fields(overrides)
        fields.setdefault("sort_key", float(fields.get("row_index", 0)))
        fields.setdefault("lap_status", LapStatus.VALID)
        return ValidatedLap(**fields)
    return factory


@pytest.fixture
def stint_session(make_lap) -> List[ValidatedLap]:
    """
    Two drivers, two stints each, one pit lap per stint end.

    Driver A laps 30.0-30.4s, driver B laps 31.0-31.4s; sectors are reported.
    """
    laps = []
    elapsed = 0.0
    row = 0
    for driver, base in (("A", 30.0), ("B", 31.0)):
        for stint in (1, 2):
            for lap_number in range(1, 6):
                lap_time = base + (lap_number - 1) * 0.1
                elapsed += lap_time
                pit = lap_number == 5
                laps.append(make_lap(
                    driver=driver,
                    stint=stint,
                    lap_number=lap_number,
                    lap_time_s=lap_time,
                    s1_s=round(lap_time * 0.3, 3),
                    s2_s=round(lap_time * 0.4, 3),
                    s3_s=round(lap_time * 0.3, 3),
                    pit_type="pit" if pit else "",
                    pit_time_s=25.0 if pit else None,
                    session_elapsed_s=elapsed,
                    row_index=row,
                    sort_key=elapsed,
                    lane=1 if driver == "A" else 2,
                ))
                row += 1
    return laps


@pytest.fixture
def generic_csv() -> str:
    """Semicolon export with a pit lap and a zero-time lap carrying elapsed time."""
    lines = [";".join(GENERIC_HEADER)]
    rows = [
        ["S1", "2024-05-01", "Spa", "GT3", "A", "1", "1", "30.5", "9.1", "12.2", "9.2", "", "", "30.5"],
        ["S1", "2024-05-01", "Spa", "GT3", "A", "1", "2", "30.2", "9.0", "12.1", "9.1", "", "", "60.7"],
        ["S1", "2024-05-01", "Spa", "GT3", "B", "1", "1", "31.0", "9.3", "12.4", "9.3", "", "", "31.0"],
        ["S1", "2024-05-01", "Spa", "GT3", "B", "1", "2", "0", "", "", "", "", "", "120.5"],
        ["S1", "2024-05-01", "Spa", "GT3", "A", "2", "3", "55.0", "9.0", "12.0", "34.0", "pit", "25.0", "115.7"],
    ]
    lines.extend(";".join(row) for row in rows)
    return "\n".join(lines) + "\n"
