"""
Tests for Ingestion Orchestrator
"""

import pytest

from data_pipeline.orchestrator import IngestionOrchestrator
from data_pipeline.schemas.lap_schema import LapStatus, ValidatedLap


@pytest.fixture
def orchestrator():
    """Create orchestrator with a stricter sample threshold."""
    return IngestionOrchestrator(config={"qa": {"min_outlier_samples": 3}})


def test_initialization(orchestrator):
    assert set(orchestrator.ingestors) == {"delimited", "race_database"}
    assert orchestrator.validator.min_outlier_samples == 3
    assert orchestrator.validator.mad_multiplier == orchestrator.settings.validation.mad_multiplier


def test_ingest_delimited(orchestrator, generic_csv):
    result = orchestrator.ingest_delimited(generic_csv)

    assert result.success is True
    assert result.source == "delimited"
    assert all(isinstance(lap, ValidatedLap) for lap in result.records)
    assert result.to_dict()["records_ingested"] == 5


def test_ingest_race_with_unit_override():
    orchestrator = IngestionOrchestrator(config={"race_database": {"time_unit": "s"}})
    tables = {
        "RaceHistoryLap": [
            {"RaceID": 1, "DriverID": 1, "SegmentID": 1, "Lap": 1, "LapTime": 30.2, "RaceTime": 30.2},
            {"RaceID": 1, "DriverID": 1, "SegmentID": 1, "Lap": 2, "LapTime": 30.4, "RaceTime": 60.6},
        ],
    }

    result = orchestrator.ingest_race(tables, "1")

    assert [lap.lap_time_s for lap in result.records] == [30.2, 30.4]
    assert result.meta.session_id == "1"


def test_ingest_races_reports_each_race():
    orchestrator = IngestionOrchestrator()
    tables = {
        "RaceHistoryLap": [
            {"RaceID": 1, "DriverID": 1, "Lap": 1, "LapTime": 30200, "RaceTime": 30200},
        ],
    }

    results = orchestrator.ingest_races(tables, ["1", "2"])

    assert results["1"].success is True
    assert results["2"].success is False


def test_revalidate_returns_fresh_instances(orchestrator, generic_csv):
    records = orchestrator.ingest_delimited(generic_csv).records

    revalidated = orchestrator.revalidate(records)

    assert revalidated is not records
    assert [lap.lap_status for lap in revalidated] == [lap.lap_status for lap in records]
    assert [lap.sort_key for lap in revalidated] == [lap.sort_key for lap in records]


def test_revalidate_picks_up_outliers(orchestrator, make_parsed):
    laps = [
        make_parsed(lap_time_s=t, session_elapsed_s=float(i), row_index=i)
        for i, t in enumerate([30.0, 30.0, 90.0])
    ]

    revalidated = orchestrator.revalidate(laps)

    assert revalidated[-1].lap_status == LapStatus.SUSPECT
