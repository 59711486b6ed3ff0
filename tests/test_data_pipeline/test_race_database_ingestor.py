"""
Tests for Race Database Ingestor
"""

import pandas as pd
import pytest

from data_pipeline.base.exceptions import TableNotFoundError
from data_pipeline.ingestors.race_database_ingestor import (
    RaceDatabaseIngestor,
    detect_time_divisor,
    find_table,
    identifier,
    is_truthy,
)
from data_pipeline.schemas.lap_schema import LapStatus


def lap_row(race_id, driver_id, lap, lap_time, race_time, segment=1, pit_time=None):
    return {
        "RaceID": race_id,
        "DriverID": driver_id,
        "SegmentID": segment,
        "Lap": lap,
        "LapTime": lap_time,
        "RaceTime": race_time,
        "PitStopTime": pit_time,
        "LaneID": driver_id,
    }


@pytest.fixture
def race_tables():
    """Database tables in milliseconds: race 12 with two drivers, race 11 with one lap."""
    return {
        "MSysObjects": [{"Id": 1}],
        "racehistory": [
            {"RaceID": 12, "RaceName": "Endurance", "RaceDate": "2024-05-01",
             "TrackID": "Home", "SegNumber": 3, "Comment": "club night"},
            {"RaceID": 11, "RaceName": "Sprint", "RaceDate": "2024-06-01",
             "TrackID": "Home", "SegNumber": 0, "Comment": ""},
            {"RaceID": 10, "RaceName": "", "RaceDate": "",
             "TrackID": "", "SegNumber": None, "Comment": ""},
        ],
        "Race_History_Clas": [
            {"RaceID": 12, "DriverID": 1, "DriverName": "Alice", "LaneID": 1,
             "TotalLaps": 3, "AverageLap": 30500},
            {"RaceID": 12, "DriverID": 2, "DriverName": "Bob", "LaneID": 2,
             "TotalLaps": 2, "AverageLap": 31100},
        ],
        "RaceHistorySum": [{"RaceID": 12, "LapTimeMin": 30100}],
        "RaceHistoryLap": [
            lap_row(12, 1, 1, 30100, 30100),
            lap_row(12, 2, 1, 31000, 31000),
            lap_row(12, 1, 2, 30500, 60600),
            lap_row(12, 2, 2, 31200, 62200, pit_time=20000),
            lap_row(12, 1, 3, 30900, 91500, segment=2),
            lap_row(11, 1, 1, 29900, 29900),
        ],
    }


@pytest.fixture
def ingestor():
    return RaceDatabaseIngestor(config={"time_unit": "ms"})


def test_catalog_newest_first_undated_last(ingestor, race_tables):
    catalog = ingestor.scan_race_catalog(race_tables)

    assert [entry.race_id for entry in catalog] == ["11", "12", "10"]
    assert catalog[2].name == "Race 10"


def test_catalog_entry_details(ingestor, race_tables):
    entry = next(e for e in ingestor.scan_race_catalog(race_tables) if e.race_id == "12")

    assert entry.name == "Endurance"
    assert entry.track == "Home"
    assert entry.lap_count == 5
    assert entry.best_lap == pytest.approx(30.1)
    assert entry.has_sectors is True
    assert [driver.name for driver in entry.drivers] == ["Alice", "Bob"]
    assert entry.drivers[0].average_lap == pytest.approx(30.5)


def test_catalog_requires_race_table(ingestor, race_tables):
    del race_tables["racehistory"]

    with pytest.raises(TableNotFoundError):
        ingestor.scan_race_catalog(race_tables)


def test_ingest_race_converts_and_names(ingestor, race_tables):
    result = ingestor.run(race_tables, "12")

    assert result.success is True
    assert result.records_ingested == 5
    assert {lap.session_id for lap in result.records} == {"12"}
    assert [lap.driver for lap in result.records] == ["Alice", "Bob", "Alice", "Bob", "Alice"]
    assert result.records[0].lap_time_s == pytest.approx(30.1)
    assert result.records[-1].session_elapsed_s == pytest.approx(91.5)
    assert result.records[-1].stint == 2
    assert result.meta.track == "Home"
    assert result.meta.has_sector_data is False


def test_pit_stop_time_marks_pit_lap(ingestor, race_tables):
    result = ingestor.run(race_tables, "12")

    pit_laps = [lap for lap in result.records if lap.is_pit_lap]
    assert len(pit_laps) == 1
    assert pit_laps[0].driver == "Bob"
    assert pit_laps[0].pit_time_s == pytest.approx(20.0)


def test_driver_filter_matches_names_and_ids(ingestor, race_tables):
    by_name = ingestor.run(race_tables, "12", drivers=["bob"])
    by_id = ingestor.run(race_tables, "12", drivers=["1"])

    assert {lap.driver for lap in by_name.records} == {"Bob"}
    assert len(by_id.records) == 3


def test_best_laps_only(ingestor, race_tables):
    result = ingestor.run(race_tables, "12", best_laps_only=True)

    assert sorted(lap.lap_time_s for lap in result.records) == pytest.approx([30.1, 31.0])


def test_unknown_race_fails(ingestor, race_tables):
    result = ingestor.run(race_tables, "99")

    assert result.success is False
    assert "99" in result.errors[0]


def test_missing_lap_table_fails(ingestor, race_tables):
    del race_tables["RaceHistoryLap"]

    result = ingestor.run(race_tables, "12")

    assert result.success is False
    assert result.errors == ["RaceHistoryLap table not found in race database"]


def test_dataframe_tables(ingestor, race_tables):
    race_tables["RaceHistoryLap"] = pd.DataFrame(race_tables["RaceHistoryLap"])

    result = ingestor.run(race_tables, "12")

    assert result.records_ingested == 5
    assert all(lap.lap_status == LapStatus.VALID for lap in result.records)


def test_run_races_one_result_per_race(ingestor, race_tables):
    results = ingestor.run_races(race_tables, ["12", "11", "99"])

    assert results["12"].success and results["11"].success
    assert results["11"].records_ingested == 1
    assert results["99"].success is False


@pytest.mark.parametrize("raw,unit,expected", [
    ([30.1, 30.5], "auto", 1.0),
    ([30100, 30500], "auto", 1000.0),
    ([], "auto", 1.0),
    ([30.1], "ms", 1000.0),
    ([30100], "s", 1.0),
])
def test_detect_time_divisor(raw, unit, expected):
    assert detect_time_divisor(raw, unit=unit) == expected


def test_find_table_skips_system_tables():
    tables = {"MSysRaceHistory": [], "race_history": []}

    assert find_table(tables, "RaceHistory") == "race_history"
    assert find_table(tables, "RaceHistoryLap") is None


def test_identifier_and_flags():
    assert identifier(12.0) == "12"
    assert identifier(" 7 ") == "7"
    assert is_truthy(-1) is True
    assert is_truthy("yes") is True
    assert is_truthy(0) is False
    assert is_truthy(None) is False
