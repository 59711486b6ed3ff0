"""
Tests for the session analysis CLI helpers
"""

import pytest

from data_pipeline.ingestors.delimited_ingestor import DelimitedIngestor
from data_pipeline.schemas.analysis_schema import AnalysisScope
from scripts.analyze_session import rolling_pace_series, summarize


EXPORT_WITH_NEGATIVE_PIT = "\n".join([
    "session_id;track;car_model;driver;stint;lap_number;lap_time_s;pit_type;pit_time_s;session_elapsed_s",
    "S;T;C;A;1;1;30.0;;;30",
    "S;T;C;A;1;2;31.0;pit;-2.5;61",
    "S;T;C;A;1;3;30.5;;;91.5",
])


@pytest.fixture
def result():
    return DelimitedIngestor(config={"delimiters": [";", ","]}).run(EXPORT_WITH_NEGATIVE_PIT)


def test_summary_with_negative_pit_time(result):
    summary = summarize(result, AnalysisScope(), include_pit_laps=True)

    assert summary["kpis"]["total_laps"] == 3
    assert summary["kpis"]["pit_stops"] == 1
    assert summary["kpis"]["total_pit_time"] == -2.5
    assert len(summary["rolling_pace"]) == 3
    assert "scope" not in summary


def test_summary_excluding_pit_laps(result):
    summary = summarize(result, AnalysisScope(), include_pit_laps=False)

    assert summary["kpis"]["total_laps"] == 2
    assert summary["kpis"]["pit_stops"] == 0
    assert summary["cache"]["total_laps"] == 2
    assert summary["benchmark"]["track_best_lap"] == 30.0


def test_summary_with_scope(result):
    summary = summarize(result, AnalysisScope(drivers=["A"], enabled=True), include_pit_laps=True)

    assert summary["scope"]["lap_count_ratio"] == "3 / 3"
    assert summary["gap"] is not None


@pytest.mark.parametrize("width,expected", [(300, 100), (1200, 400), (10, 80)])
def test_rolling_pace_series_fits_chart_width(make_lap, width, expected):
    laps = [make_lap(lap_time_s=30.0, session_elapsed_s=30.0 * (i + 1)) for i in range(1000)]

    series = rolling_pace_series(laps, width)

    assert len(series) == expected
    assert series[0]["elapsed"] == 30.0
    assert series[-1]["elapsed"] == 30000.0
    assert set(series[0]) == {"elapsed", "pace", "lap_count"}
