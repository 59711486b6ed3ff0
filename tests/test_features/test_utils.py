"""
Tests for shared lap statistics helpers
"""

import pytest

from data_pipeline.schemas.lap_schema import LapStatus
from features import valid_laps_only
from features.utils import clean_laps, difference, mean, population_std, sample_std


def test_valid_laps_only_drops_suspect_and_invalid(make_lap):
    laps = [
        make_lap(lap_time_s=30.0),
        make_lap(lap_time_s=90.0, lap_status=LapStatus.SUSPECT),
        make_lap(lap_time_s=0.0, lap_status=LapStatus.INVALID),
        make_lap(lap_time_s=55.0, pit_type="pit"),
    ]

    kept = valid_laps_only(laps)

    assert kept == [laps[0], laps[3]]
    assert valid_laps_only([]) == []


def test_clean_laps_keep_order(make_lap):
    laps = [make_lap(lap_number=1), make_lap(lap_number=2, pit_type="pit"), make_lap(lap_number=3)]

    assert [lap.lap_number for lap in clean_laps(laps)] == [1, 3]


def test_spread_denominators():
    assert sample_std([1.01, 1.02]) == pytest.approx(0.00707, abs=1e-5)
    assert population_std([1.01, 1.02]) == pytest.approx(0.005)
    assert sample_std([30.0]) is None
    assert population_std([]) is None
    assert mean([]) is None


def test_difference_propagates_missing():
    assert difference(31.0, 30.0) == pytest.approx(1.0)
    assert difference(None, 30.0) is None
