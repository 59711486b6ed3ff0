"""
Tests for chronological sort keys
"""

from datetime import datetime, timezone

from data_pipeline.base.sort_keys import assign_sort_keys, resolve_sort_key
from data_pipeline.schemas.lap_schema import KeyedLap


def test_elapsed_time_takes_precedence(make_parsed):
    lap = make_parsed(session_elapsed_s=42.0, timestamp="2024-01-01T00:00:00", row_index=3)

    assert resolve_sort_key(lap, 1704067200.0) == 42.0


def test_zero_elapsed_is_a_real_key(make_parsed):
    assert resolve_sort_key(make_parsed(session_elapsed_s=0.0, row_index=9)) == 0.0


def test_negative_elapsed_falls_back(make_parsed):
    lap = make_parsed(session_elapsed_s=-5.0, row_index=4)

    assert resolve_sort_key(lap, 100.0) == 100.0
    assert resolve_sort_key(lap) == 4.0


def test_timestamp_key_is_epoch_seconds(make_parsed):
    keyed = assign_sort_keys([make_parsed(timestamp="2024-01-01T00:00:10")])
    expected = datetime(2024, 1, 1, 0, 0, 10, tzinfo=timezone.utc).timestamp()

    assert keyed[0].sort_key == expected


def test_unparseable_timestamp_uses_row_index(make_parsed):
    keyed = assign_sort_keys([make_parsed(timestamp="not a time", row_index=6)])

    assert keyed[0].sort_key == 6.0


def test_laps_sorted_ascending(make_parsed):
    laps = [
        make_parsed(lap_number=3, session_elapsed_s=90.0, row_index=0),
        make_parsed(lap_number=1, session_elapsed_s=30.0, row_index=1),
        make_parsed(lap_number=2, session_elapsed_s=60.0, row_index=2),
    ]

    keyed = assign_sort_keys(laps)

    assert [lap.lap_number for lap in keyed] == [1, 2, 3]
    assert all(isinstance(lap, KeyedLap) for lap in keyed)


def test_equal_keys_keep_input_order(make_parsed):
    laps = [
        make_parsed(driver="B", session_elapsed_s=30.0, row_index=0),
        make_parsed(driver="A", session_elapsed_s=30.0, row_index=1),
        make_parsed(driver="C", session_elapsed_s=10.0, row_index=2),
    ]

    keyed = assign_sort_keys(laps)

    assert [lap.driver for lap in keyed] == ["C", "B", "A"]


def test_input_laps_left_untouched(make_parsed):
    laps = [make_parsed(session_elapsed_s=5.0)]

    assign_sort_keys(laps)

    assert not hasattr(laps[0], "sort_key")
    assert assign_sort_keys([]) == []
