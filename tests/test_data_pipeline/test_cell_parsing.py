"""
Tests for lenient cell parsers and time helpers
"""

import math

import pytest

from app.utils.time_utils import format_lap_time, lap_time_to_seconds, parse_epoch_seconds
from app.utils.validators import clean_text, is_blank, parse_float, parse_int


@pytest.mark.parametrize("raw,expected", [
    ("30.412", 30.412),
    (" 12.5s ", 12.5),
    ("1,5", 1.0),
    ("-3", -3.0),
    (".5", 0.5),
    ("1e3", 1000.0),
    (42, 42.0),
    ("abc", None),
    ("", None),
    (None, None),
    (float("nan"), None),
    ("inf", None),
])
def test_parse_float(raw, expected):
    assert parse_float(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("3", 3),
    ("3.7", 3),
    (4.9, 4),
    ("-2", -2),
    ("x1", None),
    ("", None),
])
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


def test_blank_and_text():
    assert is_blank("   ")
    assert is_blank(math.nan)
    assert not is_blank(0)
    assert clean_text("  Spa ") == "Spa"
    assert clean_text(None) == ""


def test_lap_time_formatting():
    assert format_lap_time(83.456) == "1:23.456"
    assert format_lap_time(30.5) == "30.500"
    assert format_lap_time(None) == "—"
    assert lap_time_to_seconds("1:23.456") == pytest.approx(83.456)

    with pytest.raises(ValueError):
        lap_time_to_seconds("1:2:3")


def test_parse_epoch_seconds_mixed_inputs():
    epochs = parse_epoch_seconds(["1970-01-01T00:01:00", "", None, "garbage"])

    assert epochs == [60.0, None, None, None]
