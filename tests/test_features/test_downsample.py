"""
Tests for LTTB downsampling
"""

import math

import pytest

from features.downsample import lttb_downsample, target_points_for_width


def series(n):
    return [{"x": float(i), "y": math.sin(i / 25.0)} for i in range(n)]


def sample(points, threshold):
    return lttb_downsample(points, threshold, lambda p: p["x"], lambda p: p["y"])


@pytest.mark.parametrize("n,threshold", [(1000, 100), (101, 3), (50, 49), (10000, 500)])
def test_output_size_and_endpoints(n, threshold):
    points = series(n)

    sampled = sample(points, threshold)

    assert len(sampled) == threshold
    assert sampled[0] is points[0]
    assert sampled[-1] is points[-1]


def test_points_stay_in_order():
    sampled = sample(series(1000), 80)
    xs = [p["x"] for p in sampled]

    assert xs == sorted(xs)
    assert len(set(xs)) == len(xs)


def test_spike_is_preserved():
    points = [{"x": float(i), "y": 0.0} for i in range(1000)]
    points[500]["y"] = 100.0

    sampled = sample(points, 50)

    assert points[500] in sampled


def test_small_inputs_returned_unchanged():
    points = series(10)

    assert sample(points, 10) == points
    assert sample(points, 20) == points
    assert sample(points, 2) == points
    assert sample(points, 10) is not points


def test_source_not_modified():
    points = series(200)
    snapshot = [dict(p) for p in points]

    sample(points, 20)

    assert points == snapshot


@pytest.mark.parametrize("width,expected", [(0, 80), (100, 80), (600, 200), (3000, 500)])
def test_target_points_for_width(width, expected):
    assert target_points_for_width(width) == expected
