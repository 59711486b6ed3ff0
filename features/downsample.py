"""
Largest-Triangle-Three-Buckets downsampling for chart series.

Reduces a series to a target point count while keeping its visual shape.
Source data is never modified; the result references the original points.
"""

from typing import Callable, List, Sequence, TypeVar

import numpy as np


T = TypeVar("T")

MIN_TARGET_POINTS = 80
MAX_TARGET_POINTS = 500
PIXELS_PER_POINT = 3


def lttb_downsample(
    data: Sequence[T],
    threshold: int,
    get_x: Callable[[T], float],
    get_y: Callable[[T], float],
) -> List[T]:
    """
    Downsample ``data`` to ``threshold`` points with LTTB.

    The first and last points are always kept. The points in between are split
    into ``threshold - 2`` buckets of size (n - 2) / (threshold - 2); each bucket
    contributes the point forming the largest triangle with the previously
    selected point and the average point of the next bucket.

    Args:
        data: Points ordered by x
        threshold: Target point count
        get_x: X accessor
        get_y: Y accessor

    Returns:
        Sampled points (``data`` unchanged when threshold >= n or threshold <= 2)
    """
    n = len(data)
    if threshold >= n or threshold <= 2:
        return list(data)

    xs = np.fromiter((get_x(point) for point in data), dtype=float, count=n)
    ys = np.fromiter((get_y(point) for point in data), dtype=float, count=n)

    sampled = [data[0]]
    bucket_size = (n - 2) / (threshold - 2)
    previous = 0

    for i in range(threshold - 2):
        avg_start = int((i + 1) * bucket_size) + 1
        avg_end = min(int((i + 2) * bucket_size) + 1, n)
        if avg_end <= avg_start:
            # Last bucket: the next "bucket" is the final point
            avg_start, avg_end = n - 1, n
        avg_x = xs[avg_start:avg_end].mean()
        avg_y = ys[avg_start:avg_end].mean()

        range_start = int(i * bucket_size) + 1
        range_end = min(int((i + 1) * bucket_size) + 1, n)

        ax, ay = xs[previous], ys[previous]
        areas = np.abs(
            (ax - avg_x) * (ys[range_start:range_end] - ay)
            - (ax - xs[range_start:range_end]) * (avg_y - ay)
        )
        selected = range_start + int(np.argmax(areas))

        sampled.append(data[selected])
        previous = selected

    sampled.append(data[n - 1])
    return sampled


def target_points_for_width(
    container_width: float,
    min_points: int = MIN_TARGET_POINTS,
    max_points: int = MAX_TARGET_POINTS,
    pixels_per_point: int = PIXELS_PER_POINT,
) -> int:
    """Target point count for a chart of the given pixel width."""
    return max(min_points, min(int(container_width // pixels_per_point), max_points))
