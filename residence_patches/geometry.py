"""Planar distance and polygon helpers shared by the pipeline stages."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from shapely.geometry import MultiPoint
from shapely.geometry.base import BaseGeometry


def simple_dist(x: Sequence[float], y: Sequence[float]) -> np.ndarray:
    """
    Euclidean distance between successive points.

    The first element is NaN since it has no predecessor. A single point yields
    ``[0.0]`` and no points yield an empty array.
    """

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if len(x_arr) != len(y_arr):
        raise ValueError("x and y must have the same length")
    if len(x_arr) == 0:
        return np.array([], dtype=float)
    if len(x_arr) == 1:
        return np.array([0.0])
    steps = np.hypot(np.diff(x_arr), np.diff(y_arr))
    return np.concatenate([[np.nan], steps])


def point_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return float(math.hypot(x2 - x1, y2 - y1))


def buffer_union(x: Sequence[float], y: Sequence[float], buffer_size: float) -> BaseGeometry:
    """Union of circular buffers of radius ``buffer_size`` around each point."""

    points = MultiPoint(list(zip(np.asarray(x, dtype=float), np.asarray(y, dtype=float))))
    # Buffering the collection dissolves overlapping discs in one pass.
    return points.buffer(buffer_size)


def circularity(geom: BaseGeometry) -> float:
    """Isoperimetric quotient 4*pi*area / perimeter**2 (1.0 for a disc)."""

    if geom.is_empty or geom.length == 0:
        return float("nan")
    return float(4.0 * math.pi * geom.area / geom.length**2)
