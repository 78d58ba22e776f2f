"""Leaf-node geometry helpers. No engine imports."""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray
from shapely.geometry import box
from shapely.ops import unary_union


def finite_mask(points: NDArray[np.float64]) -> NDArray[np.bool_]:
    """Rows whose x and y are both finite."""
    if len(points) == 0:
        return np.zeros(0, dtype=bool)
    return np.all(np.isfinite(points), axis=1)


def is_finite_point(x: float | None, y: float | None) -> bool:
    if x is None or y is None:
        return False
    return math.isfinite(x) and math.isfinite(y)


def centroid(points: NDArray[np.float64]) -> tuple[float, float] | None:
    """Mean of the finite rows, or None when there are none."""
    if len(points) == 0:
        return None
    pts = points[finite_mask(points)]
    if len(pts) == 0:
        return None
    return (float(np.mean(pts[:, 0])), float(np.mean(pts[:, 1])))


def rect_geometry(x: float, y: float, width: float, height: float):
    """Axis-aligned rectangle anchored at its top-left corner."""
    return box(x, y, x + width, y + height)


def union_bounds(geometries: list) -> tuple[float, float, float, float] | None:
    """(minx, miny, maxx, maxy) of the union of shapely geometries."""
    if not geometries:
        return None
    merged = unary_union(geometries)
    if merged.is_empty:
        return None
    return tuple(float(v) for v in merged.bounds)


def fold_angle(degrees: float) -> float:
    """Fold an angle into [-90, 90] so rotated text never renders upside down."""
    if degrees > 90:
        return degrees - 180
    if degrees < -90:
        return degrees + 180
    return degrees


def segment_angle(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.degrees(math.atan2(y2 - y1, x2 - x1))
