# src/graphinsight/geometry/polygon.py

"""
Small polygon helpers shared by hull construction and boundary physics.

Polygons are (k, 2) float arrays in counter-clockwise order. k may be 1
(a point) or 2 (a segment) for degenerate communities; every helper accepts
those shapes.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from ..utils.constants import GEOMETRY_EPS


def cross(o: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """z-component of (a - o) × (b - o); > 0 for a left turn."""
    return float((a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0]))


def area_tolerance(points: np.ndarray) -> float:
    """
    Tolerance for cross products and areas of `points`.

    Both scale with length squared, so the bound is GEOMETRY_EPS times the
    squared extent of the point set.
    """
    if len(points) == 0:
        return 0.0
    span = float(np.ptp(points, axis=0).max())
    return GEOMETRY_EPS * span * span


def signed_area(poly: np.ndarray) -> float:
    if len(poly) < 3:
        return 0.0
    x, y = poly[:, 0], poly[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def centroid(poly: np.ndarray) -> Tuple[float, float]:
    """Area centroid; vertex mean for degenerate shapes."""
    area = signed_area(poly)
    if abs(area) <= area_tolerance(poly):
        mean = poly.mean(axis=0)
        return float(mean[0]), float(mean[1])
    x, y = poly[:, 0], poly[:, 1]
    x1, y1 = np.roll(x, -1), np.roll(y, -1)
    f = x * y1 - x1 * y
    cx = float(((x + x1) * f).sum() / (6.0 * area))
    cy = float(((y + y1) * f).sum() / (6.0 * area))
    return cx, cy


def _on_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray, eps: float) -> bool:
    ab = b - a
    length_sq = float(ab @ ab)
    if length_sq <= eps * eps:
        return float(np.hypot(*(p - a))) <= eps
    t = float((p - a) @ ab) / length_sq
    t = min(1.0, max(0.0, t))
    closest = a + t * ab
    return float(np.hypot(*(p - closest))) <= eps


def contains_point(poly: np.ndarray, p, eps: float = 1e-7) -> bool:
    """True if p lies inside poly or on its boundary (within eps)."""
    p = np.asarray(p, dtype=np.float64)
    k = len(poly)
    if k == 0:
        return False
    if k == 1:
        return float(np.hypot(*(p - poly[0]))) <= eps
    for i in range(k):
        if _on_segment(p, poly[i], poly[(i + 1) % k], eps):
            return True
    if k == 2:
        return False

    inside = False
    px, py = p
    for i in range(k):
        x1, y1 = poly[i]
        x2, y2 = poly[(i + 1) % k]
        if (y1 > py) != (y2 > py):
            x_cross = x1 + (py - y1) * (x2 - x1) / (y2 - y1)
            if px < x_cross:
                inside = not inside
    return inside


def is_convex(poly: np.ndarray) -> bool:
    """Counter-clockwise convexity check; points and segments count as convex."""
    k = len(poly)
    if k < 4:
        return True
    tol = area_tolerance(poly)
    for i in range(k):
        if cross(poly[i], poly[(i + 1) % k], poly[(i + 2) % k]) < -tol:
            return False
    return True


def aabb(poly: np.ndarray) -> Tuple[float, float, float, float]:
    """(min_x, min_y, max_x, max_y)."""
    lo = poly.min(axis=0)
    hi = poly.max(axis=0)
    return float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1])


def aabb_overlap(a: Tuple[float, float, float, float], b: Tuple[float, float, float, float]) -> bool:
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]
