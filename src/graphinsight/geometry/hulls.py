# src/graphinsight/geometry/hulls.py

"""
Community boundary construction.

This module builds one polygon per community from the member positions:

  - convex hull: Andrew's monotone chain, O(n log n), counter-clockwise,
    collinear points dropped
  - concave hull: Delaunay triangles (scipy.spatial) filtered by an edge
    length threshold derived from `concavity`, boundary traced into a single
    simple polygon; falls back to the convex hull whenever that is not
    possible
  - fallback circle: communities with one or two members get a sampled
    circle of `fallback_radius` around the member centroid

Degenerate inputs (duplicates, all points collinear) never raise: the convex
hull collapses to the enclosing segment or point, a concave request gets the
fallback circle.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import Delaunay, QhullError

from ..errors import NodeNotFound
from ..models import CommunityAssignment, CommunityBoundary
from ..utils.config_loader import HullConfig, HullType
from ..utils.constants import FALLBACK_CIRCLE_SEGMENTS
from .polygon import area_tolerance, centroid, contains_point, cross, signed_area

logger = logging.getLogger(__name__)

Positions = Mapping[int, Tuple[float, float]]


def convex_hull(points: np.ndarray) -> np.ndarray:
    """
    Monotone-chain convex hull.

    Returns the hull vertices counter-clockwise. Fewer than three distinct
    points, or collinear input, yields the extreme point(s): a (1, 2) or
    (2, 2) array. Collinearity is judged relative to the extent of the
    input, so the result does not depend on the coordinate scale.
    """
    pts = np.unique(np.asarray(points, dtype=np.float64), axis=0)  # sorted by x, then y
    if len(pts) <= 2:
        return pts
    tol = area_tolerance(pts)

    lower: List[np.ndarray] = []
    for p in pts:
        while len(lower) >= 2 and cross(lower[-2], lower[-1], p) <= tol:
            lower.pop()
        lower.append(p)

    upper: List[np.ndarray] = []
    for p in pts[::-1]:
        while len(upper) >= 2 and cross(upper[-2], upper[-1], p) <= tol:
            upper.pop()
        upper.append(p)

    hull = np.array(lower[:-1] + upper[:-1])
    if len(hull) < 3:
        # Collinear: the chain degenerates to the two extremes.
        return np.array([pts[0], pts[-1]])
    return hull


def fallback_circle(points: np.ndarray, radius: float) -> Tuple[np.ndarray, Tuple[float, float]]:
    """
    Sampled circle around the member centroid.

    The radius grows beyond `radius` when needed so that every member lies
    inside the sampled polygon (not just the ideal circle).
    """
    center = points.mean(axis=0)
    reach = float(np.max(np.hypot(*(points - center).T))) if len(points) else 0.0
    inset = math.cos(math.pi / FALLBACK_CIRCLE_SEGMENTS)
    r = max(radius, reach / inset * 1.01)
    angles = np.linspace(0.0, 2.0 * math.pi, FALLBACK_CIRCLE_SEGMENTS, endpoint=False)
    verts = np.column_stack([center[0] + r * np.cos(angles), center[1] + r * np.sin(angles)])
    return verts, (float(center[0]), float(center[1]))


def concave_hull(points: np.ndarray, concavity: float) -> Optional[np.ndarray]:
    """
    Alpha-shape style concave hull.

    A Delaunay triangle is kept when its longest edge is at most
    mean_edge · (1 + 2 / concavity). The boundary of the kept triangles must
    form one closed loop through vertices of degree two and enclose every
    point; otherwise None is returned and the caller uses the convex hull.
    """
    pts = np.unique(np.asarray(points, dtype=np.float64), axis=0)
    if len(pts) < 3 or len(convex_hull(pts)) < 3:
        return None
    try:
        tri = Delaunay(pts)
    except QhullError as e:
        logger.debug("Delaunay failed (%s); using convex hull", e)
        return None

    simplices = tri.simplices
    edge_len: Dict[Tuple[int, int], float] = {}
    for a, b, c in simplices.tolist():
        for u, v in ((a, b), (b, c), (c, a)):
            key = (u, v) if u < v else (v, u)
            if key not in edge_len:
                edge_len[key] = float(np.hypot(*(pts[u] - pts[v])))
    max_edge = float(np.mean(list(edge_len.values()))) * (1.0 + 2.0 / concavity)

    usage: Dict[Tuple[int, int], int] = {}
    kept = 0
    for a, b, c in simplices.tolist():
        keys = [(min(u, v), max(u, v)) for u, v in ((a, b), (b, c), (c, a))]
        if max(edge_len[k] for k in keys) > max_edge:
            continue
        kept += 1
        for k in keys:
            usage[k] = usage.get(k, 0) + 1
    if kept == 0:
        return None

    boundary = [k for k, count in usage.items() if count == 1]
    adjacency: Dict[int, List[int]] = {}
    for u, v in boundary:
        adjacency.setdefault(u, []).append(v)
        adjacency.setdefault(v, []).append(u)
    if any(len(nbrs) != 2 for nbrs in adjacency.values()):
        return None

    # Trace the loop starting from the lowest vertex index.
    start = min(adjacency)
    loop = [start]
    prev, cur = start, min(adjacency[start])
    while cur != start:
        loop.append(cur)
        a, b = adjacency[cur]
        prev, cur = cur, (b if a == prev else a)
        if len(loop) > len(boundary):
            return None
    if len(loop) != len(boundary):
        return None  # more than one loop: holes or disconnected pieces

    poly = pts[loop]
    if signed_area(poly) < 0:
        poly = poly[::-1]
    eps = 1e-7 * float(np.ptp(pts, axis=0).max())
    if not all(contains_point(poly, p, eps) for p in pts):
        return None
    return poly


def _member_points(node_ids: Sequence[int], positions: Positions) -> np.ndarray:
    coords = []
    for node in node_ids:
        node = int(node)
        if node not in positions:
            raise NodeNotFound(node, "positions")
        x, y = positions[node]
        coords.append((float(x), float(y)))
    return np.asarray(coords, dtype=np.float64).reshape(-1, 2)


def compute_hull(
    node_ids: Sequence[int],
    positions: Positions,
    config: Optional[HullConfig] = None,
    community_id: int = 0,
) -> CommunityBoundary:
    """
    Compute the boundary polygon for one community.

    Parameters
    ----------
    node_ids : Sequence[int]
        Members of the community.
    positions : Mapping[int, (x, y)]
        Current node coordinates; every member must be present.
    config : HullConfig, optional
    community_id : int
        Copied into the returned boundary.
    """
    cfg = (config or HullConfig()).validate()
    pts = _member_points(node_ids, positions)

    if len(pts) == 0:
        return CommunityBoundary(community_id, cfg.hull_type, np.empty((0, 2)), (0.0, 0.0), is_fallback=True)

    degenerate = len(pts) >= 3 and len(convex_hull(pts)) < 3
    if len(pts) <= 2 or (degenerate and cfg.hull_type is HullType.CONCAVE):
        verts, center = fallback_circle(pts, cfg.fallback_radius)
        return CommunityBoundary(community_id, cfg.hull_type, verts, center, is_fallback=True)

    hull_type = cfg.hull_type
    poly: Optional[np.ndarray] = None
    if hull_type is HullType.CONCAVE:
        poly = concave_hull(pts, cfg.concavity)
        if poly is None:
            logger.debug("community %d: concave hull unavailable, using convex hull", community_id)
            hull_type = HullType.CONVEX
    if poly is None:
        poly = convex_hull(pts)
        if len(poly) < 3:
            logger.debug("community %d: degenerate point set, hull has %d vertices", community_id, len(poly))

    return CommunityBoundary(community_id, hull_type, poly, centroid(poly))


def compute_hulls(
    assignment: CommunityAssignment,
    positions: Positions,
    config: Optional[HullConfig] = None,
) -> List[CommunityBoundary]:
    """Compute one boundary per community, in community id order."""
    cfg = (config or HullConfig()).validate()
    boundaries = [
        compute_hull(community.members.tolist(), positions, cfg, community_id=community.id)
        for community in assignment.communities
    ]
    logger.info("Computed %d %s hulls", len(boundaries), cfg.hull_type.value)
    return boundaries
