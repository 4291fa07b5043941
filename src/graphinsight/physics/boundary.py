# src/graphinsight/physics/boundary.py

"""
Boundary physics: tick-driven separation of overlapping community hulls.

Each community boundary is treated as a rigid body. One tick:

  1. broad phase   – axis-aligned bounding box test over all pairs
  2. narrow phase  – separating-axis test when both polygons are convex,
                     point sampling (vertices and edge midpoints) otherwise
  3. repulsion     – depth × repulsion_strength along the separating axis,
                     split half/half with opposite signs
  4. integration   – v = v·damping + impulse, clamped to max_displacement,
                     polygon and members translated by v
  5. bookkeeping   – iteration counter, post-tick overlap re-test

The state object is owned by the caller and passed to every tick; nothing is
kept at module level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..geometry.polygon import aabb, aabb_overlap, contains_point, is_convex
from ..models import BoundaryPhysicsResult, CommunityBoundary
from ..utils.config_loader import BoundaryPhysicsConfig, HullType
from ..utils.constants import DEFAULT_MAX_TICKS, GEOMETRY_EPS, SEPARATION_SLOP

logger = logging.getLogger(__name__)


@dataclass
class _Body:
    community_id: int
    vertices: np.ndarray  # (k, 2) float64
    centroid: np.ndarray  # (2,)
    members: np.ndarray  # uint32
    convex: bool
    hull_type: HullType = HullType.CONVEX
    is_fallback: bool = False
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def translate(self, step: np.ndarray) -> None:
        self.vertices = self.vertices + step
        self.centroid = self.centroid + step


@dataclass
class BoundaryPhysicsState:
    """Per-community polygons and velocities plus the tick counter."""

    bodies: List[_Body]
    config: BoundaryPhysicsConfig
    iteration: int = 0

    def boundaries(self) -> List[CommunityBoundary]:
        """Current (translated) polygons as plain boundaries."""
        return [
            CommunityBoundary(
                community_id=b.community_id,
                hull_type=b.hull_type,
                vertices=b.vertices.copy(),
                centroid=(float(b.centroid[0]), float(b.centroid[1])),
                is_fallback=b.is_fallback,
            )
            for b in self.bodies
        ]


# ─────────────────────────────────────────────────────────────────────────────
# Narrow phase
# ─────────────────────────────────────────────────────────────────────────────


def _edge_normals(poly: np.ndarray) -> Iterable[np.ndarray]:
    k = len(poly)
    count = k if k >= 3 else k - 1  # a segment has one edge
    for i in range(count):
        edge = poly[(i + 1) % k] - poly[i]
        length = float(np.hypot(*edge))
        if length > GEOMETRY_EPS:
            yield np.array([-edge[1], edge[0]]) / length


def _orient(axis: np.ndarray, a: _Body, b: _Body) -> np.ndarray:
    """
    Flip axis so that it points from a towards b.

    When the centroids coincide along the axis the direction is fixed to
    positive x (positive y for a vertical axis), so a is pushed towards -x.
    """
    along = float(axis @ (b.centroid - a.centroid))
    if abs(along) <= GEOMETRY_EPS:
        if axis[0] < -GEOMETRY_EPS or (abs(axis[0]) <= GEOMETRY_EPS and axis[1] < 0):
            return -axis
        return axis
    if along < 0:
        return -axis
    return axis


def _sat(a: _Body, b: _Body) -> Optional[Tuple[np.ndarray, float]]:
    candidates: List[Tuple[np.ndarray, float]] = []
    for axis in list(_edge_normals(a.vertices)) + list(_edge_normals(b.vertices)):
        pa = a.vertices @ axis
        pb = b.vertices @ axis
        overlap = float(min(pa.max(), pb.max()) - max(pa.min(), pb.min()))
        if overlap <= SEPARATION_SLOP:
            return None
        candidates.append((axis, overlap))
    if not candidates:
        return None

    # Equal depths go to the most horizontal axis, then to the first one seen.
    best_depth = min(depth for _, depth in candidates)
    best_axis = None
    for axis, depth in candidates:
        if depth > best_depth + GEOMETRY_EPS:
            continue
        if best_axis is None or abs(axis[0]) > abs(best_axis[0]) + GEOMETRY_EPS:
            best_axis = axis
    return _orient(best_axis, a, b), best_depth


def _samples(poly: np.ndarray) -> np.ndarray:
    if len(poly) < 2:
        return poly
    midpoints = (poly + np.roll(poly, -1, axis=0)) / 2.0
    return np.vstack([poly, midpoints])


def _sampled(a: _Body, b: _Body) -> Optional[Tuple[np.ndarray, float]]:
    delta = b.centroid - a.centroid
    length = float(np.hypot(*delta))
    axis = delta / length if length > GEOMETRY_EPS else np.array([1.0, 0.0])

    pa = a.vertices @ axis
    pb = b.vertices @ axis
    depth = 0.0
    for p in _samples(a.vertices):
        if contains_point(b.vertices, p):
            depth = max(depth, float(p @ axis) - float(pb.min()))
    for q in _samples(b.vertices):
        if contains_point(a.vertices, q):
            depth = max(depth, float(pa.max()) - float(q @ axis))
    if depth <= SEPARATION_SLOP:
        return None
    return axis, depth


def _overlap(a: _Body, b: _Body) -> Optional[Tuple[np.ndarray, float]]:
    """(unit axis from a to b, penetration depth) or None when separated."""
    if len(a.vertices) == 0 or len(b.vertices) == 0:
        return None
    if not aabb_overlap(aabb(a.vertices), aabb(b.vertices)):
        return None
    if a.convex and b.convex and len(a.vertices) >= 3 and len(b.vertices) >= 3:
        return _sat(a, b)
    return _sampled(a, b)


def _overlapping_pairs(bodies: Sequence[_Body]) -> List[Tuple[int, int, np.ndarray, float]]:
    pairs = []
    boxes = [aabb(b.vertices) if len(b.vertices) else None for b in bodies]
    for i in range(len(bodies)):
        if boxes[i] is None:
            continue
        for j in range(i + 1, len(bodies)):
            if boxes[j] is None or not aabb_overlap(boxes[i], boxes[j]):
                continue
            hit = _overlap(bodies[i], bodies[j])
            if hit is not None:
                pairs.append((i, j, hit[0], hit[1]))
    return pairs


def _clamp_step(step: np.ndarray, limit: float) -> np.ndarray:
    """
    Scale step down to length `limit` and round it to float32.

    Displacements are reported as float32, so the rounded vector is the one
    applied and its length is kept within `limit`.
    """
    length = float(np.hypot(*step))
    if length > limit:
        step = step * (limit / length)
    out = step.astype(np.float32)
    while float(np.hypot(*out.astype(np.float64))) > limit:
        out = np.nextafter(out, np.float32(0))
    return out.astype(np.float64)


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────


def init_boundary_physics(
    boundaries: Sequence[CommunityBoundary],
    members: Mapping[int, Sequence[int]],
    config: Optional[BoundaryPhysicsConfig] = None,
) -> BoundaryPhysicsState:
    """
    Create a fresh simulation state.

    Parameters
    ----------
    boundaries : Sequence[CommunityBoundary]
        Initial polygons, typically from compute_hulls().
    members : Mapping[int, Sequence[int]]
        community id -> node ids moved with that boundary.
    config : BoundaryPhysicsConfig, optional
    """
    cfg = (config or BoundaryPhysicsConfig()).validate()
    bodies = []
    for boundary in boundaries:
        verts = np.asarray(boundary.vertices, dtype=np.float64).reshape(-1, 2)
        bodies.append(
            _Body(
                community_id=int(boundary.community_id),
                vertices=verts.copy(),
                centroid=np.asarray(boundary.centroid, dtype=np.float64),
                members=np.asarray(members.get(boundary.community_id, ()), dtype=np.uint32),
                convex=is_convex(verts),
                hull_type=boundary.hull_type,
                is_fallback=boundary.is_fallback,
            )
        )
    logger.debug("boundary physics initialised with %d bodies", len(bodies))
    return BoundaryPhysicsState(bodies=bodies, config=cfg)


def update_boundary_physics(state: BoundaryPhysicsState) -> BoundaryPhysicsResult:
    """
    Advance the simulation by one tick.

    Returns displacements for the members of every community that moved in
    this tick. With physics disabled nothing moves and the counter does not
    advance; has_overlaps still reports the current state.
    """
    cfg = state.config
    bodies = state.bodies

    if not cfg.enabled:
        return BoundaryPhysicsResult(
            node_ids=np.empty(0, dtype=np.uint32),
            displacements_x=np.empty(0, dtype=np.float32),
            displacements_y=np.empty(0, dtype=np.float32),
            has_overlaps=bool(_overlapping_pairs(bodies)),
            iteration=state.iteration,
        )

    impulses = np.zeros((len(bodies), 2))
    for i, j, axis, depth in _overlapping_pairs(bodies):
        push = axis * (depth * cfg.repulsion_strength * 0.5)
        impulses[i] -= push
        impulses[j] += push

    node_ids: List[np.ndarray] = []
    dx: List[np.ndarray] = []
    dy: List[np.ndarray] = []
    for body, impulse in zip(bodies, impulses):
        step = _clamp_step(body.velocity * cfg.damping + impulse, cfg.max_displacement)
        body.velocity = step
        if float(np.hypot(*step)) <= GEOMETRY_EPS:
            continue
        body.translate(step)
        n = len(body.members)
        node_ids.append(body.members)
        dx.append(np.full(n, step[0], dtype=np.float32))
        dy.append(np.full(n, step[1], dtype=np.float32))

    state.iteration += 1
    has_overlaps = bool(_overlapping_pairs(bodies))

    def _cat(parts: List[np.ndarray], dtype) -> np.ndarray:
        return np.concatenate(parts).astype(dtype) if parts else np.empty(0, dtype=dtype)

    return BoundaryPhysicsResult(
        node_ids=_cat(node_ids, np.uint32),
        displacements_x=_cat(dx, np.float32),
        displacements_y=_cat(dy, np.float32),
        has_overlaps=has_overlaps,
        iteration=state.iteration,
    )


def set_boundary_physics_config(state: BoundaryPhysicsState, partial: Mapping[str, Any]) -> BoundaryPhysicsConfig:
    """Merge `partial` into the state's config; takes effect on the next tick."""
    state.config = state.config.merged(partial)
    return state.config


def is_boundary_physics_enabled(state: BoundaryPhysicsState) -> bool:
    return bool(state.config.enabled)


def run_until_separated(
    state: BoundaryPhysicsState,
    max_ticks: int = DEFAULT_MAX_TICKS,
) -> Tuple[BoundaryPhysicsResult, Dict[int, Tuple[float, float]]]:
    """
    Tick until no boundaries overlap or max_ticks is reached.

    Returns
    -------
    (last_result, totals)
        totals maps node id -> accumulated (dx, dy) over all ticks run.
    """
    if max_ticks < 1:
        raise ValueError(f"max_ticks must be >= 1, got {max_ticks}")

    totals: Dict[int, Tuple[float, float]] = {}
    result = update_boundary_physics(state)
    ticks = 1
    while True:
        for node, x, y in zip(result.node_ids.tolist(), result.displacements_x.tolist(), result.displacements_y.tolist()):
            px, py = totals.get(node, (0.0, 0.0))
            totals[node] = (px + x, py + y)
        if not result.has_overlaps or not state.config.enabled or ticks >= max_ticks:
            break
        result = update_boundary_physics(state)
        ticks += 1

    if result.has_overlaps and state.config.enabled:
        logger.warning("boundary overlaps remain after %d ticks", ticks)
    else:
        logger.info("boundaries separated after %d ticks", ticks)
    return result, totals
