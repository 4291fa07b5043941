# src/graphinsight/engine.py

"""
GraphAnalyticsEngine: one object per graph snapshot.

Thin facade over the analytics, geometry and physics modules. It owns the
GraphIndex built from the snapshot, the node positions, the most recent
community assignment and the boundary physics state, so callers can chain

    engine = GraphAnalyticsEngine(snapshot)
    engine.detect_communities()
    hulls = engine.compute_hulls()
    engine.init_boundary_physics()
    while engine.update_boundary_physics().has_overlaps: ...

Config arguments accept the dataclass or a plain mapping (snake_case or
camelCase keys).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .analytics.centrality import compute_centrality, compute_centrality_bulk
from .analytics.communities import detect_communities
from .analytics.connectivity import find_components
from .build.graph_index import GraphIndex, GraphSnapshot, build_index
from .errors import GraphAnalyticsError
from .geometry.hulls import compute_hull, compute_hulls
from .models import (
    BoundaryPhysicsResult,
    BuildStats,
    CentralityResult,
    CentralityResultBulk,
    CommunityAssignment,
    CommunityBoundary,
    ComponentResult,
    ProgressCallback,
)
from .physics import boundary as physics
from .utils.config_loader import (
    BoundaryPhysicsConfig,
    CentralityConfig,
    CommunityDetectionConfig,
    ComponentType,
    HullConfig,
)

logger = logging.getLogger(__name__)

Positions = Mapping[int, Tuple[float, float]]


def _config(cls: type, value: Union[None, Mapping[str, Any], Any]) -> Any:
    if value is None:
        return cls()
    if isinstance(value, cls):
        return value.validate()
    return cls.from_mapping(value)


class GraphAnalyticsEngine:
    """Analytics entry point bound to one immutable snapshot."""

    def __init__(self, snapshot: GraphSnapshot) -> None:
        self.snapshot = snapshot
        self.index: GraphIndex
        self.stats: BuildStats
        self.index, self.stats = build_index(snapshot)
        self.positions: Dict[int, Tuple[float, float]] = dict(snapshot.positions)

        self.communities: Optional[CommunityAssignment] = None
        self.boundaries: Optional[List[CommunityBoundary]] = None
        self._physics_config = BoundaryPhysicsConfig()
        self._physics_state: Optional[physics.BoundaryPhysicsState] = None
        self._components: Dict[ComponentType, ComponentResult] = {}

    def update_positions(self, positions: Positions) -> None:
        """Replace or extend node positions (e.g. after a layout step)."""
        self.positions.update({int(k): (float(v[0]), float(v[1])) for k, v in positions.items()})

    # ── communities ─────────────────────────────────────────────────────────

    def detect_communities(
        self,
        config: Union[None, CommunityDetectionConfig, Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommunityAssignment:
        cfg = _config(CommunityDetectionConfig, config)
        self.communities = detect_communities(self.index, cfg, on_progress)
        return self.communities

    def get_node_community(self, node_id: int) -> Optional[int]:
        """Community of a node from the last detection; None if unknown."""
        if self.communities is None:
            return None
        value = self.communities.node_to_community.get(node_id)
        return None if value is None else int(value)

    # ── hulls ───────────────────────────────────────────────────────────────

    def compute_hulls(
        self,
        config: Union[None, HullConfig, Mapping[str, Any]] = None,
        positions: Optional[Positions] = None,
    ) -> List[CommunityBoundary]:
        if self.communities is None:
            raise GraphAnalyticsError("compute_hulls() requires detect_communities() first")
        cfg = _config(HullConfig, config)
        self.boundaries = compute_hulls(self.communities, positions or self.positions, cfg)
        return self.boundaries

    def compute_hull(
        self,
        node_ids: Sequence[int],
        config: Union[None, HullConfig, Mapping[str, Any]] = None,
        positions: Optional[Positions] = None,
        community_id: int = 0,
    ) -> CommunityBoundary:
        cfg = _config(HullConfig, config)
        return compute_hull(node_ids, positions or self.positions, cfg, community_id)

    # ── boundary physics ────────────────────────────────────────────────────

    def init_boundary_physics(
        self,
        boundaries: Optional[Sequence[CommunityBoundary]] = None,
        config: Union[None, BoundaryPhysicsConfig, Mapping[str, Any]] = None,
    ) -> physics.BoundaryPhysicsState:
        """
        Start a new simulation, replacing any previous state.

        Uses the boundaries from the last compute_hulls() call unless given.
        """
        boundaries = boundaries if boundaries is not None else self.boundaries
        if boundaries is None or self.communities is None:
            raise GraphAnalyticsError("init_boundary_physics() requires detect_communities() and compute_hulls() first")
        if config is not None:
            self._physics_config = _config(BoundaryPhysicsConfig, config)
        members = {c.id: c.members for c in self.communities.communities}
        self._physics_state = physics.init_boundary_physics(boundaries, members, self._physics_config)
        return self._physics_state

    def update_boundary_physics(self) -> BoundaryPhysicsResult:
        if self._physics_state is None:
            raise GraphAnalyticsError("update_boundary_physics() requires init_boundary_physics() first")
        return physics.update_boundary_physics(self._physics_state)

    def run_until_separated(self, max_ticks: Optional[int] = None):
        if self._physics_state is None:
            raise GraphAnalyticsError("run_until_separated() requires init_boundary_physics() first")
        if max_ticks is None:
            return physics.run_until_separated(self._physics_state)
        return physics.run_until_separated(self._physics_state, max_ticks)

    def set_boundary_physics_config(self, partial: Mapping[str, Any]) -> BoundaryPhysicsConfig:
        """Merge a partial config; applies to the running simulation and later inits."""
        self._physics_config = self._physics_config.merged(partial)
        if self._physics_state is not None:
            self._physics_state.config = self._physics_config
        return self._physics_config

    def is_boundary_physics_enabled(self) -> bool:
        return bool(self._physics_config.enabled)

    # ── centrality ──────────────────────────────────────────────────────────

    def compute_centrality(
        self,
        config: Union[CentralityConfig, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> CentralityResult:
        return compute_centrality(self.index, _config(CentralityConfig, config), on_progress)

    def compute_centrality_bulk(
        self,
        config: Union[CentralityConfig, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> CentralityResultBulk:
        return compute_centrality_bulk(self.index, _config(CentralityConfig, config), on_progress)

    # ── connectivity ────────────────────────────────────────────────────────

    def _components_of(self, ctype: ComponentType) -> ComponentResult:
        # The index is immutable, so each partition is computed once.
        if ctype not in self._components:
            self._components[ctype] = find_components(self.index, ctype)
        return self._components[ctype]

    def get_connected_components(self) -> ComponentResult:
        return self._components_of(ComponentType.WEAK)

    def get_strongly_connected_components(self) -> ComponentResult:
        return self._components_of(ComponentType.STRONG)

    def get_node_component(self, node_id: int, type: Union[str, ComponentType] = ComponentType.WEAK) -> Optional[int]:
        return self._components_of(ComponentType(type)).get_node_component(node_id)
