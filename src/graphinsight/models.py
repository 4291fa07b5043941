# src/graphinsight/models.py

"""
Result containers returned by the engine.

Id→value mappings are stored as two parallel numpy arrays (ids, values). A
dict-style index is only built the first time a caller performs a lookup,
so bulk consumers never pay for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .utils.config_loader import CentralityType, CommunityAlgorithm, ComponentType, HullType


# ─────────────────────────────────────────────────────────────────────────────
# Progress reporting
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlgorithmProgress:
    phase: str
    progress: float  # 0.0 - 1.0 within the call
    message: Optional[str] = None


ProgressCallback = Callable[[AlgorithmProgress], None]


class ProgressReporter:
    """
    Forward checkpoints to an optional callback.

    Progress values are clamped to [0, 1] and never decrease over the life
    of one reporter, whatever the caller passes in.
    """

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self._callback = callback
        self._last = 0.0

    def __call__(self, phase: str, progress: float, message: Optional[str] = None) -> None:
        if self._callback is None:
            return
        value = min(1.0, max(self._last, float(progress)))
        self._last = value
        self._callback(AlgorithmProgress(phase=phase, progress=value, message=message))


# ─────────────────────────────────────────────────────────────────────────────
# Parallel-array mapping
# ─────────────────────────────────────────────────────────────────────────────


class IdIndexedArray:
    """Read-only mapping view over parallel id/value arrays."""

    __slots__ = ("ids", "values", "_index")

    def __init__(self, ids: np.ndarray, values: np.ndarray) -> None:
        if len(ids) != len(values):
            raise ValueError("ids and values must have the same length")
        self.ids = ids
        self.values = values
        self._index: Optional[Dict[int, int]] = None

    def _lookup(self) -> Dict[int, int]:
        if self._index is None:
            self._index = {int(node): i for i, node in enumerate(self.ids)}
        return self._index

    def get(self, node_id: int, default=None):
        pos = self._lookup().get(int(node_id))
        if pos is None:
            return default
        return self.values[pos].item()

    def __getitem__(self, node_id: int):
        pos = self._lookup().get(int(node_id))
        if pos is None:
            raise KeyError(node_id)
        return self.values[pos].item()

    def __contains__(self, node_id: object) -> bool:
        try:
            return int(node_id) in self._lookup()  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[int]:
        return (int(n) for n in self.ids)

    def items(self) -> Iterator[Tuple[int, object]]:
        return ((int(n), v.item()) for n, v in zip(self.ids, self.values))

    def to_dict(self) -> Dict[int, object]:
        return dict(self.items())


# ─────────────────────────────────────────────────────────────────────────────
# Communities
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Community:
    id: int
    members: np.ndarray  # uint32 node ids, ascending
    modularity: float  # contribution to total modularity


@dataclass
class CommunityAssignment:
    node_to_community: IdIndexedArray
    communities: List[Community]
    total_modularity: float
    algorithm: CommunityAlgorithm

    def members_of(self, community_id: int) -> np.ndarray:
        return self.communities[community_id].members


# ─────────────────────────────────────────────────────────────────────────────
# Centrality
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class CentralityResult:
    type: CentralityType
    scores: IdIndexedArray
    min: float
    max: float
    mean: float
    iterations: int = 0
    converged: bool = True


@dataclass
class CentralityResultBulk:
    type: CentralityType
    node_ids: np.ndarray  # uint32
    scores: np.ndarray  # float32
    min: float
    max: float
    mean: float
    iterations: int = 0
    converged: bool = True


# ─────────────────────────────────────────────────────────────────────────────
# Components
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Component:
    id: int
    members: np.ndarray  # uint32 node ids, ascending


@dataclass
class ComponentResult:
    type: ComponentType
    components: List[Component]
    node_to_component: IdIndexedArray

    def get_node_component(self, node_id: int) -> Optional[int]:
        return self.node_to_component.get(node_id)


# ─────────────────────────────────────────────────────────────────────────────
# Geometry / physics
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class CommunityBoundary:
    community_id: int
    hull_type: HullType
    vertices: np.ndarray  # (k, 2) float64, counter-clockwise
    centroid: Tuple[float, float]
    is_fallback: bool = False

    def flat_vertices(self) -> np.ndarray:
        """Vertices as [x0, y0, x1, y1, ...] float32 for bulk upload."""
        return self.vertices.astype(np.float32).ravel()


@dataclass
class BoundaryPhysicsResult:
    node_ids: np.ndarray  # uint32
    displacements_x: np.ndarray  # float32
    displacements_y: np.ndarray  # float32
    has_overlaps: bool
    iteration: int


def summary_stats(values: Sequence[float]) -> Tuple[float, float, float]:
    """(min, max, mean) of a score vector; zeros for an empty vector."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0, 0.0, 0.0
    return float(arr.min()), float(arr.max()), float(arr.mean())


@dataclass
class BuildStats:
    n_nodes: int
    n_edges: int
    directed: bool
    n_self_loops: int = 0
    n_parallel_edges: int = 0
    total_weight: float = 0.0
