# src/graphinsight/analytics/communities.py

"""
Community detection utilities.

This module includes:
  - Louvain: multi-level modularity optimization (local moving + aggregation)
  - Leiden: the same, with a refinement step that splits every community
    into its connected parts before aggregation
  - compute_modularity(): an independent modularity evaluation from edges

Both algorithms optimize

    Q = Σ_c [ in_c / m − γ · (tot_c / 2m)² ]

over the undirected view of the graph (a directed edge u→v counts as an
undirected edge of the same weight). in_c is the total weight of edges
inside c (self-loops once), tot_c the summed degree of its members
(self-loops twice) and γ the resolution.

All functions are pure: they read a graph and return structures. Nodes are
visited in ascending id order and ties go to the lowest community id, so the
partition is fully deterministic.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..build.graph_index import GraphIndex
from ..models import (
    Community,
    CommunityAssignment,
    IdIndexedArray,
    ProgressCallback,
    ProgressReporter,
)
from ..utils.config_loader import CommunityAlgorithm, CommunityDetectionConfig
from ..utils.constants import EPS

logger = logging.getLogger(__name__)

# Moves must beat staying put by more than this to count as an improvement
_GAIN_EPS = 1e-12


@dataclass
class _LevelGraph:
    """Weighted undirected graph used at one level of the hierarchy."""

    neighbors: List[Dict[int, float]]  # i -> {j: summed weight}, no self-loops
    loops: List[float]  # self-loop weight per node (counted once)
    degree: List[float]  # weighted degree, self-loops counted twice
    m: float  # total edge weight

    @property
    def n(self) -> int:
        return len(self.neighbors)


def _base_level(index: GraphIndex, weighted: bool) -> _LevelGraph:
    n = index.node_count
    neighbors: List[Dict[int, float]] = [dict() for _ in range(n)]
    loops = [0.0] * n
    m = 0.0
    for u, v, w in zip(index.edge_src.tolist(), index.edge_dst.tolist(), index.edge_weight.tolist()):
        w = w if weighted else 1.0
        m += w
        if u == v:
            loops[u] += w
            continue
        neighbors[u][v] = neighbors[u].get(v, 0.0) + w
        neighbors[v][u] = neighbors[v].get(u, 0.0) + w
    degree = [sum(neighbors[i].values()) + 2.0 * loops[i] for i in range(n)]
    return _LevelGraph(neighbors, loops, degree, m)


def _compact(labels: List[int]) -> Tuple[List[int], int]:
    """Renumber labels 0..k-1 in first-appearance order."""
    remap: Dict[int, int] = {}
    out = []
    for label in labels:
        if label not in remap:
            remap[label] = len(remap)
        out.append(remap[label])
    return out, len(remap)


# ─────────────────────────────────────────────────────────────────────────────
# Phase 1: local moving
# ─────────────────────────────────────────────────────────────────────────────


def _local_moving(
    g: _LevelGraph,
    resolution: float,
    min_gain: float,
    passes_left: int,
    report: ProgressReporter,
    progress_base: float,
) -> Tuple[List[int], int, float]:
    """
    Greedy local moving.

    Returns (community per node, passes used, total modularity gained).
    """
    n = g.n
    comm = list(range(n))
    tot = list(g.degree)
    m = g.m
    two_m_sq = 2.0 * m * m
    passes = 0
    total_gain = 0.0

    while passes < passes_left:
        passes += 1
        moved = 0
        pass_gain = 0.0

        for i in range(n):
            ci = comm[i]
            ki = g.degree[i]

            # Weight from i into each neighbouring community.
            links: Dict[int, float] = {}
            for j, w in g.neighbors[i].items():
                links[comm[j]] = links.get(comm[j], 0.0) + w

            tot[ci] -= ki
            stay_gain = links.get(ci, 0.0) / m - resolution * tot[ci] * ki / two_m_sq
            best_c, best_gain = ci, stay_gain
            # Ascending order: on equal gain the lowest community id wins.
            for c in sorted(links):
                gain = links[c] / m - resolution * tot[c] * ki / two_m_sq
                if gain > best_gain + _GAIN_EPS:
                    best_c, best_gain = c, gain
            tot[best_c] += ki

            if best_c != ci:
                comm[i] = best_c
                moved += 1
                pass_gain += best_gain - stay_gain

        total_gain += pass_gain
        report(
            "local_moving",
            progress_base,
            f"pass {passes}: moved {moved} nodes, gain={pass_gain:.6f}",
        )
        if moved == 0 or pass_gain < min_gain:
            break

    return comm, passes, total_gain


# ─────────────────────────────────────────────────────────────────────────────
# Leiden refinement
# ─────────────────────────────────────────────────────────────────────────────


def _split_disconnected(neighbors: List[Dict[int, float]], comm: List[int]) -> List[int]:
    """
    Split every community into its connected parts (edges inside the
    community only). Parts keep first-discovery order by ascending node.
    """
    n = len(comm)
    refined = [-1] * n
    next_label = 0
    for start in range(n):
        if refined[start] != -1:
            continue
        c = comm[start]
        refined[start] = next_label
        queue = deque([start])
        while queue:
            v = queue.popleft()
            for w in neighbors[v]:
                if refined[w] == -1 and comm[w] == c:
                    refined[w] = next_label
                    queue.append(w)
        next_label += 1
    return refined


# ─────────────────────────────────────────────────────────────────────────────
# Phase 2: aggregation
# ─────────────────────────────────────────────────────────────────────────────


def _aggregate(g: _LevelGraph, comm: List[int], k: int) -> _LevelGraph:
    """Collapse each community into a super-node; weights accumulate."""
    neighbors: List[Dict[int, float]] = [dict() for _ in range(k)]
    loops = [0.0] * k
    degree = [0.0] * k
    for i in range(g.n):
        ci = comm[i]
        loops[ci] += g.loops[i]
        degree[ci] += g.degree[i]
        for j, w in g.neighbors[i].items():
            cj = comm[j]
            if ci == cj:
                # Each internal edge is seen from both endpoints.
                loops[ci] += w / 2.0
            else:
                neighbors[ci][cj] = neighbors[ci].get(cj, 0.0) + w
    return _LevelGraph(neighbors, loops, degree, g.m)


# ─────────────────────────────────────────────────────────────────────────────
# Modularity bookkeeping
# ─────────────────────────────────────────────────────────────────────────────


def _contributions(g: _LevelGraph, comm: List[int], k: int, resolution: float) -> List[float]:
    if g.m <= EPS:
        return [0.0] * k
    internal = [0.0] * k
    tot = [0.0] * k
    for i in range(g.n):
        ci = comm[i]
        internal[ci] += g.loops[i]
        tot[ci] += g.degree[i]
        for j, w in g.neighbors[i].items():
            if comm[j] == ci and j > i:
                internal[ci] += w
    two_m = 2.0 * g.m
    return [internal[c] / g.m - resolution * (tot[c] / two_m) ** 2 for c in range(k)]


def compute_modularity(
    index: GraphIndex,
    node_to_community: Union[Mapping[int, int], IdIndexedArray],
    resolution: float = 1.0,
    weighted: bool = False,
) -> float:
    """
    Evaluate modularity directly from the edge list.

    Independent of the optimizer's internal bookkeeping; used to verify
    CommunityAssignment.total_modularity.
    """
    n = index.node_count
    comm = [int(node_to_community[int(node)]) for node in index.node_ids]
    deg = np.zeros(n)
    internal: Dict[int, float] = {}
    m = 0.0
    for u, v, w in zip(index.edge_src.tolist(), index.edge_dst.tolist(), index.edge_weight.tolist()):
        w = w if weighted else 1.0
        m += w
        deg[u] += w
        deg[v] += w
        if comm[u] == comm[v]:
            internal[comm[u]] = internal.get(comm[u], 0.0) + w
    if m <= EPS:
        return 0.0
    tot: Dict[int, float] = {}
    for i in range(n):
        tot[comm[i]] = tot.get(comm[i], 0.0) + deg[i]
    return sum(internal.get(c, 0.0) / m - resolution * (t / (2.0 * m)) ** 2 for c, t in tot.items())


# ─────────────────────────────────────────────────────────────────────────────
# Public entry point
# ─────────────────────────────────────────────────────────────────────────────


def detect_communities(
    index: GraphIndex,
    config: Optional[CommunityDetectionConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> CommunityAssignment:
    """
    Detect communities with Louvain or Leiden.

    Parameters
    ----------
    index : GraphIndex
        Input graph (directed graphs are symmetrized).
    config : CommunityDetectionConfig, optional
        Algorithm, resolution, weighting and stopping thresholds.
    on_progress : callable, optional
        Called once per local-moving pass and once per aggregation level.

    Returns
    -------
    CommunityAssignment
        Communities numbered by their smallest member, per-community
        modularity contributions and their sum as total_modularity.
    """
    cfg = (config or CommunityDetectionConfig()).validate()
    report = ProgressReporter(on_progress)
    leiden = cfg.algorithm is CommunityAlgorithm.LEIDEN

    base = _base_level(index, cfg.weighted)
    n = base.n
    membership = list(range(n))  # original node -> node of current level

    if n > 0 and base.m > EPS:
        g = base
        passes_used = 0
        level = 0
        while passes_used < cfg.max_iterations:
            level += 1
            comm, passes, gain = _local_moving(
                g,
                cfg.resolution,
                cfg.min_modularity_gain,
                cfg.max_iterations - passes_used,
                report,
                passes_used / cfg.max_iterations,
            )
            passes_used += passes
            if leiden:
                comm = _split_disconnected(g.neighbors, comm)
            comm, k = _compact(comm)

            report(
                "aggregation",
                passes_used / cfg.max_iterations,
                f"level {level}: {g.n} -> {k} nodes, gain={gain:.6f}",
            )
            logger.debug("level %d: %d -> %d nodes (gain %.6f)", level, g.n, k, gain)

            if k == g.n:
                break
            membership = [comm[c] for c in membership]
            g = _aggregate(g, comm, k)
            if gain < cfg.min_modularity_gain:
                break

    labels = membership
    if leiden and n > 0:
        labels = _split_disconnected(base.neighbors, labels)
    labels, k = _compact(labels)

    contributions = _contributions(base, labels, k, cfg.resolution)
    ids = index.node_ids
    buckets: List[List[int]] = [[] for _ in range(k)]
    for i, c in enumerate(labels):
        buckets[c].append(i)
    communities = [
        Community(id=c, members=ids[buckets[c]].astype(np.uint32), modularity=contributions[c])
        for c in range(k)
    ]
    total = float(sum(contributions))

    report("done", 1.0, f"{k} communities, modularity={total:.4f}")
    logger.info("%s: %d communities, modularity %.4f", cfg.algorithm.value, k, total)

    return CommunityAssignment(
        node_to_community=IdIndexedArray(ids.astype(np.uint32), np.asarray(labels, dtype=np.uint32)),
        communities=communities,
        total_modularity=total,
        algorithm=cfg.algorithm,
    )
