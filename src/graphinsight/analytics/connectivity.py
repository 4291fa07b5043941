# src/graphinsight/analytics/connectivity.py

"""
Connectivity analysis utilities.

This module provides tools for:
  - weak components (union-find, union-by-rank + path compression)
  - strong components (Tarjan, iterative, explicit stack)
  - summarizing connectivity statistics for reports

Purely analytical: no visualization, no CLI, no file I/O.

Component ids are assigned in first-discovery order, scanning nodes by
ascending id, so repeated runs on the same snapshot give identical ids.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import numpy as np

from ..build.graph_index import GraphIndex
from ..models import Component, ComponentResult, IdIndexedArray
from ..utils.config_loader import ComponentType

logger = logging.getLogger(__name__)


class UnionFind:
    """Disjoint-set forest over dense positions 0..n-1."""

    def __init__(self, n: int) -> None:
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> bool:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self.rank[ra] < self.rank[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        if self.rank[ra] == self.rank[rb]:
            self.rank[ra] += 1
        return True


def _relabel(index: GraphIndex, raw_labels: List[int], ctype: ComponentType) -> ComponentResult:
    """
    Turn arbitrary per-position labels into a ComponentResult with ids in
    first-discovery order (ascending node id).
    """
    n = index.node_count
    remap: Dict[int, int] = {}
    comp_of = np.empty(n, dtype=np.int64)
    buckets: List[List[int]] = []
    for i in range(n):
        label = raw_labels[i]
        cid = remap.get(label)
        if cid is None:
            cid = len(remap)
            remap[label] = cid
            buckets.append([])
        comp_of[i] = cid
        buckets[cid].append(i)

    ids = index.node_ids
    components = [
        Component(id=cid, members=ids[members].astype(np.uint32))
        for cid, members in enumerate(buckets)
    ]
    mapping = IdIndexedArray(ids.astype(np.uint32), comp_of.astype(np.uint32))
    return ComponentResult(type=ctype, components=components, node_to_component=mapping)


def weak_components(index: GraphIndex) -> ComponentResult:
    """
    Weakly connected components (edge direction ignored).

    Near-linear: one union per edge, amortized inverse-Ackermann finds.
    """
    uf = UnionFind(index.node_count)
    for u, v in zip(index.edge_src.tolist(), index.edge_dst.tolist()):
        uf.union(u, v)
    labels = [uf.find(i) for i in range(index.node_count)]
    result = _relabel(index, labels, ComponentType.WEAK)
    logger.info("Weak components: %d", len(result.components))
    return result


def strong_components(index: GraphIndex) -> ComponentResult:
    """
    Strongly connected components via Tarjan's algorithm.

    The DFS is driven by an explicit stack of (node, next-edge-offset)
    frames so that deep graphs do not hit the interpreter recursion limit.
    For an undirected snapshot every edge is traversable both ways, so the
    result coincides with weak_components (apart from the type tag).
    """
    n = index.node_count
    offsets = index.out_offsets
    targets = index.out_targets

    disc = [-1] * n
    low = [0] * n
    on_stack = [False] * n
    scc_stack: List[int] = []
    labels = [-1] * n
    counter = 0
    n_scc = 0

    for root in range(n):
        if disc[root] != -1:
            continue
        disc[root] = low[root] = counter
        counter += 1
        scc_stack.append(root)
        on_stack[root] = True
        call_stack = [(root, int(offsets[root]))]

        while call_stack:
            v, edge_pos = call_stack[-1]
            end = int(offsets[v + 1])
            if edge_pos < end:
                call_stack[-1] = (v, edge_pos + 1)
                w = int(targets[edge_pos])
                if disc[w] == -1:
                    disc[w] = low[w] = counter
                    counter += 1
                    scc_stack.append(w)
                    on_stack[w] = True
                    call_stack.append((w, int(offsets[w])))
                elif on_stack[w]:
                    low[v] = min(low[v], disc[w])
                continue

            # All edges of v explored: pop frame, propagate low-link.
            call_stack.pop()
            if call_stack:
                parent = call_stack[-1][0]
                low[parent] = min(low[parent], low[v])
            if low[v] == disc[v]:
                while True:
                    w = scc_stack.pop()
                    on_stack[w] = False
                    labels[w] = n_scc
                    if w == v:
                        break
                n_scc += 1

    result = _relabel(index, labels, ComponentType.STRONG)
    logger.info("Strong components: %d", len(result.components))
    return result


def find_components(index: GraphIndex, ctype: ComponentType = ComponentType.WEAK) -> ComponentResult:
    """Dispatch on the component type tag."""
    ctype = ComponentType(ctype)
    if ctype is ComponentType.STRONG:
        return strong_components(index)
    return weak_components(index)


def connectivity_summary(result: ComponentResult, index: GraphIndex) -> Dict[str, Any]:
    """
    Compute high-level connectivity statistics for a component partition.

    Returns
    -------
    Dict[str, Any]
        {
            "n_components"   : int,
            "giant_nodes"    : int,
            "giant_fraction" : float,
            "n_isolates"     : int,
            "isolates"       : List[int],   # preview only
            "giant"          : np.ndarray   # member ids of the largest component
        }
    """
    n = index.node_count
    if n == 0 or not result.components:
        return {
            "n_components": 0,
            "giant_nodes": 0,
            "giant_fraction": 0.0,
            "n_isolates": 0,
            "isolates": [],
            "giant": np.empty(0, dtype=np.uint32),
        }

    giant = max(result.components, key=lambda c: (len(c.members), -c.id))
    degrees = index.degree_array("total")
    isolates = [int(index.node_ids[i]) for i in range(n) if degrees[i] == 0]

    return {
        "n_components": len(result.components),
        "giant_nodes": len(giant.members),
        "giant_fraction": len(giant.members) / n,
        "n_isolates": len(isolates),
        "isolates": isolates[:50],
        "giant": giant.members,
    }
