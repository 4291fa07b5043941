# src/graphinsight/build/graph_index.py

"""
Graph construction utilities.

This module is responsible ONLY for:
  - validating a node/edge snapshot
  - building an immutable adjacency index (CSR arrays) from it
  - answering degree / neighbour queries
  - returning basic build statistics

It deliberately does NOT perform any analysis (centrality, communities, etc.),
keeping a clean separation of concerns. Analytics modules work on the dense
positions 0..n-1 exposed here and translate back to node ids at the end.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np
from scipy import sparse

from ..errors import InvalidGraph, NodeNotFound
from ..models import BuildStats

logger = logging.getLogger(__name__)

Edge = Tuple[int, int, float]


@dataclass
class GraphSnapshot:
    """
    Read-only input handed over by the graph/viewport module.

    `positions` maps node id → (x, y); it may be empty when only topology
    analyses are requested.
    """

    node_ids: List[int]
    edges: List[Edge]
    directed: bool = False
    positions: Dict[int, Tuple[float, float]] = field(default_factory=dict)

    @classmethod
    def from_pairs(
        cls,
        node_ids: Iterable[int],
        pairs: Iterable[Sequence[float]],
        directed: bool = False,
        positions: Optional[Dict[int, Tuple[float, float]]] = None,
    ) -> "GraphSnapshot":
        """Build a snapshot from (u, v) or (u, v, w) tuples."""
        edges: List[Edge] = []
        for pair in pairs:
            if len(pair) == 2:
                u, v = pair
                w = 1.0
            elif len(pair) == 3:
                u, v, w = pair
            else:
                raise InvalidGraph(f"Edge must be (source, target[, weight]), got {pair!r}")
            edges.append((int(u), int(v), float(w)))
        return cls(list(node_ids), edges, directed, dict(positions or {}))


def _csr(n: int, src: np.ndarray, dst: np.ndarray, w: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Sort (src, dst) pairs and return offsets / targets / weights."""
    order = np.lexsort((dst, src))
    src_sorted = src[order]
    offsets = np.zeros(n + 1, dtype=np.int64)
    if n:
        np.cumsum(np.bincount(src_sorted, minlength=n), out=offsets[1:])
    targets = dst[order].astype(np.int64)
    weights = w[order].astype(np.float64)
    for arr in (offsets, targets, weights):
        arr.flags.writeable = False
    return offsets, targets, weights


class GraphIndex:
    """
    Immutable adjacency view over one snapshot.

    Directed adjacency is stored as two CSR structures (out / in). For an
    undirected snapshot both hold every edge in both directions. The
    undirected neighbour view is the deduplicated union of both directions
    with self-loops removed.
    """

    def __init__(self, node_ids: Sequence[int], edges: Sequence[Edge], directed: bool = False) -> None:
        ids = np.asarray(list(node_ids), dtype=np.int64)
        if ids.size and ids.min() < 0:
            raise InvalidGraph("Node ids must be non-negative integers")
        ids = np.sort(ids)
        if ids.size > 1 and np.any(ids[1:] == ids[:-1]):
            dup = int(ids[1:][ids[1:] == ids[:-1]][0])
            raise InvalidGraph(f"Duplicate node id {dup}")

        self.directed = bool(directed)
        self._ids = ids
        self._ids.flags.writeable = False
        self._pos: Dict[int, int] = {int(node): i for i, node in enumerate(ids)}
        n = len(ids)

        src = np.empty(len(edges), dtype=np.int64)
        dst = np.empty(len(edges), dtype=np.int64)
        wts = np.empty(len(edges), dtype=np.float64)
        for k, edge in enumerate(edges):
            u, v = int(edge[0]), int(edge[1])
            w = float(edge[2]) if len(edge) > 2 and edge[2] is not None else 1.0
            if u not in self._pos:
                raise InvalidGraph(f"Edge {k} references undeclared source node {u}")
            if v not in self._pos:
                raise InvalidGraph(f"Edge {k} references undeclared target node {v}")
            if not math.isfinite(w) or w < 0:
                raise InvalidGraph(f"Edge {k} ({u}->{v}) has invalid weight {w!r}")
            src[k] = self._pos[u]
            dst[k] = self._pos[v]
            wts[k] = w

        self.edge_src = src
        self.edge_dst = dst
        self.edge_weight = wts
        for arr in (src, dst, wts):
            arr.flags.writeable = False

        if self.directed:
            self.out_offsets, self.out_targets, self.out_weights = _csr(n, src, dst, wts)
            self.in_offsets, self.in_targets, self.in_weights = _csr(n, dst, src, wts)
        else:
            # Each undirected edge in both directions; a self-loop only once.
            loop = src == dst
            both_src = np.concatenate([src, dst[~loop]])
            both_dst = np.concatenate([dst, src[~loop]])
            both_w = np.concatenate([wts, wts[~loop]])
            self.out_offsets, self.out_targets, self.out_weights = _csr(n, both_src, both_dst, both_w)
            self.in_offsets, self.in_targets, self.in_weights = (
                self.out_offsets,
                self.out_targets,
                self.out_weights,
            )

        # Undirected neighbour view: union of both directions, deduplicated, no self-loops.
        und_sets: List[set] = [set() for _ in range(n)]
        for u, v in zip(src.tolist(), dst.tolist()):
            if u != v:
                und_sets[u].add(v)
                und_sets[v].add(u)
        self.und_offsets = np.zeros(n + 1, dtype=np.int64)
        if n:
            np.cumsum([len(s) for s in und_sets], out=self.und_offsets[1:])
        self.und_targets = np.fromiter(
            (v for s in und_sets for v in sorted(s)), dtype=np.int64, count=int(self.und_offsets[-1])
        )
        self.und_offsets.flags.writeable = False
        self.und_targets.flags.writeable = False

        # Degrees: a self-loop counts twice in an undirected graph.
        self._out_deg = np.bincount(src, minlength=n).astype(np.int64)
        self._in_deg = np.bincount(dst, minlength=n).astype(np.int64)
        self._out_strength = np.bincount(src, weights=wts, minlength=n)
        self._in_strength = np.bincount(dst, weights=wts, minlength=n)

    # ---- factories -----------------------------------------------------------

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "GraphIndex":
        return cls(snapshot.node_ids, snapshot.edges, snapshot.directed)

    # ---- size ----------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return len(self._ids)

    @property
    def edge_count(self) -> int:
        return len(self.edge_src)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._pos

    @property
    def node_ids(self) -> np.ndarray:
        """Node ids in ascending order; dense position i ↔ node_ids[i]."""
        return self._ids

    def has_node(self, node_id: int) -> bool:
        return int(node_id) in self._pos

    def index_of(self, node_id: int) -> int:
        try:
            return self._pos[int(node_id)]
        except KeyError:
            raise NodeNotFound(node_id) from None

    def id_of(self, index: int) -> int:
        return int(self._ids[index])

    # ---- degree --------------------------------------------------------------

    def out_degree(self, node_id: int, weighted: bool = False) -> float:
        i = self.index_of(node_id)
        if not self.directed:
            return self.degree(node_id, weighted)
        return float(self._out_strength[i]) if weighted else int(self._out_deg[i])

    def in_degree(self, node_id: int, weighted: bool = False) -> float:
        i = self.index_of(node_id)
        if not self.directed:
            return self.degree(node_id, weighted)
        return float(self._in_strength[i]) if weighted else int(self._in_deg[i])

    def degree(self, node_id: int, weighted: bool = False) -> float:
        """Total degree (in + out); self-loops count twice."""
        i = self.index_of(node_id)
        if weighted:
            return float(self._out_strength[i] + self._in_strength[i])
        return int(self._out_deg[i] + self._in_deg[i])

    def degree_array(self, mode: str = "total", weighted: bool = False) -> np.ndarray:
        """Degrees for all dense positions; mode is 'total', 'out' or 'in'."""
        out = self._out_strength if weighted else self._out_deg
        inn = self._in_strength if weighted else self._in_deg
        if mode == "total" or not self.directed:
            return (out + inn).astype(np.float64)
        if mode == "out":
            return out.astype(np.float64)
        if mode == "in":
            return inn.astype(np.float64)
        raise ValueError(f"Unknown degree mode: {mode!r}")

    # ---- neighbours ----------------------------------------------------------

    def successors(self, node_id: int) -> Iterator[int]:
        i = self.index_of(node_id)
        for j in self.out_targets[self.out_offsets[i]:self.out_offsets[i + 1]]:
            yield int(self._ids[j])

    def predecessors(self, node_id: int) -> Iterator[int]:
        i = self.index_of(node_id)
        for j in self.in_targets[self.in_offsets[i]:self.in_offsets[i + 1]]:
            yield int(self._ids[j])

    def neighbors(self, node_id: int) -> Iterator[int]:
        """Undirected, deduplicated neighbours (self excluded)."""
        i = self.index_of(node_id)
        for j in self.und_targets[self.und_offsets[i]:self.und_offsets[i + 1]]:
            yield int(self._ids[j])

    def out_slice(self, i: int) -> Tuple[np.ndarray, np.ndarray]:
        """(targets, weights) of dense position i, outgoing direction."""
        lo, hi = self.out_offsets[i], self.out_offsets[i + 1]
        return self.out_targets[lo:hi], self.out_weights[lo:hi]

    def und_slice(self, i: int) -> np.ndarray:
        return self.und_targets[self.und_offsets[i]:self.und_offsets[i + 1]]

    def edges(self) -> Iterator[Edge]:
        for u, v, w in zip(self.edge_src.tolist(), self.edge_dst.tolist(), self.edge_weight.tolist()):
            yield int(self._ids[u]), int(self._ids[v]), w

    # ---- matrices ------------------------------------------------------------

    def adjacency_matrix(self, weighted: bool = False) -> sparse.csr_matrix:
        """
        A[i, j] = summed weight (or multiplicity) of edges i → j.

        Undirected snapshots produce a symmetric matrix; parallel edges add up.
        """
        n = self.node_count
        data = self.out_weights.copy() if weighted else np.ones(len(self.out_targets), dtype=np.float64)
        rows = np.repeat(np.arange(n, dtype=np.int64), np.diff(self.out_offsets))
        mat = sparse.csr_matrix((data, (rows, self.out_targets.copy())), shape=(n, n), dtype=np.float64)
        mat.sum_duplicates()
        return mat

    def to_networkx(self) -> nx.Graph:
        """
        Export to a NetworkX graph for GraphML export and validation.

        Parallel edges are merged with summed weights.
        """
        G: nx.Graph = nx.DiGraph() if self.directed else nx.Graph()
        G.add_nodes_from(int(n) for n in self._ids)
        for u, v, w in self.edges():
            if G.has_edge(u, v):
                G[u][v]["weight"] += w
            else:
                G.add_edge(u, v, weight=w)
        return G


def build_index(snapshot: GraphSnapshot) -> Tuple[GraphIndex, BuildStats]:
    """
    Build a GraphIndex from a snapshot and report basic statistics.

    Raises
    ------
    InvalidGraph
        If any edge references an undeclared node, a weight is negative or
        non-finite, or node ids repeat.
    """
    index = GraphIndex.from_snapshot(snapshot)

    pairs = set()
    parallel = 0
    for u, v in zip(index.edge_src.tolist(), index.edge_dst.tolist()):
        key = (u, v) if index.directed else (min(u, v), max(u, v))
        if key in pairs:
            parallel += 1
        pairs.add(key)

    stats = BuildStats(
        n_nodes=index.node_count,
        n_edges=index.edge_count,
        directed=index.directed,
        n_self_loops=int(np.count_nonzero(index.edge_src == index.edge_dst)),
        n_parallel_edges=parallel,
        total_weight=float(index.edge_weight.sum()),
    )
    logger.info(
        "Graph index built: %d nodes, %d edges (%s)",
        stats.n_nodes,
        stats.n_edges,
        "directed" if stats.directed else "undirected",
    )
    return index, stats
