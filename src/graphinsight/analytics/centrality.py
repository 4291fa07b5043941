# src/graphinsight/analytics/centrality.py

"""
Centrality metric computations.

This module computes:
  - Degree centrality (total / in / out, optionally normalized)
  - PageRank (power iteration, uniform redistribution of dangling mass)
  - Eigenvector centrality (power iteration on A + I, unit L2 norm)
  - Katz centrality (attenuated walk counts with unit exogenous input)
  - Closeness centrality (BFS / Dijkstra, Wasserman–Faust scaling)
  - Betweenness centrality (Brandes)

Every iterative variant runs through the same convergence harness: iterate
until the relative L1 change drops below `tolerance` or `max_iterations` is
hit. Hitting the cap is not an error; the best-effort vector is returned with
converged=False.

Each variant is a pure function over a GraphIndex returning a score vector
indexed by dense position. compute_centrality() wraps it into a result.
"""

from __future__ import annotations

import heapq
import logging
from collections import deque
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from ..build.graph_index import GraphIndex
from ..models import (
    CentralityResult,
    CentralityResultBulk,
    IdIndexedArray,
    ProgressCallback,
    ProgressReporter,
    summary_stats,
)
from ..utils.config_loader import CentralityConfig, CentralityType
from ..utils.constants import EPS

logger = logging.getLogger(__name__)

# (scores, iterations, converged)
ScoreVector = Tuple[np.ndarray, int, bool]


# ─────────────────────────────────────────────────────────────────────────────
# Convergence harness
# ─────────────────────────────────────────────────────────────────────────────


def _power_iterate(
    step: Callable[[np.ndarray], np.ndarray],
    x0: np.ndarray,
    tolerance: float,
    max_iterations: int,
    report: ProgressReporter,
    phase: str,
) -> ScoreVector:
    x = x0
    for it in range(1, max_iterations + 1):
        x_new = step(x)
        delta = np.abs(x_new - x).sum() / max(np.abs(x_new).sum(), EPS)
        x = x_new
        report(phase, it / max_iterations, f"iteration {it}, delta={delta:.3e}")
        if delta < tolerance:
            return x, it, True
    logger.warning("%s did not converge within %d iterations", phase, max_iterations)
    return x, max_iterations, False


# ─────────────────────────────────────────────────────────────────────────────
# Shortest-path helpers
# ─────────────────────────────────────────────────────────────────────────────


def _simple_adjacency(index: GraphIndex, weighted: bool) -> List[List[Tuple[int, float]]]:
    """
    Outgoing adjacency without self-loops; parallel edges collapse to the
    lightest weight (or a single unit hop when unweighted).
    """
    adj: List[List[Tuple[int, float]]] = []
    for i in range(index.node_count):
        targets, weights = index.out_slice(i)
        best: Dict[int, float] = {}
        for j, w in zip(targets.tolist(), weights.tolist()):
            if j == i:
                continue
            w = w if weighted else 1.0
            if j not in best or w < best[j]:
                best[j] = w
        adj.append(sorted(best.items()))
    return adj


def _sssp(
    adj: List[List[Tuple[int, float]]],
    source: int,
    weighted: bool,
) -> Tuple[List[int], List[float], List[float], List[List[int]]]:
    """
    Single-source shortest paths.

    Returns (settle order, distances, path counts sigma, predecessor lists);
    unreachable nodes keep distance inf.
    """
    n = len(adj)
    dist = [float("inf")] * n
    sigma = [0.0] * n
    preds: List[List[int]] = [[] for _ in range(n)]
    order: List[int] = []
    dist[source] = 0.0
    sigma[source] = 1.0

    if not weighted:
        queue = deque([source])
        while queue:
            v = queue.popleft()
            order.append(v)
            for w, _ in adj[v]:
                if dist[w] == float("inf"):
                    dist[w] = dist[v] + 1.0
                    queue.append(w)
                if dist[w] == dist[v] + 1.0:
                    sigma[w] += sigma[v]
                    preds[w].append(v)
        return order, dist, sigma, preds

    seen = [False] * n
    heap = [(0.0, source, source)]
    while heap:
        d, _, v = heapq.heappop(heap)
        if seen[v]:
            continue
        seen[v] = True
        order.append(v)
        for w, weight in adj[v]:
            nd = d + weight
            if nd < dist[w] - 1e-12:
                dist[w] = nd
                sigma[w] = sigma[v]
                preds[w] = [v]
                heapq.heappush(heap, (nd, w, w))
            elif abs(nd - dist[w]) <= 1e-12 and not seen[w]:
                sigma[w] += sigma[v]
                preds[w].append(v)
    return order, dist, sigma, preds


# ─────────────────────────────────────────────────────────────────────────────
# Variants
# ─────────────────────────────────────────────────────────────────────────────


def degree_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    raw = index.degree_array(cfg.degree_mode, weighted=cfg.weighted)
    if cfg.normalized and index.node_count > 1:
        # Divides by n-1 on simple graphs; multigraphs and directed totals
        # can exceed n-1, in which case the maximum keeps scores within [0, 1].
        raw = raw / max(index.node_count - 1.0, float(raw.max()))
    report("degree", 1.0)
    return raw, 1, True


def pagerank_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    n = index.node_count
    A = index.adjacency_matrix(weighted=cfg.weighted)
    out_strength = np.asarray(A.sum(axis=1)).ravel()
    dangling = out_strength <= EPS
    inv_out = np.zeros(n)
    inv_out[~dangling] = 1.0 / out_strength[~dangling]
    AT = A.T.tocsr()
    d = cfg.damping

    def step(x: np.ndarray) -> np.ndarray:
        x_new = d * AT.dot(x * inv_out)
        x_new += (d * x[dangling].sum() + (1.0 - d)) / n
        return x_new / x_new.sum()

    return _power_iterate(step, np.full(n, 1.0 / n), cfg.tolerance, cfg.max_iterations, report, "pagerank")


def eigenvector_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    n = index.node_count
    # Shifting by I keeps the eigenvectors but makes the dominant eigenvalue
    # unique in magnitude, so bipartite graphs converge too.
    AT = index.adjacency_matrix(weighted=cfg.weighted).T.tocsr()

    def step(x: np.ndarray) -> np.ndarray:
        x_new = AT.dot(x) + x
        norm = np.linalg.norm(x_new)
        return x_new / norm if norm > EPS else x_new

    x0 = np.full(n, 1.0 / np.sqrt(n))
    x, it, ok = _power_iterate(step, x0, cfg.tolerance, cfg.max_iterations, report, "eigenvector")
    if cfg.normalized and x.max() > EPS:
        x = x / x.max()
    return x, it, ok


def katz_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    n = index.node_count
    A = index.adjacency_matrix(weighted=cfg.weighted)
    AT = A.T.tocsr()

    # Any induced matrix norm bounds the spectral radius; keep alpha below it.
    row_max = float(np.asarray(A.sum(axis=1)).max()) if A.nnz else 0.0
    col_max = float(np.asarray(A.sum(axis=0)).max()) if A.nnz else 0.0
    bound = min(row_max, col_max)
    alpha = cfg.katz_alpha
    if bound > 0 and alpha >= 1.0 / bound:
        alpha = 0.9 / bound
        logger.info("katz: attenuation %.4g capped to %.4g for convergence", cfg.katz_alpha, alpha)

    ones = np.ones(n)
    state = {"raw": ones.copy()}

    def step(x: np.ndarray) -> np.ndarray:
        raw = alpha * AT.dot(state["raw"]) + ones
        state["raw"] = raw
        return raw / np.linalg.norm(raw)

    x0 = ones / np.sqrt(n)
    x, it, ok = _power_iterate(step, x0, cfg.tolerance, cfg.max_iterations, report, "katz")
    if cfg.normalized and x.max() > EPS:
        x = x / x.max()
    return x, it, ok


def closeness_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    n = index.node_count
    adj = _simple_adjacency(index, cfg.weighted)
    scores = np.zeros(n)
    every = max(1, n // 20)

    for s in range(n):
        order, dist, _, _ = _sssp(adj, s, cfg.weighted)
        reachable = len(order)
        total = sum(dist[v] for v in order)
        if reachable > 1 and total > 0:
            scores[s] = (reachable - 1) / total * ((reachable - 1) / (n - 1))
        if (s + 1) % every == 0 or s == n - 1:
            report("closeness", (s + 1) / n)

    if cfg.normalized and scores.max() > 1.0:
        # Only reachable with edge weights below 1.
        scores = scores / scores.max()
    return scores, n, True


def betweenness_scores(index: GraphIndex, cfg: CentralityConfig, report: ProgressReporter) -> ScoreVector:
    n = index.node_count
    adj = _simple_adjacency(index, cfg.weighted)
    cb = np.zeros(n)
    every = max(1, n // 20)

    for s in range(n):
        order, _, sigma, preds = _sssp(adj, s, cfg.weighted)
        delta = [0.0] * n
        for w in reversed(order):
            coeff = (1.0 + delta[w]) / sigma[w] if sigma[w] else 0.0
            for v in preds[w]:
                delta[v] += sigma[v] * coeff
            if w != s:
                cb[w] += delta[w]
        if (s + 1) % every == 0 or s == n - 1:
            report("betweenness", (s + 1) / n)

    if not index.directed:
        cb /= 2.0
    if cfg.normalized:
        if n > 2:
            scale = (n - 1) * (n - 2)
            if not index.directed:
                scale /= 2.0
            cb /= scale
        else:
            cb[:] = 0.0
    return cb, n, True


_VARIANTS: Dict[CentralityType, Callable[[GraphIndex, CentralityConfig, ProgressReporter], ScoreVector]] = {
    CentralityType.DEGREE: degree_scores,
    CentralityType.PAGERANK: pagerank_scores,
    CentralityType.EIGENVECTOR: eigenvector_scores,
    CentralityType.KATZ: katz_scores,
    CentralityType.CLOSENESS: closeness_scores,
    CentralityType.BETWEENNESS: betweenness_scores,
}


# ─────────────────────────────────────────────────────────────────────────────
# Public entry points
# ─────────────────────────────────────────────────────────────────────────────


def _score_vector(
    index: GraphIndex,
    config: CentralityConfig,
    on_progress: Optional[ProgressCallback],
) -> ScoreVector:
    config.validate()
    report = ProgressReporter(on_progress)
    if index.node_count == 0:
        report(config.type.value, 1.0, "empty graph")
        return np.zeros(0), 0, True

    scores, iterations, converged = _VARIANTS[config.type](index, config, report)
    if not np.all(np.isfinite(scores)):
        logger.warning("%s produced non-finite scores; replacing with 0", config.type.value)
        scores = np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)
    report(config.type.value, 1.0, "done")
    return scores.astype(np.float64), iterations, converged


def compute_centrality(
    index: GraphIndex,
    config: CentralityConfig,
    on_progress: Optional[ProgressCallback] = None,
) -> CentralityResult:
    """
    Compute one centrality measure for every node.

    Parameters
    ----------
    index : GraphIndex
        Graph to rank.
    config : CentralityConfig
        `type` selects the measure; invalid values raise InvalidConfig
        before any work is done.
    on_progress : callable, optional
        Receives AlgorithmProgress checkpoints.

    Returns
    -------
    CentralityResult
        Scores keyed by node id, plus min / max / mean and the iteration
        count (equal to max_iterations when the run did not converge).
    """
    scores, iterations, converged = _score_vector(index, config, on_progress)
    lo, hi, mean = summary_stats(scores)
    return CentralityResult(
        type=config.type,
        scores=IdIndexedArray(index.node_ids.astype(np.uint32), scores),
        min=lo,
        max=hi,
        mean=mean,
        iterations=iterations,
        converged=converged,
    )


def compute_centrality_bulk(
    index: GraphIndex,
    config: CentralityConfig,
    on_progress: Optional[ProgressCallback] = None,
) -> CentralityResultBulk:
    """Same as compute_centrality(), as parallel uint32 id / float32 score arrays."""
    scores, iterations, converged = _score_vector(index, config, on_progress)
    lo, hi, mean = summary_stats(scores)
    return CentralityResultBulk(
        type=config.type,
        node_ids=index.node_ids.astype(np.uint32),
        scores=scores.astype(np.float32),
        min=lo,
        max=hi,
        mean=mean,
        iterations=iterations,
        converged=converged,
    )
