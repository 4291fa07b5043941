# src/graphinsight/analytics/statistics.py

"""
Statistical validation utilities.

This module performs:

1. Degree distribution analysis:
      - Fit power-law and exponential distributions (SciPy)
      - Compare AIC values

2. Community quality:
      - Reported modularity vs. an independent recomputation from edges
      - Cross-check against networkx's modularity (undirected graphs)

3. Centrality correlations:
      - Spearman correlation of degree against every other computed measure
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import networkx as nx
import numpy as np
from scipy import stats

from ..build.graph_index import GraphIndex
from ..models import CentralityResult, CommunityAssignment
from ..utils.config_loader import CentralityType
from .communities import compute_modularity

logger = logging.getLogger(__name__)

# Below this many nodes fits and rank correlations are not meaningful
MIN_SAMPLE = 6


def _degree_distribution(index: GraphIndex) -> Dict[str, Any]:
    degrees = index.degree_array("total").astype(np.float64)
    if len(degrees) <= 10:
        return {"note": "insufficient sample size"}
    try:
        powerlaw_params = stats.powerlaw.fit(degrees)
        exponential_params = stats.expon.fit(degrees)
    except (ValueError, RuntimeError, FloatingPointError) as e:
        logger.warning("Could not fit degree distributions: %s", e)
        return {"note": "Could not fit distributions"}

    powerlaw_ll = float(stats.powerlaw.logpdf(degrees, *powerlaw_params).sum())
    exponential_ll = float(stats.expon.logpdf(degrees, *exponential_params).sum())
    powerlaw_aic = 2 * len(powerlaw_params) - 2 * powerlaw_ll
    exponential_aic = 2 * len(exponential_params) - 2 * exponential_ll
    return {
        "power_law_aic": powerlaw_aic,
        "exponential_aic": exponential_aic,
        "favors_power_law": bool(powerlaw_aic < exponential_aic),
    }


def _community_quality(
    index: GraphIndex,
    assignment: CommunityAssignment,
    resolution: float,
    weighted: bool,
) -> Dict[str, Any]:
    recomputed = compute_modularity(index, assignment.node_to_community, resolution, weighted)
    quality: Dict[str, Any] = {
        "n_communities": len(assignment.communities),
        "reported_modularity": assignment.total_modularity,
        "recomputed_modularity": recomputed,
        "difference": abs(recomputed - assignment.total_modularity),
    }

    if index.directed:
        quality["networkx_modularity"] = None
        quality["networkx_note"] = "skipped for directed graphs"
        return quality

    G = index.to_networkx()
    partition = [set(c.members.tolist()) for c in assignment.communities]
    if G.number_of_edges() == 0:
        quality["networkx_modularity"] = 0.0
        return quality
    # networkx merges parallel edges, so unweighted runs only agree on simple graphs
    quality["networkx_modularity"] = float(
        nx.algorithms.community.modularity(
            G, partition, weight="weight" if weighted else None, resolution=resolution
        )
    )
    return quality


def _centrality_correlations(centrality: Mapping[CentralityType, CentralityResult]) -> Dict[str, Any]:
    degree = centrality.get(CentralityType.DEGREE)
    if degree is None or len(degree.scores) < MIN_SAMPLE:
        return {"note": "degree centrality missing or insufficient sample size"}

    base = np.asarray(degree.scores.values, dtype=np.float64)
    out: Dict[str, Any] = {}
    for ctype, result in centrality.items():
        if ctype is CentralityType.DEGREE:
            continue
        other = np.asarray(result.scores.values, dtype=np.float64)
        if np.ptp(base) == 0 or np.ptp(other) == 0:
            out[f"degree_{ctype.value}"] = {"note": "constant scores"}
            continue
        corr = stats.spearmanr(base, other)
        out[f"degree_{ctype.value}"] = {
            "correlation": float(corr.correlation),
            "p_value": float(corr.pvalue),
        }
    return out


def statistical_validation(
    index: GraphIndex,
    assignment: CommunityAssignment,
    centrality: Mapping[CentralityType, CentralityResult],
    resolution: float = 1.0,
    weighted: bool = False,
) -> Dict[str, Any]:
    """
    Perform statistical validation of key graph properties.

    Parameters
    ----------
    index : GraphIndex
        Input graph.
    assignment : CommunityAssignment
        Output of detect_communities().
    centrality : Mapping[CentralityType, CentralityResult]
        One result per computed measure. All results share the node order
        of `index`.
    resolution, weighted
        The settings the assignment was computed with.

    Returns
    -------
    Dict[str, Any]
        Contains:
          - degree_distribution {...}
          - community_quality {...}
          - centrality_correlations {...}
    """
    return {
        "degree_distribution": _degree_distribution(index),
        "community_quality": _community_quality(index, assignment, resolution, weighted),
        "centrality_correlations": _centrality_correlations(centrality),
    }
