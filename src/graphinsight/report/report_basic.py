# src/graphinsight/report/report_basic.py

"""
Basic Markdown report generation.

Summarises one analysis run:
  - Graph size stats
  - Connectivity summary (weak, and strong for directed graphs)
  - Community summary
  - Centrality statistics (top-k per measure)
  - Hull and boundary physics summary
  - Statistical validation (when requested)

The output is a Markdown-formatted string.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from ..models import BoundaryPhysicsResult, BuildStats, CentralityResult, CommunityAssignment, CommunityBoundary
from ..utils.config_loader import CentralityType


def _top_k(result: CentralityResult, k: int):
    return sorted(result.scores.items(), key=lambda kv: (-kv[1], kv[0]))[:k]


def render_report(
    stats: BuildStats,
    connectivity: Dict[str, Any],
    assignment: CommunityAssignment,
    centrality: Mapping[CentralityType, CentralityResult],
    boundaries: Sequence[CommunityBoundary] = (),
    physics: Optional[BoundaryPhysicsResult] = None,
    strong_connectivity: Optional[Dict[str, Any]] = None,
    validation: Optional[Dict[str, Any]] = None,
    title: str = "Graph Analysis Summary",
    top_k: int = 10,
) -> str:
    """
    Produce a basic Markdown report.

    Parameters
    ----------
    stats : BuildStats
        Output of build_index().
    connectivity : Dict[str, Any]
        connectivity_summary() of the weak components.
    assignment : CommunityAssignment
        Output of detect_communities().
    centrality : Mapping[CentralityType, CentralityResult]
        One entry per computed measure.
    boundaries : Sequence[CommunityBoundary]
        Hulls, if computed.
    physics : BoundaryPhysicsResult, optional
        Last tick of the boundary physics run.
    strong_connectivity : Dict[str, Any], optional
        connectivity_summary() of the strong components (directed graphs).
    validation : Dict[str, Any], optional
        Output of statistical_validation().
    title : str
        Report title
    top_k : int
        How many top nodes to list per centrality measure

    Returns
    -------
    md : str
        Markdown-formatted report
    """
    # ---------------------------------------------------------------------
    # Basic header
    # ---------------------------------------------------------------------
    md = f"# {title}\n\n"

    # ---------------------------------------------------------------------
    # Graph build statistics
    # ---------------------------------------------------------------------
    md += "## Graph Statistics\n"
    md += f"- **Nodes**: {stats.n_nodes}\n"
    md += f"- **Edges**: {stats.n_edges}\n"
    md += f"- **Directed**: {'yes' if stats.directed else 'no'}\n"
    md += f"- Self-loops: {stats.n_self_loops}\n"
    md += f"- Parallel edges: {stats.n_parallel_edges}\n"
    md += f"- Total weight: {stats.total_weight:.3f}\n"
    md += "\n"

    # ---------------------------------------------------------------------
    # Connectivity
    # ---------------------------------------------------------------------
    md += "## Connectivity\n"
    md += f"- Weakly connected components: **{connectivity['n_components']}**\n"
    md += f"- Giant component nodes: **{connectivity['giant_nodes']}**\n"
    md += f"- Fraction in giant component: **{connectivity['giant_fraction']:.3f}**\n"
    md += f"- Isolates: {connectivity['n_isolates']}\n"

    if connectivity["isolates"]:
        preview_iso = ", ".join(str(n) for n in connectivity["isolates"][:10])
        md += f"  - Examples: {preview_iso}\n"

    if strong_connectivity is not None:
        md += f"- Strongly connected components: **{strong_connectivity['n_components']}**\n"
        md += f"- Largest SCC nodes: **{strong_connectivity['giant_nodes']}**\n"

    md += "\n"

    # ---------------------------------------------------------------------
    # Communities
    # ---------------------------------------------------------------------
    md += "## Communities\n"
    md += f"- Algorithm: {assignment.algorithm.value}\n"
    md += f"- Communities: **{len(assignment.communities)}**\n"
    md += f"- Modularity: **{assignment.total_modularity:.4f}**\n"

    largest = sorted(assignment.communities, key=lambda c: (-len(c.members), c.id))[:top_k]
    if largest:
        md += "\n| Community | Size | Modularity contribution |\n"
        md += "|---|---|---|\n"
        for c in largest:
            md += f"| {c.id} | {len(c.members)} | {c.modularity:.4f} |\n"

    md += "\n"

    # ---------------------------------------------------------------------
    # Centrality overview
    # ---------------------------------------------------------------------
    for ctype, result in centrality.items():
        md += f"## Centrality: {ctype.value} (Top {top_k})\n"
        md += f"- min={result.min:.4f}, max={result.max:.4f}, mean={result.mean:.4f}"
        if ctype in (CentralityType.PAGERANK, CentralityType.EIGENVECTOR, CentralityType.KATZ):
            state = "converged" if result.converged else "NOT converged"
            md += f" ({state} after {result.iterations} iterations)"
        md += "\n"
        md += "\n".join(f"- {node}: {value:.4f}" for node, value in _top_k(result, top_k)) + "\n\n"

    # ---------------------------------------------------------------------
    # Hulls / physics
    # ---------------------------------------------------------------------
    if boundaries:
        n_fallback = sum(1 for b in boundaries if b.is_fallback)
        md += "## Community Boundaries\n"
        md += f"- Hulls: {len(boundaries)} ({n_fallback} fallback circles)\n"
        if physics is not None:
            md += f"- Boundary physics ticks: {physics.iteration}\n"
            md += f"- Overlaps remaining: {'yes' if physics.has_overlaps else 'no'}\n"
        md += "\n"

    # ---------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------
    if validation:
        md += "## Statistical Validation\n"
        quality = validation.get("community_quality", {})
        if quality:
            md += f"- Recomputed modularity: {quality['recomputed_modularity']:.6f} "
            md += f"(difference {quality['difference']:.2e})\n"
            nx_mod = quality.get("networkx_modularity")
            if nx_mod is not None:
                md += f"- NetworkX modularity: {nx_mod:.6f}\n"
        for name, corr in validation.get("centrality_correlations", {}).items():
            if isinstance(corr, dict) and "correlation" in corr:
                md += f"- Spearman {name}: ρ={corr['correlation']:.3f} (p={corr['p_value']:.3g})\n"
        dist = validation.get("degree_distribution", {})
        if "favors_power_law" in dist:
            md += f"- Degree distribution favours power law: {dist['favors_power_law']}\n"
        md += "\n"

    return md
