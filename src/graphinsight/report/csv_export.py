# src/graphinsight/report/csv_export.py

"""
CSV export utilities.

This module writes:
  - Community membership (node, community)
  - Centralities (node, one column per computed measure)
  - Components (node, component)
  - Hull vertices (community, vertex index, x, y)
  - Boundary physics displacements (node, dx, dy)

All functions create parent directories as needed.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..models import CentralityResult, CommunityAssignment, CommunityBoundary, ComponentResult
from ..utils.config_loader import CentralityType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helper: safe writer
# ---------------------------------------------------------------------------
def _write_csv(path: Path, rows: List[Dict[str, Any]], fieldnames: List[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in rows:
            writer.writerow(r)
    logger.info("Saved CSV → %s", path)


# ---------------------------------------------------------------------------
# COMMUNITIES
# ---------------------------------------------------------------------------
def export_communities_csv(assignment: CommunityAssignment, path: Path) -> None:
    """
    Write node → community rows, plus each community's size and modularity
    contribution for convenience.
    """
    sizes = {c.id: len(c.members) for c in assignment.communities}
    contrib = {c.id: c.modularity for c in assignment.communities}
    rows = []
    for node, cid in sorted(assignment.node_to_community.items()):
        rows.append({
            "node": node,
            "community": cid,
            "community_size": sizes[cid],
            "community_modularity": f"{contrib[cid]:.6f}",
        })

    _write_csv(path, rows, ["node", "community", "community_size", "community_modularity"])


# ---------------------------------------------------------------------------
# CENTRALITY
# ---------------------------------------------------------------------------
def export_centrality_csv(centrality: Mapping[CentralityType, CentralityResult], path: Path) -> None:
    """
    Write one row per node with a column per computed measure:
      node, pagerank, betweenness, ...
    """
    measures = list(centrality.keys())
    if not measures:
        _write_csv(path, [], ["node"])
        return

    nodes = sorted(centrality[measures[0]].scores)
    rows = []
    for node in nodes:
        row: Dict[str, Any] = {"node": node}
        for m in measures:
            row[m.value] = f"{float(centrality[m].scores.get(node, 0.0)):.6f}"
        rows.append(row)

    _write_csv(path, rows, ["node"] + [m.value for m in measures])


# ---------------------------------------------------------------------------
# COMPONENTS
# ---------------------------------------------------------------------------
def export_components_csv(result: ComponentResult, path: Path) -> None:
    """Write node → component id for one partition (weak or strong)."""
    rows = [
        {"node": node, "component": comp, "type": result.type.value}
        for node, comp in sorted(result.node_to_component.items())
    ]
    _write_csv(path, rows, ["node", "component", "type"])


# ---------------------------------------------------------------------------
# HULLS
# ---------------------------------------------------------------------------
def export_hulls_csv(boundaries: Sequence[CommunityBoundary], path: Path) -> None:
    """
    Write hull polygons as vertex rows:
      community, hull_type, is_fallback, vertex, x, y
    """
    rows = []
    for b in boundaries:
        hull_type = b.hull_type.value if b.hull_type is not None else ""
        for i, (x, y) in enumerate(b.vertices.tolist()):
            rows.append({
                "community": b.community_id,
                "hull_type": hull_type,
                "is_fallback": int(b.is_fallback),
                "vertex": i,
                "x": f"{x:.6f}",
                "y": f"{y:.6f}",
            })

    _write_csv(path, rows, ["community", "hull_type", "is_fallback", "vertex", "x", "y"])


# ---------------------------------------------------------------------------
# BOUNDARY PHYSICS
# ---------------------------------------------------------------------------
def export_displacements_csv(totals: Mapping[int, Tuple[float, float]], path: Path) -> None:
    """Write accumulated per-node displacement from a physics run."""
    rows = [
        {"node": node, "dx": f"{dx:.6f}", "dy": f"{dy:.6f}"}
        for node, (dx, dy) in sorted(totals.items())
    ]
    _write_csv(path, rows, ["node", "dx", "dy"])
