# src/graphinsight/viz/pyvis_basic.py

"""
Basic PyVis visualization.

export_pyvis_with_legend() draws the snapshot at its own coordinates
(PyVis physics off), colours nodes by community, sizes them by an optional
centrality score and adds a floating legend with one entry per community.
The graph is not modified.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, Tuple

from pyvis.network import Network

from ..build.graph_index import GraphIndex
from ..models import CentralityResult, CommunityAssignment
from ..utils.constants import COMMUNITY_PALETTE, UNASSIGNED_COLOR

logger = logging.getLogger(__name__)

# Legend rows beyond this are summarised as "+N more"
LEGEND_MAX_ROWS = 12


def community_color(community_id: Optional[int]) -> str:
    if community_id is None:
        return UNASSIGNED_COLOR
    return COMMUNITY_PALETTE[community_id % len(COMMUNITY_PALETTE)]


def _legend_html(assignment: CommunityAssignment) -> str:
    legend_html = """
    <div id="legend" style="
        position: fixed;
        top: 10px;
        right: 10px;
        background: rgba(0,0,0,0.8);
        border: 2px solid #333;
        border-radius: 8px;
        padding: 15px;
        color: white;
        font-family: Arial, sans-serif;
        font-size: 12px;
        z-index: 999;
        max-width: 200px;
    ">
        <div style="font-weight: bold; margin-bottom: 10px;
                    border-bottom: 1px solid #555; padding-bottom: 5px;">
            Communities
        </div>
    """

    shown = sorted(assignment.communities, key=lambda c: (-len(c.members), c.id))
    for c in shown[:LEGEND_MAX_ROWS]:
        legend_html += f"""
        <div style="display: flex; align-items: center; margin-bottom: 5px;">
            <div style="
                width: 12px; height: 12px; background: {community_color(c.id)};
                border: 1px solid #333; margin-right: 8px; border-radius: 2px;">
            </div>
            <span>#{c.id} ({len(c.members)} nodes)</span>
        </div>
        """
    if len(shown) > LEGEND_MAX_ROWS:
        legend_html += f"<div>+{len(shown) - LEGEND_MAX_ROWS} more</div>"

    legend_html += "</div>"
    return legend_html


def export_pyvis_with_legend(
    index: GraphIndex,
    positions: Mapping[int, Tuple[float, float]],
    path_html: Path,
    assignment: Optional[CommunityAssignment] = None,
    centrality: Optional[CentralityResult] = None,
) -> None:
    """
    Create a PyVis HTML visualization.

    Parameters
    ----------
    index : GraphIndex
        Graph to draw.
    positions : Mapping[int, (x, y)]
        Node coordinates; nodes without one are left to PyVis' placement.
    path_html : Path
        Output HTML path.
    assignment : CommunityAssignment, optional
        Colours nodes and fills the legend.
    centrality : CentralityResult, optional
        Scales node size (10 – 40 px) by score.
    """
    net = Network(
        height="750px",
        width="100%",
        directed=index.directed,
        notebook=False,
        bgcolor="#111",
        font_color="#EEE",
        heading="",
    )
    net.toggle_physics(False)

    lo = centrality.min if centrality is not None else 0.0
    span = (centrality.max - lo) if centrality is not None else 0.0

    # ---- Add nodes ----
    for node in index.node_ids.tolist():
        cid = assignment.node_to_community.get(node) if assignment is not None else None
        title = f"node {node}"
        if cid is not None:
            title += f"<br>community={cid}"

        size = 15.0
        if centrality is not None:
            score = float(centrality.scores.get(node, 0.0))
            size = 10.0 + 30.0 * ((score - lo) / span if span > 0 else 0.0)
            title += f"<br>{centrality.type.value}={score:.4f}"

        kwargs = {}
        if node in positions:
            x, y = positions[node]
            kwargs = {"x": float(x), "y": float(y), "physics": False}

        net.add_node(
            node,
            label=str(node),
            title=title,
            color=community_color(cid),
            size=size,
            **kwargs,
        )

    # ---- Add edges ----
    for u, v, w in index.edges():
        net.add_edge(u, v, title=f"weight={w:g}", color="#888888")

    # ---- Generate HTML ----
    html = net.generate_html()
    if assignment is not None:
        html = html.replace("</body>", f"{_legend_html(assignment)}\n</body>")

    path_html.parent.mkdir(parents=True, exist_ok=True)
    path_html.write_text(html, encoding="utf-8")
    logger.info("PyVis HTML saved → %s", path_html)
