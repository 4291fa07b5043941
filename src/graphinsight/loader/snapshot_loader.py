# src/graphinsight/loader/snapshot_loader.py

"""
Snapshot loading utilities.

Reads a graph snapshot from a JSON file:

    {
      "directed": false,
      "nodes": [{"id": 1, "x": 0.0, "y": 0.0}, ...],
      "edges": [{"source": 1, "target": 2, "weight": 1.0}, ...]
    }

Also accepted:
1. The same object wrapped as {"graph": {...}}.
2. "links" instead of "edges" (node-link JSON as written by networkx).
3. Bare integers in "nodes" when no positions are known.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from ..build.graph_index import Edge, GraphSnapshot
from ..errors import InvalidGraph

logger = logging.getLogger(__name__)


def _node_entry(raw: Any, i: int) -> Tuple[int, Any]:
    if isinstance(raw, dict):
        if "id" not in raw:
            raise InvalidGraph(f"nodes[{i}] has no 'id'")
        node_id = raw["id"]
        pos = (raw["x"], raw["y"]) if "x" in raw and "y" in raw else None
    else:
        node_id, pos = raw, None
    try:
        node_id = int(node_id)
    except (TypeError, ValueError):
        raise InvalidGraph(f"nodes[{i}]: id must be an integer, got {node_id!r}") from None
    if pos is not None:
        try:
            pos = (float(pos[0]), float(pos[1]))
        except (TypeError, ValueError):
            raise InvalidGraph(f"nodes[{i}]: x/y must be numbers") from None
    return node_id, pos


def _edge_entry(raw: Any, i: int) -> Edge:
    try:
        if isinstance(raw, dict):
            return int(raw["source"]), int(raw["target"]), float(raw.get("weight", 1.0))
        if len(raw) == 2:
            return int(raw[0]), int(raw[1]), 1.0
        return int(raw[0]), int(raw[1]), float(raw[2])
    except (KeyError, TypeError, ValueError, IndexError):
        raise InvalidGraph(f"edges[{i}] is malformed: {raw!r}") from None


def parse_snapshot(data: Dict[str, Any]) -> GraphSnapshot:
    """Build a GraphSnapshot from an already decoded JSON object."""
    if isinstance(data, dict) and isinstance(data.get("graph"), dict):
        data = data["graph"]
    if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
        raise InvalidGraph("Snapshot must contain a top-level 'nodes' list.")

    raw_edges = data.get("edges", data.get("links", []))
    if not isinstance(raw_edges, list):
        raise InvalidGraph("'edges' must be a list.")

    node_ids: List[int] = []
    positions: Dict[int, Tuple[float, float]] = {}
    for i, raw in enumerate(data["nodes"]):
        node_id, pos = _node_entry(raw, i)
        node_ids.append(node_id)
        if pos is not None:
            positions[node_id] = pos

    edges = [_edge_entry(raw, i) for i, raw in enumerate(raw_edges)]
    return GraphSnapshot(
        node_ids=node_ids,
        edges=edges,
        directed=bool(data.get("directed", False)),
        positions=positions,
    )


def load_snapshot(input_path: Union[str, Path]) -> GraphSnapshot:
    """
    Unified entry point.

    Parameters
    ----------
    input_path : str or Path
        JSON snapshot file.

    Returns
    -------
    GraphSnapshot

    Raises
    ------
    FileNotFoundError
        If the path does not exist.
    InvalidGraph
        If the file is not valid JSON or does not describe a graph.
    """
    path = Path(input_path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidGraph(f"Invalid JSON in {path}: {e}") from None

    snapshot = parse_snapshot(data)
    missing = len(snapshot.node_ids) - len(snapshot.positions)
    if missing:
        logger.info("%d of %d nodes have no position", missing, len(snapshot.node_ids))
    logger.info("Loaded snapshot %s: %d nodes, %d edges", path, len(snapshot.node_ids), len(snapshot.edges))
    return snapshot
