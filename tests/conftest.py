"""Pytest configuration and fixtures."""

from typing import Dict, Tuple

import networkx as nx
import pytest

from graphinsight.build.graph_index import GraphIndex, GraphSnapshot


TRIANGLE_EDGES = [(0, 1), (1, 2), (0, 2), (3, 4), (4, 5), (3, 5)]
BRIDGE_EDGE = (2, 3)

# Two well separated triangles
BRIDGE_POSITIONS: Dict[int, Tuple[float, float]] = {
    0: (0.0, 0.0),
    1: (2.0, 0.0),
    2: (1.0, 2.0),
    3: (10.0, 0.0),
    4: (12.0, 0.0),
    5: (11.0, 2.0),
}


@pytest.fixture
def bridge_snapshot() -> GraphSnapshot:
    """Two triangles joined by a single bridge edge 2-3, with positions."""
    return GraphSnapshot.from_pairs(range(6), TRIANGLE_EDGES + [BRIDGE_EDGE], positions=BRIDGE_POSITIONS)


@pytest.fixture
def bridge_index(bridge_snapshot: GraphSnapshot) -> GraphIndex:
    return GraphIndex.from_snapshot(bridge_snapshot)


@pytest.fixture
def two_triangles_index() -> GraphIndex:
    """The bridge graph with the bridge removed."""
    return GraphIndex(range(6), [(u, v, 1.0) for u, v in TRIANGLE_EDGES])


@pytest.fixture
def two_cycle_index() -> GraphIndex:
    """Directed 2-cycle 1 -> 2 -> 1."""
    return GraphIndex([1, 2], [(1, 2, 1.0), (2, 1, 1.0)], directed=True)


@pytest.fixture
def directed_scc_index() -> GraphIndex:
    """
    Directed graph with SCCs {0, 1, 2}, {3, 4} and the isolate {5}.

    0 -> 1 -> 2 -> 0, 2 -> 3, 3 <-> 4
    """
    edges = [(0, 1), (1, 2), (2, 0), (2, 3), (3, 4), (4, 3)]
    return GraphIndex(range(6), [(u, v, 1.0) for u, v in edges], directed=True)


@pytest.fixture
def caveman_index() -> GraphIndex:
    """Four 5-cliques connected in a ring (networkx connected caveman graph)."""
    G = nx.connected_caveman_graph(4, 5)
    return GraphIndex(sorted(G.nodes()), [(u, v, 1.0) for u, v in G.edges()])
