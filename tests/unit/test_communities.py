"""Unit tests for Louvain / Leiden community detection."""

from typing import List

import networkx as nx
import pytest

from graphinsight.analytics.communities import compute_modularity, detect_communities
from graphinsight.build.graph_index import GraphIndex
from graphinsight.errors import InvalidConfig
from graphinsight.models import AlgorithmProgress, CommunityAssignment
from graphinsight.utils.config_loader import CommunityAlgorithm, CommunityDetectionConfig
from graphinsight.utils.constants import MODULARITY_TOLERANCE


def _partition(assignment: CommunityAssignment) -> List[List[int]]:
    return [c.members.tolist() for c in assignment.communities]


def _assert_partition(index: GraphIndex, assignment: CommunityAssignment) -> None:
    """Every node in exactly one community; totals add up."""
    seen = sorted(n for c in assignment.communities for n in c.members.tolist())
    assert seen == index.node_ids.tolist()
    for c in assignment.communities:
        for node in c.members.tolist():
            assert assignment.node_to_community[node] == c.id
    parts = sum(c.modularity for c in assignment.communities)
    assert abs(parts - assignment.total_modularity) <= MODULARITY_TOLERANCE


@pytest.fixture(params=[CommunityAlgorithm.LOUVAIN, CommunityAlgorithm.LEIDEN])
def algorithm(request) -> CommunityAlgorithm:
    return request.param


class TestDetectCommunities:
    """Tests for detect_communities()."""

    def test_two_triangles_with_bridge(self, bridge_index: GraphIndex, algorithm: CommunityAlgorithm) -> None:
        """Scenario: two triangles joined by a bridge are two communities."""
        result = detect_communities(bridge_index, CommunityDetectionConfig(algorithm=algorithm))
        assert _partition(result) == [[0, 1, 2], [3, 4, 5]]
        assert result.algorithm is algorithm
        assert result.total_modularity == pytest.approx(2 * (3 / 7 - 0.25))
        _assert_partition(bridge_index, result)

    def test_caveman_cliques(self, caveman_index: GraphIndex, algorithm: CommunityAlgorithm) -> None:
        result = detect_communities(caveman_index, CommunityDetectionConfig(algorithm=algorithm))
        assert _partition(result) == [list(range(i, i + 5)) for i in range(0, 20, 5)]
        _assert_partition(caveman_index, result)

    def test_modularity_matches_recomputation(self, caveman_index: GraphIndex, algorithm: CommunityAlgorithm) -> None:
        result = detect_communities(caveman_index, CommunityDetectionConfig(algorithm=algorithm))
        recomputed = compute_modularity(caveman_index, result.node_to_community)
        assert abs(recomputed - result.total_modularity) <= MODULARITY_TOLERANCE

    def test_modularity_matches_networkx(self, caveman_index: GraphIndex) -> None:
        result = detect_communities(caveman_index)
        partition = [set(c.members.tolist()) for c in result.communities]
        expected = nx.algorithms.community.modularity(caveman_index.to_networkx(), partition, weight=None)
        assert result.total_modularity == pytest.approx(expected, abs=1e-9)

    def test_deterministic(self, caveman_index: GraphIndex, algorithm: CommunityAlgorithm) -> None:
        cfg = CommunityDetectionConfig(algorithm=algorithm)
        first = detect_communities(caveman_index, cfg)
        second = detect_communities(caveman_index, cfg)
        assert _partition(first) == _partition(second)
        assert first.total_modularity == second.total_modularity

    def test_leiden_communities_are_connected(self) -> None:
        G = nx.les_miserables_graph()
        mapping = {name: i for i, name in enumerate(sorted(G.nodes()))}
        edges = [(mapping[u], mapping[v], float(d["weight"])) for u, v, d in G.edges(data=True)]
        index = GraphIndex(range(len(mapping)), edges)
        result = detect_communities(index, CommunityDetectionConfig(algorithm="leiden", weighted=True))
        H = index.to_networkx()
        for c in result.communities:
            assert nx.is_connected(H.subgraph(c.members.tolist()))
        _assert_partition(index, result)
        recomputed = compute_modularity(index, result.node_to_community, weighted=True)
        assert abs(recomputed - result.total_modularity) <= MODULARITY_TOLERANCE

    def test_higher_resolution_gives_more_communities(self, caveman_index: GraphIndex) -> None:
        low = detect_communities(caveman_index, CommunityDetectionConfig(resolution=0.1))
        high = detect_communities(caveman_index, CommunityDetectionConfig(resolution=5.0))
        assert len(high.communities) > len(low.communities)

    def test_directed_graph_is_symmetrized(self, directed_scc_index: GraphIndex) -> None:
        result = detect_communities(directed_scc_index)
        _assert_partition(directed_scc_index, result)
        assert result.node_to_community[0] == result.node_to_community[1] == result.node_to_community[2]

    def test_no_edges_gives_singletons(self) -> None:
        index = GraphIndex([3, 1, 2], [])
        result = detect_communities(index)
        assert _partition(result) == [[1], [2], [3]]
        assert result.total_modularity == 0.0

    def test_empty_graph(self) -> None:
        result = detect_communities(GraphIndex([], []))
        assert result.communities == []
        assert result.total_modularity == 0.0
        assert len(result.node_to_community) == 0

    def test_progress_events(self, caveman_index: GraphIndex) -> None:
        events: List[AlgorithmProgress] = []
        detect_communities(caveman_index, on_progress=events.append)
        phases = {e.phase for e in events}
        assert {"local_moving", "aggregation", "done"} <= phases
        progress = [e.progress for e in events]
        assert progress == sorted(progress)
        assert progress[-1] == 1.0

    def test_max_iterations_bounds_passes(self, caveman_index: GraphIndex) -> None:
        events: List[AlgorithmProgress] = []
        result = detect_communities(caveman_index, CommunityDetectionConfig(max_iterations=1), on_progress=events.append)
        assert sum(1 for e in events if e.phase == "local_moving") == 1
        _assert_partition(caveman_index, result)

    @pytest.mark.parametrize(
        "kwargs",
        [{"resolution": 0.0}, {"resolution": -1.0}, {"max_iterations": 0}, {"algorithm": "girvan-newman"}],
    )
    def test_invalid_config(self, bridge_index: GraphIndex, kwargs: dict) -> None:
        with pytest.raises(InvalidConfig):
            detect_communities(bridge_index, CommunityDetectionConfig(**kwargs))

    def test_members_of(self, bridge_index: GraphIndex) -> None:
        result = detect_communities(bridge_index)
        assert result.members_of(1).tolist() == [3, 4, 5]


class TestComputeModularity:
    """Tests for the independent modularity evaluation."""

    def test_single_community_is_zero(self, bridge_index: GraphIndex) -> None:
        assert compute_modularity(bridge_index, {n: 0 for n in range(6)}) == pytest.approx(0.0)

    def test_weighted(self) -> None:
        index = GraphIndex(range(4), [(0, 1, 5.0), (2, 3, 5.0), (1, 2, 1.0)])
        partition = {0: 0, 1: 0, 2: 1, 3: 1}
        expected = nx.algorithms.community.modularity(index.to_networkx(), [{0, 1}, {2, 3}], weight="weight")
        assert compute_modularity(index, partition, weighted=True) == pytest.approx(expected)
