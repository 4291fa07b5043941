"""Unit tests for centrality measures."""

from typing import List

import networkx as nx
import numpy as np
import pytest

from graphinsight.analytics.centrality import compute_centrality, compute_centrality_bulk
from graphinsight.build.graph_index import GraphIndex
from graphinsight.errors import InvalidConfig
from graphinsight.models import AlgorithmProgress
from graphinsight.utils.config_loader import CentralityConfig, CentralityType


def _scores(index: GraphIndex, ctype: CentralityType, **kwargs) -> dict:
    return compute_centrality(index, CentralityConfig(type=ctype, **kwargs)).scores.to_dict()


class TestPageRank:
    """Tests for PageRank."""

    def test_two_cycle_is_uniform(self, two_cycle_index: GraphIndex) -> None:
        """Scenario: a directed 2-cycle with damping 0.85 gives 0.5 / 0.5."""
        result = compute_centrality(two_cycle_index, CentralityConfig(type="pagerank", damping=0.85))
        assert result.scores[1] == pytest.approx(0.5, abs=1e-6)
        assert result.scores[2] == pytest.approx(0.5, abs=1e-6)
        assert result.converged

    def test_sums_to_one(self, bridge_index: GraphIndex) -> None:
        scores = _scores(bridge_index, CentralityType.PAGERANK)
        assert sum(scores.values()) == pytest.approx(1.0, abs=1e-9)

    def test_matches_networkx_with_dangling_node(self, directed_scc_index: GraphIndex) -> None:
        """Node 5 has no out-edges; its mass is redistributed uniformly."""
        ours = _scores(directed_scc_index, CentralityType.PAGERANK, tolerance=1e-10, max_iterations=500)
        theirs = nx.pagerank(directed_scc_index.to_networkx(), alpha=0.85, tol=1e-12, max_iter=1000, weight=None)
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-6)

    def test_non_convergence_is_reported(self, bridge_index: GraphIndex) -> None:
        """Hitting max_iterations returns the best effort with converged=False."""
        result = compute_centrality(
            bridge_index, CentralityConfig(type="pagerank", max_iterations=1, tolerance=0.0)
        )
        assert not result.converged
        assert result.iterations == 1
        assert all(np.isfinite(v) for v in result.scores.to_dict().values())


class TestShortestPathMeasures:
    """Tests for betweenness and closeness against networkx."""

    def test_bridge_endpoints_have_highest_betweenness(self, bridge_index: GraphIndex) -> None:
        scores = _scores(bridge_index, CentralityType.BETWEENNESS)
        assert scores[2] == pytest.approx(0.6)
        assert scores[3] == pytest.approx(0.6)
        assert scores[0] == pytest.approx(0.0)

    @pytest.mark.parametrize("normalized", [True, False])
    def test_betweenness_matches_networkx(self, caveman_index: GraphIndex, normalized: bool) -> None:
        ours = _scores(caveman_index, CentralityType.BETWEENNESS, normalized=normalized)
        theirs = nx.betweenness_centrality(caveman_index.to_networkx(), normalized=normalized)
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-9)

    def test_directed_betweenness_matches_networkx(self, directed_scc_index: GraphIndex) -> None:
        ours = _scores(directed_scc_index, CentralityType.BETWEENNESS)
        theirs = nx.betweenness_centrality(directed_scc_index.to_networkx())
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-9)

    def test_weighted_betweenness_matches_networkx(self) -> None:
        edges = [(0, 1, 1.0), (1, 2, 1.0), (0, 2, 5.0), (2, 3, 1.0)]
        index = GraphIndex(range(4), edges)
        ours = _scores(index, CentralityType.BETWEENNESS, weighted=True)
        theirs = nx.betweenness_centrality(index.to_networkx(), weight="weight")
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-9)

    def test_closeness_matches_networkx(self, two_triangles_index: GraphIndex) -> None:
        """Disconnected graph: Wasserman-Faust scaling by reachable fraction."""
        ours = _scores(two_triangles_index, CentralityType.CLOSENESS)
        theirs = nx.closeness_centrality(two_triangles_index.to_networkx())
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-9)


class TestSpectralMeasures:
    """Tests for eigenvector and Katz centrality."""

    def test_eigenvector_normalized_max_is_one(self, bridge_index: GraphIndex) -> None:
        result = compute_centrality(bridge_index, CentralityConfig(type="eigenvector"))
        assert result.converged
        assert result.max == pytest.approx(1.0)
        assert result.scores[2] == pytest.approx(result.scores[3])

    def test_eigenvector_ranking_matches_networkx(self, caveman_index: GraphIndex) -> None:
        ours = _scores(caveman_index, CentralityType.EIGENVECTOR, tolerance=1e-10, max_iterations=1000)
        theirs = nx.eigenvector_centrality_numpy(caveman_index.to_networkx())
        top = max(theirs.values())
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value / top, abs=1e-4)

    def test_eigenvector_bipartite_converges(self) -> None:
        """A star is bipartite; plain power iteration would oscillate."""
        index = GraphIndex(range(5), [(0, i, 1.0) for i in range(1, 5)])
        result = compute_centrality(index, CentralityConfig(type="eigenvector", max_iterations=500))
        assert result.converged
        assert result.scores[0] == pytest.approx(1.0)

    def test_katz_alpha_is_capped(self, caveman_index: GraphIndex) -> None:
        """alpha=0.5 exceeds 1/lambda_max; the run still converges to finite scores."""
        result = compute_centrality(caveman_index, CentralityConfig(type="katz", katz_alpha=0.5))
        assert result.converged
        values = list(result.scores.to_dict().values())
        assert all(np.isfinite(values))
        assert max(values) == pytest.approx(1.0)

    def test_katz_matches_networkx(self, bridge_index: GraphIndex) -> None:
        ours = _scores(bridge_index, CentralityType.KATZ, katz_alpha=0.1, normalized=False, tolerance=1e-12)
        theirs = nx.katz_centrality_numpy(bridge_index.to_networkx(), alpha=0.1, beta=1.0)
        for node, value in theirs.items():
            assert ours[node] == pytest.approx(value, abs=1e-6)


class TestDegree:
    """Tests for degree centrality."""

    def test_normalized_degree(self, bridge_index: GraphIndex) -> None:
        scores = _scores(bridge_index, CentralityType.DEGREE)
        assert scores[2] == pytest.approx(3 / 5)
        assert scores[0] == pytest.approx(2 / 5)

    def test_raw_in_degree(self, directed_scc_index: GraphIndex) -> None:
        scores = _scores(directed_scc_index, CentralityType.DEGREE, normalized=False, degree_mode="in")
        assert scores[3] == 2
        assert scores[5] == 0


class TestCommonContract:
    """Properties shared by every centrality type."""

    @pytest.mark.parametrize("ctype", list(CentralityType))
    def test_scores_finite_and_normalized(self, directed_scc_index: GraphIndex, ctype: CentralityType) -> None:
        result = compute_centrality(directed_scc_index, CentralityConfig(type=ctype))
        values = np.array(list(result.scores.to_dict().values()))
        assert len(values) == directed_scc_index.node_count
        assert np.all(np.isfinite(values))
        assert np.all(values >= -1e-12)
        assert np.all(values <= 1.0 + 1e-9)
        assert result.min == pytest.approx(values.min())
        assert result.max == pytest.approx(values.max())
        assert result.mean == pytest.approx(values.mean())

    @pytest.mark.parametrize("ctype", list(CentralityType))
    def test_empty_graph(self, ctype: CentralityType) -> None:
        result = compute_centrality(GraphIndex([], []), CentralityConfig(type=ctype))
        assert len(result.scores) == 0
        assert (result.min, result.max, result.mean) == (0.0, 0.0, 0.0)

    def test_bulk_arrays(self, bridge_index: GraphIndex) -> None:
        bulk = compute_centrality_bulk(bridge_index, CentralityConfig(type="pagerank"))
        assert bulk.node_ids.dtype == np.uint32
        assert bulk.scores.dtype == np.float32
        assert bulk.node_ids.tolist() == [0, 1, 2, 3, 4, 5]
        single = compute_centrality(bridge_index, CentralityConfig(type="pagerank"))
        assert np.allclose(bulk.scores, single.scores.values, atol=1e-6)

    def test_progress_is_monotone(self, caveman_index: GraphIndex) -> None:
        events: List[AlgorithmProgress] = []
        compute_centrality(caveman_index, CentralityConfig(type="betweenness"), on_progress=events.append)
        progress = [e.progress for e in events]
        assert progress
        assert all(0.0 <= p <= 1.0 for p in progress)
        assert progress == sorted(progress)
        assert progress[-1] == 1.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"damping": 1.5}, {"tolerance": -1.0}, {"max_iterations": 0}, {"katz_alpha": 0.0}],
    )
    def test_invalid_config_fails_fast(self, bridge_index: GraphIndex, kwargs: dict) -> None:
        with pytest.raises(InvalidConfig):
            compute_centrality(bridge_index, CentralityConfig(type="pagerank", **kwargs))

    def test_unknown_type(self, bridge_index: GraphIndex) -> None:
        with pytest.raises(InvalidConfig):
            compute_centrality(bridge_index, CentralityConfig(type="harmonic"))
