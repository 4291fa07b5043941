"""Unit tests for the GraphAnalyticsEngine facade."""

import numpy as np
import pytest

from graphinsight.build.graph_index import GraphSnapshot
from graphinsight.engine import GraphAnalyticsEngine
from graphinsight.errors import GraphAnalyticsError, InvalidConfig, InvalidGraph
from graphinsight.utils.config_loader import CentralityType, HullType

TRIANGLE_EDGES = [(0, 1), (1, 2), (0, 2), (3, 4), (4, 5), (3, 5)]
BRIDGE_POSITIONS = {0: (0.0, 0.0), 1: (2.0, 0.0), 2: (1.0, 2.0), 3: (10.0, 0.0), 4: (12.0, 0.0), 5: (11.0, 2.0)}


@pytest.fixture
def engine(bridge_snapshot: GraphSnapshot) -> GraphAnalyticsEngine:
    return GraphAnalyticsEngine(bridge_snapshot)


class TestEngineLifecycle:
    """Tests for the detect → hull → physics chain."""

    def test_build_stats(self, engine: GraphAnalyticsEngine) -> None:
        assert engine.stats.n_nodes == 6
        assert engine.stats.n_edges == 7

    def test_invalid_snapshot(self) -> None:
        with pytest.raises(InvalidGraph):
            GraphAnalyticsEngine(GraphSnapshot([0, 1], [(0, 5, 1.0)]))

    def test_community_before_detection(self, engine: GraphAnalyticsEngine) -> None:
        assert engine.get_node_community(0) is None

    def test_detect_with_mapping_config(self, engine: GraphAnalyticsEngine) -> None:
        result = engine.detect_communities({"algorithm": "leiden", "maxIterations": 20})
        assert len(result.communities) == 2
        assert engine.get_node_community(4) == 1
        assert engine.get_node_community(99) is None

    def test_hulls_require_communities(self, engine: GraphAnalyticsEngine) -> None:
        with pytest.raises(GraphAnalyticsError):
            engine.compute_hulls()

    def test_physics_requires_hulls(self, engine: GraphAnalyticsEngine) -> None:
        engine.detect_communities()
        with pytest.raises(GraphAnalyticsError):
            engine.init_boundary_physics()
        with pytest.raises(GraphAnalyticsError):
            engine.update_boundary_physics()

    def test_triangles_give_triangle_hulls(self, engine: GraphAnalyticsEngine) -> None:
        engine.detect_communities()
        hulls = engine.compute_hulls({"hullType": "convex"})
        assert [len(h.vertices) for h in hulls] == [3, 3]
        assert all(h.hull_type is HullType.CONVEX for h in hulls)

    def test_separated_hulls_do_not_move(self, engine: GraphAnalyticsEngine) -> None:
        engine.detect_communities()
        engine.compute_hulls()
        engine.init_boundary_physics()
        result = engine.update_boundary_physics()
        assert not result.has_overlaps
        assert len(result.node_ids) == 0

    def test_overlapping_hulls_are_pushed_apart(self, engine: GraphAnalyticsEngine) -> None:
        engine.detect_communities()
        shifted = dict(BRIDGE_POSITIONS)
        shifted.update({3: (1.0, 0.5), 4: (3.0, 0.5), 5: (2.0, 2.5)})
        engine.update_positions(shifted)
        engine.compute_hulls()
        engine.init_boundary_physics(config={"maxDisplacement": 5.0})
        result, totals = engine.run_until_separated(max_ticks=200)
        assert not result.has_overlaps
        assert set(totals) == set(range(6))

    def test_physics_config_round_trip(self, engine: GraphAnalyticsEngine) -> None:
        assert engine.is_boundary_physics_enabled()
        engine.set_boundary_physics_config({"enabled": False})
        assert not engine.is_boundary_physics_enabled()
        with pytest.raises(InvalidConfig):
            engine.set_boundary_physics_config({"damping": 7})
        assert not engine.is_boundary_physics_enabled()

    def test_compute_single_hull(self, engine: GraphAnalyticsEngine) -> None:
        boundary = engine.compute_hull([0, 1, 2], community_id=3)
        assert boundary.community_id == 3
        assert len(boundary.vertices) == 3


class TestEngineAnalytics:
    """Tests for centrality and connectivity through the facade."""

    def test_centrality(self, engine: GraphAnalyticsEngine) -> None:
        result = engine.compute_centrality({"type": "betweenness"})
        assert result.type is CentralityType.BETWEENNESS
        assert result.scores[2] == pytest.approx(0.6)

    def test_centrality_bulk(self, engine: GraphAnalyticsEngine) -> None:
        bulk = engine.compute_centrality_bulk({"type": "degree"})
        assert bulk.scores.dtype == np.float32
        assert len(bulk.node_ids) == 6

    def test_centrality_requires_type(self, engine: GraphAnalyticsEngine) -> None:
        with pytest.raises(InvalidConfig):
            engine.compute_centrality({"damping": 0.5})

    def test_components(self, engine: GraphAnalyticsEngine) -> None:
        assert len(engine.get_connected_components().components) == 1
        assert len(engine.get_strongly_connected_components().components) == 1
        assert engine.get_node_component(5) == 0
        assert engine.get_node_component(5, type="strong") == 0
        assert engine.get_node_component(42) is None

    def test_bridge_removed(self) -> None:
        """Scenario: without the bridge, the two triangles are separate components."""
        engine = GraphAnalyticsEngine(GraphSnapshot.from_pairs(range(6), TRIANGLE_EDGES))
        assert engine.get_node_component(0) == engine.get_node_component(2) == 0
        assert engine.get_node_component(3) == 1
        assert engine.get_connected_components() is engine.get_connected_components()
