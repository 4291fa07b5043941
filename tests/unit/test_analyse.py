"""End-to-end tests for the analysis CLI and its report helpers."""

import csv
import json
from pathlib import Path

import networkx as nx
import pytest

from graphinsight.analyse import main, parse_args, run
from graphinsight.analytics.centrality import compute_centrality
from graphinsight.analytics.communities import detect_communities
from graphinsight.analytics.connectivity import connectivity_summary, weak_components
from graphinsight.analytics.statistics import statistical_validation
from graphinsight.build.graph_index import GraphIndex, build_index
from graphinsight.report.report_basic import render_report
from graphinsight.utils.config_loader import CentralityConfig, CentralityType


def _snapshot_file(tmp_path: Path, directed: bool = False, with_positions: bool = True) -> Path:
    G = nx.connected_caveman_graph(3, 4)
    nodes = []
    for node in sorted(G.nodes()):
        entry = {"id": node}
        if with_positions:
            clique, slot = divmod(node, 4)
            entry.update({"x": 20.0 * clique + (slot % 2) * 3.0, "y": (slot // 2) * 3.0})
        nodes.append(entry)
    edges = [{"source": u, "target": v} for u, v in G.edges()]
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"directed": directed, "nodes": nodes, "edges": edges}), encoding="utf-8")
    return path


def _read_csv(path: Path):
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


class TestCli:
    """Tests for main()."""

    def test_parse_args_defaults(self) -> None:
        args = parse_args(["--input", "g.json"])
        assert args.outdir == "analysis"
        assert args.centrality == []
        assert not args.physics

    def test_full_pipeline(self, tmp_path: Path) -> None:
        outdir = tmp_path / "out"
        code = main([
            "--input", str(_snapshot_file(tmp_path)),
            "--outdir", str(outdir),
            "--config", str(tmp_path / "missing.ini"),
            "--physics",
            "--validation",
        ])
        assert code == 0
        for name in ("graph.graphml", "graph.html", "communities.csv", "centrality.csv",
                     "components_weak.csv", "hulls.csv", "displacements.csv", "report.md"):
            assert (outdir / name).exists(), name
        assert not (outdir / "components_strong.csv").exists()

        communities = _read_csv(outdir / "communities.csv")
        assert len(communities) == 12
        assert len({row["community"] for row in communities}) == 3

        centrality = _read_csv(outdir / "centrality.csv")
        assert set(centrality[0]) == {"node", "degree", "pagerank", "betweenness", "eigenvector"}

        G = nx.read_graphml(outdir / "graph.graphml")
        assert G.number_of_nodes() == 12
        assert "community" in next(iter(G.nodes(data=True)))[1]

        report = (outdir / "report.md").read_text(encoding="utf-8")
        assert "## Communities" in report
        assert "## Statistical Validation" in report
        assert "## Community Boundaries" in report

    def test_directed_without_positions(self, tmp_path: Path, capsys) -> None:
        outdir = tmp_path / "out"
        main([
            "--input", str(_snapshot_file(tmp_path, directed=True, with_positions=False)),
            "--outdir", str(outdir),
            "--config", str(tmp_path / "missing.ini"),
            "--centrality", "closeness",
            "--algorithm", "leiden",
            "--viz-html", "",
        ])
        assert "skipping hulls" in capsys.readouterr().out
        assert (outdir / "components_strong.csv").exists()
        assert not (outdir / "hulls.csv").exists()
        assert not (outdir / "graph.html").exists()
        assert set(_read_csv(outdir / "centrality.csv")[0]) == {"node", "closeness"}

    def test_ini_overrides(self, tmp_path: Path) -> None:
        ini = tmp_path / "analysis.ini"
        ini.write_text("[hull]\nhull_type = concave\n\n[centrality]\ntype = katz\n", encoding="utf-8")
        outdir = tmp_path / "out"
        main([
            "--input", str(_snapshot_file(tmp_path)),
            "--outdir", str(outdir),
            "--config", str(ini),
            "--centrality", "degree",
        ])
        assert set(_read_csv(outdir / "centrality.csv")[0]) == {"node", "degree", "katz"}
        hulls = _read_csv(outdir / "hulls.csv")
        assert {row["community"] for row in hulls} == {"0", "1", "2"}

    def test_run_reports_missing_input(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr("sys.argv", ["graphinsight-analyse", "--input", str(tmp_path / "nope.json"),
                                         "--outdir", str(tmp_path / "out")])
        with pytest.raises(SystemExit) as excinfo:
            run()
        assert "[ERROR]" in str(excinfo.value.code)


class TestReportAndValidation:
    """Tests for render_report() and statistical_validation()."""

    @pytest.fixture
    def analysed(self, caveman_index: GraphIndex):
        assignment = detect_communities(caveman_index)
        cent = {
            ctype: compute_centrality(caveman_index, CentralityConfig(type=ctype))
            for ctype in (CentralityType.DEGREE, CentralityType.PAGERANK)
        }
        return caveman_index, assignment, cent

    def test_validation_sections(self, analysed) -> None:
        index, assignment, cent = analysed
        result = statistical_validation(index, assignment, cent)
        assert set(result) == {"degree_distribution", "community_quality", "centrality_correlations"}
        quality = result["community_quality"]
        assert quality["difference"] < 1e-6
        assert quality["networkx_modularity"] == pytest.approx(quality["reported_modularity"])
        assert "correlation" in result["centrality_correlations"]["degree_pagerank"]

    def test_validation_small_graph(self, bridge_index: GraphIndex) -> None:
        assignment = detect_communities(bridge_index)
        cent = {CentralityType.PAGERANK: compute_centrality(bridge_index, CentralityConfig(type="pagerank"))}
        result = statistical_validation(bridge_index, assignment, cent)
        assert "note" in result["degree_distribution"]
        assert "note" in result["centrality_correlations"]

    def test_report_sections(self, analysed, bridge_snapshot) -> None:
        index, assignment, cent = analysed
        _, stats = build_index(bridge_snapshot)
        md = render_report(
            stats=stats,
            connectivity=connectivity_summary(weak_components(index), index),
            assignment=assignment,
            centrality=cent,
            title="Caveman",
            top_k=3,
        )
        assert md.startswith("# Caveman")
        assert "## Centrality: pagerank (Top 3)" in md
        assert "## Community Boundaries" not in md
