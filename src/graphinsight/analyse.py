#!/usr/bin/env python3
"""
Graph Insight – Analysis Pipeline
-------------------------------------------------------
Loads a graph snapshot (JSON nodes with positions + edges), builds the
adjacency index and runs connectivity, community detection, centrality
ranking, community hull construction and optional boundary physics. Exports
GraphML, PyVis HTML, CSVs and a Markdown report. Algorithm settings come from
an optional analysis.ini; the most common ones can be overridden on the
command line.
"""

from __future__ import annotations

import argparse
import gc
import logging
import time
import warnings
from pathlib import Path
from typing import Dict, List, Optional

import networkx as nx
import psutil

from .analytics.connectivity import connectivity_summary
from .analytics.statistics import statistical_validation
from .engine import GraphAnalyticsEngine
from .errors import GraphAnalyticsError
from .loader.snapshot_loader import load_snapshot
from .models import BoundaryPhysicsResult, CentralityResult
from .report.csv_export import (
    export_centrality_csv,
    export_communities_csv,
    export_components_csv,
    export_displacements_csv,
    export_hulls_csv,
)
from .report.report_basic import render_report
from .utils.config_loader import CentralityConfig, CentralityType, load_analysis_config
from .utils.constants import DEFAULT_MAX_TICKS
from .viz.pyvis_basic import export_pyvis_with_legend

DEFAULT_MEASURES = ["degree", "pagerank", "betweenness", "eigenvector"]


# ──────────────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────────────


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Analyse a graph snapshot: communities, centrality, hulls.")
    p.add_argument(
        "--input",
        required=True,
        help="Path to the snapshot JSON ({'nodes': [...], 'edges': [...]}).",
    )
    p.add_argument(
        "--outdir",
        default="analysis",
        help="Output directory (default: ./analysis)",
    )
    p.add_argument(
        "--config",
        default="analysis.ini",
        help="INI file with [community], [hull], [centrality], [physics] sections",
    )
    p.add_argument(
        "--algorithm",
        choices=["louvain", "leiden"],
        help="Override the community detection algorithm",
    )
    p.add_argument(
        "--resolution",
        type=float,
        help="Override the modularity resolution",
    )
    p.add_argument(
        "--hull-type",
        choices=["convex", "concave"],
        help="Override the hull type",
    )
    p.add_argument(
        "--centrality",
        action="append",
        default=[],
        choices=[t.value for t in CentralityType],
        help=f"Centrality measure to compute (repeatable; default: {', '.join(DEFAULT_MEASURES)})",
    )
    p.add_argument(
        "--physics",
        action="store_true",
        help="Run boundary physics until hulls separate (or --max-ticks)",
    )
    p.add_argument(
        "--max-ticks",
        type=int,
        default=DEFAULT_MAX_TICKS,
        help="Safety cap for --physics",
    )
    p.add_argument(
        "--viz-html",
        default="graph.html",
        help="Filename for PyVis HTML under outdir ('' disables)",
    )
    p.add_argument(
        "--graphml",
        default="graph.graphml",
        help="Filename for GraphML under outdir",
    )
    p.add_argument(
        "--topk",
        type=int,
        default=10,
        help="Top-k rows to include in report summaries",
    )
    p.add_argument(
        "--validation",
        action="store_true",
        help="Perform statistical validation (Spearman correlations, modularity cross-check)",
    )
    p.add_argument(
        "--memory-monitor",
        action="store_true",
        help="Enable memory usage monitoring and GC logging",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for library messages",
    )
    return p.parse_args(argv)


# ──────────────────────────────────────────────────────────────────────────────
# Memory utilities
# ──────────────────────────────────────────────────────────────────────────────


def optimize_memory() -> None:
    """Force garbage collection and log process memory usage."""
    gc.collect()
    proc = psutil.Process()
    mem_mb = proc.memory_info().rss / 1024 / 1024
    print(f"[MEMORY] After GC: {mem_mb:.1f} MB")


# ──────────────────────────────────────────────────────────────────────────────
# Main orchestration
# ──────────────────────────────────────────────────────────────────────────────


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    input_path = Path(args.input)
    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    cfg = load_analysis_config(Path(args.config))
    if args.algorithm:
        cfg.community.algorithm = args.algorithm
    if args.resolution is not None:
        cfg.community.resolution = args.resolution
    if args.hull_type:
        cfg.hull.hull_type = args.hull_type

    start_time = time.time()

    print(f"📥 Loading snapshot from {input_path}")
    snapshot = load_snapshot(input_path)

    if args.memory_monitor:
        print("🔍 Memory monitoring enabled")
    if args.validation:
        print("📊 Statistical validation enabled")

    # Build index
    print("🧱 Building graph index …")
    engine = GraphAnalyticsEngine(snapshot)
    build_stats = engine.stats
    print(
        f"✅ Graph built: {build_stats.n_nodes} nodes, {build_stats.n_edges} edges "
        f"({'directed' if build_stats.directed else 'undirected'})"
    )

    # Connectivity
    print("🔗 Connectivity analysis …")
    weak = engine.get_connected_components()
    conn = connectivity_summary(weak, engine.index)
    print(
        f"   Components: {conn['n_components']} | "
        f"Giant: {conn['giant_nodes']} ({conn['giant_fraction']:.2%}) | "
        f"Isolates: {conn['n_isolates']}"
    )
    strong = None
    strong_conn = None
    if build_stats.directed:
        strong = engine.get_strongly_connected_components()
        strong_conn = connectivity_summary(strong, engine.index)
        print(f"   Strongly connected components: {strong_conn['n_components']}")

    # Communities
    print(f"🧩 Community detection ({cfg.community.validate().algorithm.value}) …")
    assignment = engine.detect_communities(cfg.community)
    print(f"   Detected communities: {len(assignment.communities)} (modularity {assignment.total_modularity:.4f})")

    # Centrality
    print("📈 Centrality metrics …")
    measures = args.centrality or DEFAULT_MEASURES
    if cfg.centrality is not None and cfg.centrality.type.value not in measures:
        measures = measures + [cfg.centrality.type.value]
    cent: Dict[CentralityType, CentralityResult] = {}
    for name in measures:
        ctype = CentralityType(name)
        if cfg.centrality is not None:
            ccfg = CentralityConfig(**{**vars(cfg.centrality), "type": ctype})
        else:
            ccfg = CentralityConfig(type=ctype)
        cent[ctype] = engine.compute_centrality(ccfg)
        if not cent[ctype].converged:
            print(f"[WARN] {name} did not converge in {cent[ctype].iterations} iterations")

    if args.memory_monitor:
        optimize_memory()

    # Console top-5 central nodes
    def _print_top5(result: CentralityResult) -> None:
        top5 = sorted(result.scores.items(), key=lambda kv: (-kv[1], kv[0]))[:5]
        print(f"   Top 5 by {result.type.value}:")
        for i, (node, score) in enumerate(top5, start=1):
            print(f"   {i:>2}. {node} ({score:.4f})")

    for result in cent.values():
        _print_top5(result)

    # Hulls and boundary physics
    boundaries = []
    physics_result: Optional[BoundaryPhysicsResult] = None
    if len(engine.positions) < build_stats.n_nodes:
        print("[WARN] Snapshot lacks positions for some nodes; skipping hulls and boundary physics.")
    else:
        print(f"🔷 Community hulls ({cfg.hull.validate().hull_type.value}) …")
        boundaries = engine.compute_hulls(cfg.hull)
        print(f"   Hulls: {len(boundaries)} ({sum(b.is_fallback for b in boundaries)} fallback circles)")

        if args.physics:
            engine.init_boundary_physics(config=cfg.physics)
            if not engine.is_boundary_physics_enabled():
                print("[INFO] Boundary physics disabled in config; skipping.")
            else:
                print("🧲 Boundary physics …")
                physics_result, totals = engine.run_until_separated(args.max_ticks)
                state = "separated" if not physics_result.has_overlaps else "overlaps remain"
                print(f"   {physics_result.iteration} ticks, {state}")
                export_displacements_csv(totals, outdir / "displacements.csv")

    # Statistical validation
    validation_results = None
    if args.validation:
        print("📊 Performing statistical validation …")
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=RuntimeWarning)
            validation_results = statistical_validation(
                engine.index,
                assignment,
                cent,
                resolution=cfg.community.resolution,
                weighted=cfg.community.weighted,
            )
        print(f"   Validation complete ({len(validation_results)} sections).")

    # GraphML export
    graphml_path = outdir / args.graphml
    G = engine.index.to_networkx()
    for node in G.nodes():
        G.nodes[node]["community"] = int(assignment.node_to_community[node])
        if node in engine.positions:
            G.nodes[node]["x"], G.nodes[node]["y"] = engine.positions[node]
        for ctype, result in cent.items():
            G.nodes[node][ctype.value] = float(result.scores[node])
    try:
        nx.write_graphml(G, graphml_path)
        print(f"💾 Saved GraphML → {graphml_path}")
    except (TypeError, nx.NetworkXError) as e:
        print(f"[WARN] GraphML export skipped: {e}")

    # PyVis visualization
    if args.viz_html:
        html_path = outdir / args.viz_html
        size_by = cent.get(CentralityType.PAGERANK) or next(iter(cent.values()), None)
        export_pyvis_with_legend(engine.index, engine.positions, html_path, assignment=assignment, centrality=size_by)
        print(f"🌐 Saved interactive HTML → {html_path}")

    # CSV exports
    export_communities_csv(assignment, outdir / "communities.csv")
    export_centrality_csv(cent, outdir / "centrality.csv")
    export_components_csv(weak, outdir / "components_weak.csv")
    if strong is not None:
        export_components_csv(strong, outdir / "components_strong.csv")
    if boundaries:
        export_hulls_csv(boundaries, outdir / "hulls.csv")

    # Markdown report
    print("📝 Rendering report …")
    report_md = render_report(
        stats=build_stats,
        connectivity=conn,
        assignment=assignment,
        centrality=cent,
        boundaries=boundaries,
        physics=physics_result,
        strong_connectivity=strong_conn,
        validation=validation_results,
        title=f"{input_path.stem} – Graph Analysis Report",
        top_k=args.topk,
    )
    report_path = outdir / "report.md"
    report_path.write_text(report_md, encoding="utf-8")
    print(f"📄 Saved report → {report_path}")

    elapsed = time.time() - start_time
    print(f"⏱️ Total execution time: {elapsed:.1f}s")
    print("✔️ Analysis complete.")
    return 0


def run() -> None:
    """Console-script entry point; reports library errors without a traceback."""
    try:
        raise SystemExit(main())
    except (GraphAnalyticsError, FileNotFoundError) as e:
        raise SystemExit(f"[ERROR] {e}") from None


if __name__ == "__main__":
    run()
