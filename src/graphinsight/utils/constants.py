# src/graphinsight/utils/constants.py

"""
Shared constants for the analytics engine.

Defaults mirror the public configuration contract; numeric guards are kept
here so that every algorithm uses the same epsilon.
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Community detection
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_RESOLUTION = 1.0
DEFAULT_COMMUNITY_MAX_ITERATIONS = 100
DEFAULT_MIN_MODULARITY_GAIN = 1e-4

# Tolerance for the "total == sum of parts" modularity invariant
MODULARITY_TOLERANCE = 1e-6

# ─────────────────────────────────────────────────────────────────────────────
# Centrality
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_CENTRALITY_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-6
DEFAULT_DAMPING = 0.85
DEFAULT_KATZ_ALPHA = 0.1

# ─────────────────────────────────────────────────────────────────────────────
# Hulls
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_CONCAVITY = 2.0
DEFAULT_FALLBACK_RADIUS = 10.0
FALLBACK_CIRCLE_SEGMENTS = 32

# ─────────────────────────────────────────────────────────────────────────────
# Boundary physics
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_REPULSION_STRENGTH = 0.5
DEFAULT_PHYSICS_DAMPING = 0.9
DEFAULT_MAX_DISPLACEMENT = 10.0

# Safety cap used by run_until_separated() and the CLI
DEFAULT_MAX_TICKS = 500

# Overlap depth at or below this counts as touching, not overlapping
SEPARATION_SLOP = 1e-3

# ─────────────────────────────────────────────────────────────────────────────
# Numerics
# ─────────────────────────────────────────────────────────────────────────────

EPS = 1e-12
GEOMETRY_EPS = 1e-9

# ─────────────────────────────────────────────────────────────────────────────
# Visualization
# ─────────────────────────────────────────────────────────────────────────────

# Community colours, cycled by community id
COMMUNITY_PALETTE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
]

# Nodes without a community (or without a position) are drawn in grey
UNASSIGNED_COLOR = "#cccccc"
