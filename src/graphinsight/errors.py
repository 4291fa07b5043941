# src/graphinsight/errors.py

"""
Exception types raised by the analytics engine.

Everything derives from GraphAnalyticsError so callers can catch the whole
family at once. The concrete types also subclass the matching built-in
(ValueError / KeyError) so generic handlers keep working.
"""

from __future__ import annotations


class GraphAnalyticsError(Exception):
    """Base exception for analytics operations."""
    pass


class InvalidConfig(GraphAnalyticsError, ValueError):
    """A configuration value is out of range or of an unknown kind."""
    pass


class InvalidGraph(GraphAnalyticsError, ValueError):
    """The snapshot is malformed (unknown endpoints, bad weights, duplicate ids)."""
    pass


class NodeNotFound(GraphAnalyticsError, KeyError):
    """A referenced node id does not exist in the graph or position table."""

    def __init__(self, node_id: int, where: str = "graph") -> None:
        super().__init__(node_id)
        self.node_id = node_id
        self.where = where

    def __str__(self) -> str:
        return f"node {self.node_id} not found in {self.where}"
