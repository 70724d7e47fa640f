"""Dependency-graph algorithms: snapshot, cycle detection, bounded traversal."""

from __future__ import annotations

from practicedag.graph.cycles import find_cycles, has_cycle
from practicedag.graph.queries import GraphQueries, InMemoryGraphQueries
from practicedag.graph.snapshot import GraphSnapshot
from practicedag.graph.traversal import MAX_DEPTH, PATH_SEPARATOR, AncestorRow, TreeRow

__all__ = [
    "MAX_DEPTH",
    "PATH_SEPARATOR",
    "AncestorRow",
    "GraphQueries",
    "GraphSnapshot",
    "InMemoryGraphQueries",
    "TreeRow",
    "find_cycles",
    "has_cycle",
]
