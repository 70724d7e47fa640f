"""The four graph queries, behind one interface with two adapters.

GraphQueries owns the query semantics: it asks an adapter for raw traversal
levels, practice records and edges, and shapes them with the shared helpers
in practicedag.graph.traversal. InMemoryGraphQueries answers from practice
and dependency records; the SQLite adapter lives in
practicedag.persisted_queries.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Collection, Iterable, Mapping
from typing import Any

from practicedag.graph import traversal
from practicedag.graph.snapshot import GraphSnapshot
from practicedag.graph.traversal import MAX_DEPTH, AncestorRow, TreeRow
from practicedag.models import Dependency, Practice

logger = logging.getLogger(__name__)


class GraphQueries(ABC):
    """Ancestors, tree, depth and hypothetical-cycle queries.

    Adapters must re-derive every answer from their current records; nothing
    is cached between calls.
    """

    def __init__(self, max_depth: int = MAX_DEPTH) -> None:
        self.max_depth = max_depth

    @abstractmethod
    def _ancestor_levels(self, practice_id: str) -> dict[str, int]:
        """Shortest level of practice_id and of everything depending on it."""

    @abstractmethod
    def _descendant_levels(self, practice_id: str) -> dict[str, int]:
        """Shortest level of practice_id and of everything it depends on."""

    @abstractmethod
    def _practices(self, ids: Collection[str]) -> dict[str, Practice]:
        """Practice records for the given ids."""

    @abstractmethod
    def _edges_among(self, ids: Collection[str]) -> list[tuple[str, str]]:
        """Edges whose both endpoints are in ids."""

    @abstractmethod
    def depth_of(self, practice_id: str) -> int:
        """Shortest distance from any root practice, or -1 if unreachable."""

    def ancestors_of(self, practice_id: str) -> list[AncestorRow]:
        """All practices leading to practice_id, furthest first.

        Args:
            practice_id: Practice to start from (included at level 0).

        Returns:
            Rows ordered by level descending, then name. Empty if the
            practice does not exist.
        """
        levels = self._ancestor_levels(practice_id)
        if not levels:
            return []
        rows = traversal.ancestor_rows(
            levels, self._practices(levels), self._edges_among(levels)
        )
        logger.debug("ancestors_of(%s): %d row(s)", practice_id, len(rows))
        return rows

    def tree_from(self, root_id: str) -> list[TreeRow]:
        """Every practice reachable from root_id along dependency edges.

        Args:
            root_id: Practice to start from (included at level 0).

        Returns:
            Rows ordered by level, then name. Empty if the practice does
            not exist.
        """
        levels = self._descendant_levels(root_id)
        if not levels:
            return []
        rows = traversal.tree_rows(levels, self._practices(levels), self._edges_among(levels))
        logger.debug("tree_from(%s): %d row(s)", root_id, len(rows))
        return rows

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        """Whether inserting parent_id -> child_id would close a cycle.

        Read-only. True iff child_id is already among the ancestors of
        parent_id (parent_id itself included).
        """
        return child_id in self._ancestor_levels(parent_id)


class InMemoryGraphQueries(GraphQueries):
    """Graph queries over practice and dependency records held in memory.

    Edges with an endpoint that is not a known practice are ignored, the
    same way the store's foreign keys would reject them.
    """

    def __init__(
        self,
        practices: Iterable[Practice],
        dependencies: Iterable[Dependency],
        max_depth: int = MAX_DEPTH,
    ) -> None:
        super().__init__(max_depth)
        self.practices = {practice.id: practice for practice in practices}
        self.dependencies = list(dependencies)

    @classmethod
    def from_document(
        cls, document: Mapping[str, Any], max_depth: int = MAX_DEPTH
    ) -> InMemoryGraphQueries:
        """Build from a catalog document that passed validation."""
        return cls(
            [Practice.from_dict(item) for item in document.get("practices", [])],
            [Dependency.from_dict(item) for item in document.get("dependencies", [])],
            max_depth,
        )

    def _snapshot(self) -> GraphSnapshot:
        edges = [
            dependency.as_edge()
            for dependency in self.dependencies
            if dependency.practice_id in self.practices
            and dependency.depends_on_id in self.practices
        ]
        return GraphSnapshot.build(edges, node_ids=self.practices)

    def _ancestor_levels(self, practice_id: str) -> dict[str, int]:
        return traversal.ancestor_levels(self._snapshot(), practice_id, self.max_depth)

    def _descendant_levels(self, practice_id: str) -> dict[str, int]:
        return traversal.descendant_levels(self._snapshot(), practice_id, self.max_depth)

    def _practices(self, ids: Collection[str]) -> dict[str, Practice]:
        return {practice_id: self.practices[practice_id] for practice_id in ids}

    def _edges_among(self, ids: Collection[str]) -> list[tuple[str, str]]:
        return [
            edge
            for edge in self._snapshot().edges()
            if edge[0] in ids and edge[1] in ids
        ]

    def depth_of(self, practice_id: str) -> int:
        roots = [practice.id for practice in self.practices.values() if practice.is_root]
        return traversal.depth_of(self._snapshot(), roots, practice_id, self.max_depth)
