"""Immutable dependency-graph snapshot.

Nodes are interned to integer indices and adjacency is stored as tuples of
indices, so the traversal code works on plain lists of ints. A snapshot is
built from one input snapshot and never mutated; build a new one whenever the
records change.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import cached_property
from types import MappingProxyType


@dataclass(frozen=True)
class GraphSnapshot:
    """Integer-indexed dependency graph.

    Attributes:
        ids: Node ids; position is the node index.
        index: Node id -> node index.
        forward: forward[i] = indices of the nodes i depends on, edge order.
    """

    ids: tuple[str, ...]
    index: Mapping[str, int]
    forward: tuple[tuple[int, ...], ...]

    @classmethod
    def build(
        cls,
        edges: Iterable[tuple[str, str]],
        node_ids: Iterable[str] = (),
    ) -> GraphSnapshot:
        """Build a snapshot from (practice_id, depends_on_id) pairs.

        Node order is: node_ids as given, then unseen practice_id values in
        edge order, then unseen depends_on_id values in edge order. Repeated
        edges are kept once.

        Args:
            edges: Dependency pairs.
            node_ids: Nodes to include even without edges (e.g., all practices).

        Returns:
            A new GraphSnapshot.
        """
        edge_list = list(edges)
        index: dict[str, int] = {}
        ids: list[str] = []

        def intern(node_id: str) -> int:
            position = index.get(node_id)
            if position is None:
                position = len(ids)
                index[node_id] = position
                ids.append(node_id)
            return position

        for node_id in node_ids:
            intern(node_id)
        for practice_id, _ in edge_list:
            intern(practice_id)
        for _, depends_on_id in edge_list:
            intern(depends_on_id)

        forward: list[list[int]] = [[] for _ in ids]
        seen: set[tuple[int, int]] = set()
        for practice_id, depends_on_id in edge_list:
            edge = (index[practice_id], index[depends_on_id])
            if edge in seen:
                continue
            seen.add(edge)
            forward[edge[0]].append(edge[1])

        return cls(
            ids=tuple(ids),
            index=MappingProxyType(index),
            forward=tuple(tuple(targets) for targets in forward),
        )

    @cached_property
    def reverse(self) -> tuple[tuple[int, ...], ...]:
        """reverse[i] = indices of the nodes that depend on i."""
        dependents: list[list[int]] = [[] for _ in self.ids]
        for source, targets in enumerate(self.forward):
            for target in targets:
                dependents[target].append(source)
        return tuple(tuple(sources) for sources in dependents)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.index

    def edges(self) -> Iterator[tuple[str, str]]:
        for source, targets in enumerate(self.forward):
            for target in targets:
                yield self.ids[source], self.ids[target]
