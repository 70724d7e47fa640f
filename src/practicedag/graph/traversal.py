"""Bounded ancestor/descendant traversal shared by both query adapters.

The graph is assumed acyclic here; the depth cap only keeps a corrupted
store from looping. Cycle detection proper lives in practicedag.graph.cycles.

Level semantics: every reachable node is reported once, at its shortest
distance from the start node. Breadcrumb paths follow a shortest chain; when
several exist, the chain whose (name, id) sequence read from the start node
outward is smallest wins. Because all shortest chains to a node at level L
pass through nodes at level L-1, the winning chain is found by picking, for
each node, the best-keyed predecessor one level closer to the start.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from practicedag.graph.snapshot import GraphSnapshot
from practicedag.models import Practice

MAX_DEPTH = 100
PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class AncestorRow:
    """One ancestor of a practice.

    Attributes:
        id: Practice id.
        name: Practice name.
        type: Practice type.
        category: Practice category.
        level: Shortest distance from the queried practice (itself at 0).
        path: Breadcrumb from this ancestor down to the queried practice.
    """

    id: str
    name: str
    type: str
    category: str
    level: int
    path: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TreeRow:
    """One node of the tree below a start practice.

    Attributes:
        id: Practice id.
        name: Practice name.
        type: Practice type.
        category: Practice category.
        description: Practice description.
        requirements: Requirement statements.
        benefits: Benefit statements.
        level: Shortest distance from the start practice (itself at 0).
        path: Breadcrumb from the start practice down to this one.
    """

    id: str
    name: str
    type: str
    category: str
    description: str
    requirements: tuple[str, ...]
    benefits: tuple[str, ...]
    level: int
    path: str

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["requirements"] = list(self.requirements)
        result["benefits"] = list(self.benefits)
        return result


def bfs_levels(
    adjacency: Sequence[Sequence[int]],
    starts: Iterable[int],
    max_depth: int = MAX_DEPTH,
) -> dict[int, int]:
    """Shortest level of every node reachable from the start nodes.

    Nodes at max_depth are reported but not expanded.

    Args:
        adjacency: adjacency[i] = neighbour indices of node i.
        starts: Start node indices, all at level 0.
        max_depth: Deepest level reported.

    Returns:
        Node index -> level.
    """
    levels = {start: 0 for start in starts}
    queue = deque(levels)
    while queue:
        node = queue.popleft()
        level = levels[node]
        if level >= max_depth:
            continue
        for neighbor in adjacency[node]:
            if neighbor not in levels:
                levels[neighbor] = level + 1
                queue.append(neighbor)
    return levels


def _levels_by_id(
    snapshot: GraphSnapshot,
    adjacency: Sequence[Sequence[int]],
    node_id: str,
    max_depth: int,
) -> dict[str, int]:
    position = snapshot.index.get(node_id)
    if position is None:
        return {}
    levels = bfs_levels(adjacency, [position], max_depth)
    return {snapshot.ids[node]: level for node, level in levels.items()}


def ancestor_levels(
    snapshot: GraphSnapshot, node_id: str, max_depth: int = MAX_DEPTH
) -> dict[str, int]:
    """Practices that (transitively) depend on node_id, node_id itself at 0."""
    return _levels_by_id(snapshot, snapshot.reverse, node_id, max_depth)


def descendant_levels(
    snapshot: GraphSnapshot, node_id: str, max_depth: int = MAX_DEPTH
) -> dict[str, int]:
    """Practices node_id (transitively) depends on, node_id itself at 0."""
    return _levels_by_id(snapshot, snapshot.forward, node_id, max_depth)


def depth_of(
    snapshot: GraphSnapshot,
    root_ids: Iterable[str],
    node_id: str,
    max_depth: int = MAX_DEPTH,
) -> int:
    """Shortest distance from any root to node_id, or -1 if unreachable.

    Args:
        snapshot: Graph to search.
        root_ids: Ids of the practices whose type is "root".
        node_id: Practice to measure.
        max_depth: Distances beyond this count as unreachable.

    Returns:
        Distance >= 0, or -1.
    """
    starts = [snapshot.index[root] for root in root_ids if root in snapshot.index]
    target = snapshot.index.get(node_id)
    if target is None:
        return -1
    return bfs_levels(snapshot.forward, starts, max_depth).get(target, -1)


def would_create_cycle(
    snapshot: GraphSnapshot,
    parent_id: str,
    child_id: str,
    max_depth: int = MAX_DEPTH,
) -> bool:
    """Whether adding the edge parent_id -> child_id would close a cycle.

    True iff child_id already (transitively) depends on parent_id, which
    includes child_id == parent_id.
    """
    return child_id in ancestor_levels(snapshot, parent_id, max_depth)


def build_chains(
    levels: Mapping[str, int],
    predecessors: Mapping[str, Collection[str]],
    names: Mapping[str, str],
) -> dict[str, list[str]]:
    """Pick the breadcrumb chain for every node of a traversal.

    Args:
        levels: Node id -> shortest level, exactly one node at level 0.
        predecessors: Node id -> ids it can be reached from in one step.
        names: Node id -> display name.

    Returns:
        Node id -> chain of ids from the start node to that node.
    """
    keys: dict[str, tuple[tuple[str, str], ...]] = {}
    chains: dict[str, list[str]] = {}

    for node_id in sorted(levels, key=levels.__getitem__):
        level = levels[node_id]
        step = ((names[node_id], node_id),)
        if level == 0:
            keys[node_id] = step
            chains[node_id] = [node_id]
            continue
        candidates = [
            previous
            for previous in predecessors.get(node_id, ())
            if levels.get(previous) == level - 1
        ]
        best = min(candidates, key=keys.__getitem__)
        keys[node_id] = keys[best] + step
        chains[node_id] = [*chains[best], node_id]

    return chains


def format_path(chain: Iterable[str], names: Mapping[str, str]) -> str:
    return PATH_SEPARATOR.join(names[node_id] for node_id in chain)


def ancestor_rows(
    levels: Mapping[str, int],
    practices: Mapping[str, Practice],
    edges: Iterable[tuple[str, str]],
) -> list[AncestorRow]:
    """Shape ancestor levels into rows, furthest ancestor first.

    Args:
        levels: Output of an ancestor traversal.
        practices: Practice records for every id in levels.
        edges: (practice_id, depends_on_id) edges among those practices.

    Returns:
        Rows ordered by level descending, then name, then id.
    """
    predecessors: dict[str, list[str]] = {}
    for practice_id, depends_on_id in edges:
        predecessors.setdefault(practice_id, []).append(depends_on_id)

    names = {node_id: practices[node_id].name for node_id in levels}
    chains = build_chains(levels, predecessors, names)

    rows = [
        AncestorRow(
            id=node_id,
            name=practices[node_id].name,
            type=practices[node_id].type,
            category=practices[node_id].category,
            level=level,
            path=format_path(reversed(chains[node_id]), names),
        )
        for node_id, level in levels.items()
    ]
    rows.sort(key=lambda row: (-row.level, row.name, row.id))
    return rows


def tree_rows(
    levels: Mapping[str, int],
    practices: Mapping[str, Practice],
    edges: Iterable[tuple[str, str]],
) -> list[TreeRow]:
    """Shape descendant levels into rows, start practice first.

    Args:
        levels: Output of a descendant traversal.
        practices: Practice records for every id in levels.
        edges: (practice_id, depends_on_id) edges among those practices.

    Returns:
        Rows ordered by level, then name, then id.
    """
    predecessors: dict[str, list[str]] = {}
    for practice_id, depends_on_id in edges:
        predecessors.setdefault(depends_on_id, []).append(practice_id)

    names = {node_id: practices[node_id].name for node_id in levels}
    chains = build_chains(levels, predecessors, names)

    rows = []
    for node_id, level in levels.items():
        practice = practices[node_id]
        rows.append(
            TreeRow(
                id=node_id,
                name=practice.name,
                type=practice.type,
                category=practice.category,
                description=practice.description,
                requirements=practice.requirements,
                benefits=practice.benefits,
                level=level,
                path=format_path(chains[node_id], names),
            )
        )
    rows.sort(key=lambda row: (row.level, row.name, row.id))
    return rows
