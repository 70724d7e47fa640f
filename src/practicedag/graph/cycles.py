"""Exhaustive directed-cycle detection.

This is the pre-acceptance guard for possibly-invalid input, so it runs to
completion with no depth cap. The DFS is iterative to stay clear of the
interpreter recursion limit on long chains.
"""

from __future__ import annotations

import logging

from practicedag.graph.snapshot import GraphSnapshot

logger = logging.getLogger(__name__)


def find_cycles(snapshot: GraphSnapshot) -> list[list[str]]:
    """Find every cycle closed by a DFS back-edge.

    Each unvisited node (snapshot order) starts a DFS. A node is on the stack
    from the moment it is entered until all its neighbours are done; an edge
    into an on-stack node closes a cycle, reported as the stack slice from
    that node plus the node again. Cycles are deduplicated by exact sequence
    only, so rotations found from different entry points are kept. O(V+E).

    Args:
        snapshot: Graph to search.

    Returns:
        Cycles as id lists, e.g. [["a", "b", "c", "a"]]. Empty if acyclic.
    """
    visited = [False] * len(snapshot)
    # Position of the node on the active path, -1 when not on it
    stack_position = [-1] * len(snapshot)
    seen: set[tuple[int, ...]] = set()
    cycles: list[list[str]] = []

    for start in range(len(snapshot)):
        if visited[start]:
            continue

        visited[start] = True
        stack_position[start] = 0
        path = [start]
        pending = [iter(snapshot.forward[start])]

        while pending:
            for neighbor in pending[-1]:
                if not visited[neighbor]:
                    visited[neighbor] = True
                    stack_position[neighbor] = len(path)
                    path.append(neighbor)
                    pending.append(iter(snapshot.forward[neighbor]))
                    break
                if stack_position[neighbor] >= 0:
                    cycle = (*path[stack_position[neighbor] :], neighbor)
                    if cycle not in seen:
                        seen.add(cycle)
                        cycles.append([snapshot.ids[node] for node in cycle])
            else:
                stack_position[path.pop()] = -1
                pending.pop()

    logger.debug("Cycle search over %d nodes found %d cycle(s)", len(snapshot), len(cycles))
    return cycles


def has_cycle(snapshot: GraphSnapshot) -> bool:
    return bool(find_cycles(snapshot))

