"""Graph queries answered by recursive SQL over the practice store.

The recursive CTEs only compute which practices are reached and at what
shortest level; row shaping, breadcrumb selection and ordering are the
shared ones from practicedag.graph.traversal, so answers match the
in-memory adapter exactly.
"""

from __future__ import annotations

from collections.abc import Collection

from practicedag import crud
from practicedag.database import PracticeDB
from practicedag.graph.queries import GraphQueries
from practicedag.graph.traversal import MAX_DEPTH
from practicedag.models import Practice

# UNION (not UNION ALL) drops repeated (id, level) pairs, which keeps
# diamond-shaped graphs from multiplying rows level after level.
_ANCESTOR_WALK = """
    WITH RECURSIVE walk(id, level) AS (
        SELECT id, 0 FROM practices WHERE id = :start
        UNION
        SELECT pd.practice_id, walk.level + 1
        FROM practice_dependencies pd
        JOIN walk ON pd.depends_on_id = walk.id
        WHERE walk.level < :max_depth
    )
"""

_DESCENDANT_WALK = """
    WITH RECURSIVE walk(id, level) AS (
        SELECT id, 0 FROM practices WHERE id = :start
        UNION
        SELECT pd.depends_on_id, walk.level + 1
        FROM practice_dependencies pd
        JOIN walk ON pd.practice_id = walk.id
        WHERE walk.level < :max_depth
    )
"""

_ROOT_WALK = """
    WITH RECURSIVE walk(id, level) AS (
        SELECT id, 0 FROM root_practices
        UNION
        SELECT pd.depends_on_id, walk.level + 1
        FROM practice_dependencies pd
        JOIN walk ON pd.practice_id = walk.id
        WHERE walk.level < :max_depth
    )
"""


class PersistedGraphQueries(GraphQueries):
    """Graph queries over an open PracticeDB.

    Every call reads the currently committed records (or, inside a
    transaction, the transaction's own view).
    """

    def __init__(self, db: PracticeDB, max_depth: int = MAX_DEPTH) -> None:
        super().__init__(max_depth)
        self.db = db

    def _levels(self, walk: str, practice_id: str) -> dict[str, int]:
        rows = self.db.fetchall(
            walk + "SELECT id, MIN(level) AS level FROM walk GROUP BY id",
            {"start": practice_id, "max_depth": self.max_depth},
        )
        return {row["id"]: row["level"] for row in rows}

    def _ancestor_levels(self, practice_id: str) -> dict[str, int]:
        return self._levels(_ANCESTOR_WALK, practice_id)

    def _descendant_levels(self, practice_id: str) -> dict[str, int]:
        return self._levels(_DESCENDANT_WALK, practice_id)

    def _practices(self, ids: Collection[str]) -> dict[str, Practice]:
        return crud.get_practices(self.db, ids)

    def _edges_among(self, ids: Collection[str]) -> list[tuple[str, str]]:
        return [
            dependency.as_edge()
            for dependency in crud.list_dependencies(self.db)
            if dependency.practice_id in ids and dependency.depends_on_id in ids
        ]

    def depth_of(self, practice_id: str) -> int:
        row = self.db.fetchone(
            _ROOT_WALK + "SELECT COALESCE(MIN(level), -1) AS depth FROM walk WHERE id = :target",
            {"max_depth": self.max_depth, "target": practice_id},
        )
        return row["depth"] if row is not None else -1

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        """Whether inserting parent_id -> child_id would close a cycle.

        Answered with a single EXISTS query instead of the full ancestor
        listing.
        """
        row = self.db.fetchone(
            _ANCESTOR_WALK + "SELECT EXISTS (SELECT 1 FROM walk WHERE id = :child) AS found",
            {"start": parent_id, "max_depth": self.max_depth, "child": child_id},
        )
        return bool(row["found"]) if row is not None else False
