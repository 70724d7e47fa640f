"""Tests for the in-memory and persisted graph query adapters."""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest

from practicedag import crud
from practicedag.database import PracticeDB
from practicedag.graph import GraphQueries, InMemoryGraphQueries
from practicedag.models import Dependency, Practice
from practicedag.persisted_queries import PersistedGraphQueries
from practicedag.store import import_document

from conftest import PRACTICE_NAMES, build_document

# A wider catalog: "monitoring" is reached by chains of length 2, 3 and 4.
WIDE_NAMES = {
    "devops": "DevOps",
    "observability": "Observability",
    "monitoring": "Monitoring",
    "logging": "Logging",
    "trunk-based-development": "Trunk Based Development",
    "code-review": "Code Review",
    "pair-programming": "Pair Programming",
}
WIDE_EDGES = [
    ("devops", "observability"),
    ("devops", "trunk-based-development"),
    ("observability", "monitoring"),
    ("observability", "logging"),
    ("trunk-based-development", "code-review"),
    ("code-review", "monitoring"),
    ("code-review", "pair-programming"),
    ("logging", "monitoring"),
]


@pytest.fixture(params=["memory", "persisted"])
def diamond_queries(
    request: pytest.FixtureRequest, valid_document: dict[str, Any]
) -> Generator[GraphQueries, None, None]:
    """Both adapters over the diamond catalog."""
    if request.param == "memory":
        yield InMemoryGraphQueries.from_document(valid_document)
        return
    with PracticeDB(":memory:") as db:
        import_document(db, valid_document)
        yield PersistedGraphQueries(db)


class TestQueries:
    """Query answers over the diamond catalog, for each adapter."""

    def test_tree_from_root(self, diamond_queries: GraphQueries) -> None:
        """Test tree rows are ordered by level then name with shortest paths."""
        rows = diamond_queries.tree_from("continuous-delivery")
        assert [(row.name, row.level) for row in rows] == [
            ("Continuous Delivery", 0),
            ("Continuous Integration", 1),
            ("Deployment Pipeline", 1),
            ("Automated Testing", 2),
            ("Version Control", 2),
        ]
        paths = {row.id: row.path for row in rows}
        assert paths["continuous-delivery"] == "Continuous Delivery"
        assert paths["version-control"] == (
            "Continuous Delivery > Continuous Integration > Version Control"
        )
        assert paths["automated-testing"] == (
            "Continuous Delivery > Continuous Integration > Automated Testing"
        )

    def test_tree_rows_carry_details(self, diamond_queries: GraphQueries) -> None:
        """Test tree rows include description, requirements and benefits."""
        row = diamond_queries.tree_from("automated-testing")[0]
        assert row.description == "Description of the automated-testing practice."
        assert row.to_dict()["requirements"] == [
            "Keep it in version control",
            "Run it on every change",
        ]
        assert row.benefits == ("Faster feedback",)

    def test_ancestors_of(self, diamond_queries: GraphQueries) -> None:
        """Test ancestors are ordered furthest first with paths ending at the practice."""
        rows = diamond_queries.ancestors_of("version-control")
        assert [(row.name, row.level) for row in rows] == [
            ("Continuous Delivery", 2),
            ("Automated Testing", 1),
            ("Continuous Integration", 1),
            ("Deployment Pipeline", 1),
            ("Version Control", 0),
        ]
        paths = {row.id: row.path for row in rows}
        assert paths["continuous-delivery"] == (
            "Continuous Delivery > Continuous Integration > Version Control"
        )
        assert paths["automated-testing"] == "Automated Testing > Version Control"
        assert paths["version-control"] == "Version Control"

    def test_ancestors_of_root(self, diamond_queries: GraphQueries) -> None:
        """Test nothing depends on the root."""
        rows = diamond_queries.ancestors_of("continuous-delivery")
        assert [row.id for row in rows] == ["continuous-delivery"]

    def test_unknown_practice(self, diamond_queries: GraphQueries) -> None:
        """Test unknown ids give empty results and depth -1."""
        assert diamond_queries.tree_from("missing") == []
        assert diamond_queries.ancestors_of("missing") == []
        assert diamond_queries.depth_of("missing") == -1

    def test_depth_of(self, diamond_queries: GraphQueries) -> None:
        """Test depth is the shortest distance from the root."""
        assert diamond_queries.depth_of("continuous-delivery") == 0
        assert diamond_queries.depth_of("continuous-integration") == 1
        assert diamond_queries.depth_of("deployment-pipeline") == 1
        assert diamond_queries.depth_of("version-control") == 2
        assert diamond_queries.depth_of("automated-testing") == 2

    def test_would_create_cycle(self, diamond_queries: GraphQueries) -> None:
        """Test hypothetical edges against the current graph."""
        assert diamond_queries.would_create_cycle("version-control", "continuous-delivery")
        assert not diamond_queries.would_create_cycle("continuous-delivery", "version-control")
        assert not diamond_queries.would_create_cycle("automated-testing", "deployment-pipeline")
        assert diamond_queries.would_create_cycle("version-control", "version-control")
        assert not diamond_queries.would_create_cycle("missing", "version-control")


class TestInMemoryAdapter:
    """Behavior specific to InMemoryGraphQueries."""

    def test_reflects_record_changes(self, valid_document: dict[str, Any]) -> None:
        """Test answers are re-derived from the current records on every call."""
        queries = InMemoryGraphQueries.from_document(valid_document)
        assert not queries.would_create_cycle("deployment-pipeline", "automated-testing")

        queries.dependencies.append(Dependency("automated-testing", "deployment-pipeline"))
        assert queries.would_create_cycle("deployment-pipeline", "automated-testing")

    def test_orphan_depth(self, make_practice: Callable[..., dict[str, Any]]) -> None:
        """Test a practice unreachable from the root has depth -1."""
        document = build_document()
        document["practices"].append(make_practice("orphan-practice"))
        queries = InMemoryGraphQueries.from_document(document)
        assert queries.depth_of("orphan-practice") == -1

    def test_unknown_endpoints_ignored(self) -> None:
        """Test edges to unknown practices are dropped from traversal."""
        practices = [Practice.from_dict(item) for item in build_document()["practices"]]
        queries = InMemoryGraphQueries(
            practices, [Dependency("continuous-delivery", "ghost-practice")]
        )
        assert [row.id for row in queries.tree_from("continuous-delivery")] == [
            "continuous-delivery"
        ]

    def test_depth_cap(self) -> None:
        """Test nodes beyond max_depth are not reported."""
        names = {f"step-{i}": f"Step {i:02d}" for i in range(6)}
        edges = [(f"step-{i}", f"step-{i + 1}") for i in range(5)]
        queries = InMemoryGraphQueries.from_document(
            build_document(names, edges, root_id="step-0"), max_depth=3
        )
        assert [row.level for row in queries.tree_from("step-0")] == [0, 1, 2, 3]
        assert queries.depth_of("step-5") == -1


class TestPersistedAdapter:
    """Behavior specific to PersistedGraphQueries."""

    def test_guarded_insert_is_visible(self, loaded_db: PracticeDB) -> None:
        """Test a stored edge changes the next answer."""
        queries = PersistedGraphQueries(loaded_db)
        crud.insert_dependency(loaded_db, "automated-testing", "deployment-pipeline")
        assert queries.would_create_cycle("deployment-pipeline", "automated-testing")

    def test_orphan_depth(
        self, loaded_db: PracticeDB, make_practice: Callable[..., dict[str, Any]]
    ) -> None:
        """Test a stored practice unreachable from the root has depth -1."""
        crud.create_practice(loaded_db, Practice.from_dict(make_practice("orphan-practice")))
        assert PersistedGraphQueries(loaded_db).depth_of("orphan-practice") == -1

    def test_cyclic_store_terminates(self, loaded_db: PracticeDB) -> None:
        """Test the depth cap bounds traversal over a corrupted cyclic store."""
        crud.insert_dependency(loaded_db, "version-control", "continuous-integration")
        queries = PersistedGraphQueries(loaded_db, max_depth=10)
        levels = {row.id: row.level for row in queries.tree_from("continuous-integration")}
        assert levels["version-control"] == 1
        assert levels["continuous-integration"] == 0


def _answers(queries: GraphQueries, ids: list[str]) -> dict[str, Any]:
    return {
        "tree": {pid: [row.to_dict() for row in queries.tree_from(pid)] for pid in ids},
        "ancestors": {pid: [row.to_dict() for row in queries.ancestors_of(pid)] for pid in ids},
        "depth": {pid: queries.depth_of(pid) for pid in ids},
        "cycle": {(a, b): queries.would_create_cycle(a, b) for a in ids for b in ids},
    }


class TestAdaptersAgree:
    """The two adapters give identical answers on the same records."""

    @pytest.mark.parametrize(
        ("names", "edges", "root_id"),
        [
            (PRACTICE_NAMES, None, "continuous-delivery"),
            (WIDE_NAMES, WIDE_EDGES, "devops"),
        ],
        ids=["diamond", "wide"],
    )
    def test_all_queries_agree(
        self,
        names: dict[str, str],
        edges: list[tuple[str, str]] | None,
        root_id: str,
    ) -> None:
        """Test every query for every practice (and pair) matches."""
        document = build_document(names, edges, root_id=root_id)
        ids = [*names, "missing"]
        memory = _answers(InMemoryGraphQueries.from_document(document), ids)
        with PracticeDB(":memory:") as db:
            import_document(db, document)
            persisted = _answers(PersistedGraphQueries(db), ids)
        assert memory == persisted

    @pytest.mark.parametrize("adapter", ["memory", "persisted"])
    @pytest.mark.parametrize(
        ("names", "edges", "root_id"),
        [
            (PRACTICE_NAMES, None, "continuous-delivery"),
            (WIDE_NAMES, WIDE_EDGES, "devops"),
        ],
        ids=["diamond", "wide"],
    )
    def test_tree_and_ancestors_are_inverse(
        self,
        adapter: str,
        names: dict[str, str],
        edges: list[tuple[str, str]] | None,
        root_id: str,
    ) -> None:
        """Test every practice in a tree lists the tree's root among its ancestors."""
        document = build_document(names, edges, root_id=root_id)
        with PracticeDB(":memory:") as db:
            queries: GraphQueries
            if adapter == "memory":
                queries = InMemoryGraphQueries.from_document(document)
            else:
                import_document(db, document)
                queries = PersistedGraphQueries(db)

            for start in names:
                for row in queries.tree_from(start):
                    ancestors = {a.id: a.level for a in queries.ancestors_of(row.id)}
                    assert ancestors.get(start) == row.level, (start, row.id)

    def test_wide_catalog_shortest_levels(self) -> None:
        """Test a node reached by chains of different lengths takes the shorter."""
        queries = InMemoryGraphQueries.from_document(
            build_document(WIDE_NAMES, WIDE_EDGES, root_id="devops")
        )
        levels = {row.id: row.level for row in queries.tree_from("devops")}
        assert levels["monitoring"] == 2
        assert levels["code-review"] == 2
        assert levels["pair-programming"] == 3
        rows = {row.id: row for row in queries.tree_from("devops")}
        assert rows["monitoring"].path == "DevOps > Observability > Monitoring"
