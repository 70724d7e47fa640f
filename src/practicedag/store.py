"""Guarded writes to the practice store.

Everything that changes the graph goes through here:
- add_dependency_guarded: single edge insertion behind the cycle check
- import_document: whole change-set acceptance behind the schema validator

Both run inside BEGIN IMMEDIATE transactions. SQLite allows one reserved
writer per database file, so a concurrent writer waits (up to the
connection timeout) until this one commits, and its own cycle check then
sees the edge inserted here.
"""

from __future__ import annotations

import logging
from typing import Any

from practicedag import crud
from practicedag.database import PracticeDB
from practicedag.graph.traversal import MAX_DEPTH
from practicedag.models import Dependency, Metadata, Practice
from practicedag.persisted_queries import PersistedGraphQueries
from practicedag.validators.base import SchemaReport, ValidationRules
from practicedag.validators.orchestrator import validate_schema

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for rejected store changes."""


class UnknownPracticeError(StoreError):
    """Raised when a change refers to a practice that is not stored."""

    def __init__(self, practice_id: str) -> None:
        super().__init__(f'Practice "{practice_id}" does not exist')
        self.practice_id = practice_id


class DuplicateDependencyError(StoreError):
    """Raised when the dependency edge is already stored."""


class CycleRejectedError(StoreError):
    """Raised when an edge insertion would close a cycle.

    Attributes:
        practice_id: Dependent side of the rejected edge.
        depends_on_id: Prerequisite side of the rejected edge.
    """

    def __init__(self, practice_id: str, depends_on_id: str) -> None:
        super().__init__(f"Circular dependency detected: {practice_id} -> {depends_on_id}")
        self.practice_id = practice_id
        self.depends_on_id = depends_on_id


class ChangeSetRejectedError(StoreError):
    """Raised when a document fails validation; nothing was written.

    Attributes:
        report: The failing validation report.
    """

    def __init__(self, report: SchemaReport) -> None:
        count = len(report.issues)
        super().__init__(f"Change-set rejected: {count} validation error(s)")
        self.report = report


def add_dependency_guarded(
    db: PracticeDB,
    practice_id: str,
    depends_on_id: str,
    max_depth: int = MAX_DEPTH,
) -> Dependency:
    """Insert practice_id -> depends_on_id unless it would close a cycle.

    The existence checks, the cycle check and the insert share one
    immediate transaction, so no other writer can slip an edge in between.

    Args:
        db: Open practice store.
        practice_id: Dependent practice id.
        depends_on_id: Prerequisite practice id.
        max_depth: Traversal safety cap for the cycle check.

    Returns:
        The inserted dependency.

    Raises:
        UnknownPracticeError: If either practice is not stored.
        DuplicateDependencyError: If the edge already exists.
        CycleRejectedError: If depends_on_id already (transitively) depends
            on practice_id, including practice_id == depends_on_id.
        TransactionError: If the write lock cannot be taken in time.
    """
    with db.transaction(immediate=True):
        for candidate in (practice_id, depends_on_id):
            if crud.get_practice(db, candidate) is None:
                raise UnknownPracticeError(candidate)

        if crud.dependency_exists(db, practice_id, depends_on_id):
            raise DuplicateDependencyError(
                f"Dependency already exists: {practice_id} -> {depends_on_id}"
            )

        if PersistedGraphQueries(db, max_depth).would_create_cycle(practice_id, depends_on_id):
            logger.warning(
                "Rejected dependency %s -> %s: would create a cycle", practice_id, depends_on_id
            )
            raise CycleRejectedError(practice_id, depends_on_id)

        crud.insert_dependency(db, practice_id, depends_on_id)

    logger.info("Added dependency %s -> %s", practice_id, depends_on_id)
    return Dependency(practice_id, depends_on_id)


def import_document(
    db: PracticeDB,
    document: Any,
    rules: ValidationRules | None = None,
) -> SchemaReport:
    """Validate a catalog document and, if valid, make it the stored catalog.

    The stored practices, dependencies and metadata are replaced in one
    transaction. A failing document leaves the store untouched.

    Args:
        db: Open practice store.
        document: Parsed catalog document.
        rules: Validation rules (default: ValidationRules()).

    Returns:
        The (valid) validation report, warnings included.

    Raises:
        ChangeSetRejectedError: If the document has validation errors.
        TransactionError: If the write lock cannot be taken in time.
    """
    rules = rules or ValidationRules()
    report = validate_schema(document, rules)
    if not report.is_valid:
        logger.warning(
            "Rejected change-set with %d error(s) in: %s",
            len(report.issues),
            ", ".join(report.errors),
        )
        raise ChangeSetRejectedError(report)

    practices = [Practice.from_dict(item) for item in document["practices"]]
    dependencies = [Dependency.from_dict(item) for item in document["dependencies"]]

    with db.transaction(immediate=True):
        crud.clear_catalog(db)
        for practice in practices:
            crud.create_practice(db, practice, rules.categories)
        for dependency in dependencies:
            crud.insert_dependency(db, dependency.practice_id, dependency.depends_on_id)
        crud.set_metadata(db, Metadata.from_dict(document["metadata"]))

    logger.info(
        "Imported catalog: %d practice(s), %d dependency(ies)",
        len(practices),
        len(dependencies),
    )
    return report


def read_document(db: PracticeDB) -> dict[str, Any]:
    """The stored catalog in document form, ready for validate_schema()."""
    metadata = crud.get_metadata(db)
    return {
        "practices": [practice.to_dict() for practice in crud.list_practices(db)],
        "dependencies": [dependency.to_dict() for dependency in crud.list_dependencies(db)],
        "metadata": metadata.to_dict() if metadata is not None else {},
    }
