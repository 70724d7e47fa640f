"""CRUD operations for practices, dependencies and metadata.

Plain record access with no graph reasoning: insert_dependency() does not
check for cycles. Guarded edge insertion lives in practicedag.store.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from practicedag.database import PracticeDB
from practicedag.models import DEFAULT_CATEGORIES, Dependency, Metadata, Practice
from practicedag.validators.dependencies import validate_dependency
from practicedag.validators.fields import validate_practice_fields


def _row_to_practice(row: Any) -> Practice:
    return Practice.from_dict(dict(row))


# Practices CRUD Operations


def create_practice(
    db: PracticeDB,
    practice: Practice,
    categories: Iterable[str] = DEFAULT_CATEGORIES,
) -> Practice:
    """Create a new practice.

    Args:
        db: Database connection.
        practice: Practice to store.
        categories: Allowed category names.

    Returns:
        The stored practice.

    Raises:
        ValueError: If any field is invalid.
        sqlite3.IntegrityError: If a practice with this id already exists.
    """
    result = validate_practice_fields(practice.to_dict(), categories)
    if not result.is_valid:
        raise ValueError("; ".join(result.errors.values()))

    db.execute(
        """
        INSERT INTO practices (id, name, type, category, description, requirements, benefits)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            practice.id,
            practice.name,
            practice.type,
            practice.category,
            practice.description,
            json.dumps(list(practice.requirements)),
            json.dumps(list(practice.benefits)),
        ),
    )
    return practice


def get_practice(db: PracticeDB, practice_id: str) -> Practice | None:
    """Get a practice by id, or None if not found."""
    result = db.fetchone("SELECT * FROM practices WHERE id = ?", (practice_id,))
    return _row_to_practice(result) if result is not None else None


def list_practices(db: PracticeDB, category: str | None = None) -> list[Practice]:
    """List practices, optionally filtered by category.

    Args:
        db: Database connection.
        category: Only return practices of this category.

    Returns:
        Practices sorted by name, then id.
    """
    if category is None:
        results = db.fetchall("SELECT * FROM practices ORDER BY name, id")
    else:
        results = db.fetchall(
            "SELECT * FROM practices WHERE category = ? ORDER BY name, id", (category,)
        )
    return [_row_to_practice(row) for row in results]


def get_practices(db: PracticeDB, practice_ids: Iterable[str]) -> dict[str, Practice]:
    """Fetch several practices at once; unknown ids are left out."""
    ids = list(practice_ids)
    if not ids:
        return {}
    placeholders = ", ".join("?" for _ in ids)
    results = db.fetchall(f"SELECT * FROM practices WHERE id IN ({placeholders})", tuple(ids))
    return {row["id"]: _row_to_practice(row) for row in results}


def delete_practice(db: PracticeDB, practice_id: str) -> bool:
    """Delete a practice by id.

    Cascade deletes every dependency the practice takes part in.

    Returns:
        True if row was deleted, False if practice not found.
    """
    cursor = db.execute("DELETE FROM practices WHERE id = ?", (practice_id,))
    return cursor.rowcount > 0


# Dependencies CRUD Operations


def insert_dependency(db: PracticeDB, practice_id: str, depends_on_id: str) -> bool:
    """Insert a dependency edge without any graph check.

    Indicates that practice_id requires depends_on_id first.

    Args:
        db: Database connection.
        practice_id: Id of the dependent practice.
        depends_on_id: Id of the prerequisite practice.

    Returns:
        True if the dependency was created.

    Raises:
        ValueError: If an id is empty or the edge is a self-reference.
        sqlite3.IntegrityError: If a practice doesn't exist or the edge
            already exists.
    """
    result = validate_dependency({"practice_id": practice_id, "depends_on_id": depends_on_id})
    if not result.is_valid:
        raise ValueError("; ".join(result.errors.values()))

    db.execute(
        """
        INSERT INTO practice_dependencies (practice_id, depends_on_id)
        VALUES (?, ?)
        """,
        (practice_id, depends_on_id),
    )
    return True


def dependency_exists(db: PracticeDB, practice_id: str, depends_on_id: str) -> bool:
    result = db.fetchone(
        "SELECT 1 FROM practice_dependencies WHERE practice_id = ? AND depends_on_id = ?",
        (practice_id, depends_on_id),
    )
    return result is not None


def remove_dependency(db: PracticeDB, practice_id: str, depends_on_id: str) -> bool:
    """Remove a dependency edge.

    Returns:
        True if the dependency was removed, False if not found.
    """
    cursor = db.execute(
        "DELETE FROM practice_dependencies WHERE practice_id = ? AND depends_on_id = ?",
        (practice_id, depends_on_id),
    )
    return cursor.rowcount > 0


def list_dependencies(db: PracticeDB) -> list[Dependency]:
    """All dependency edges, sorted by practice_id then depends_on_id."""
    results = db.fetchall(
        """
        SELECT practice_id, depends_on_id FROM practice_dependencies
        ORDER BY practice_id, depends_on_id
        """
    )
    return [Dependency(row["practice_id"], row["depends_on_id"]) for row in results]


def list_practice_summaries(db: PracticeDB) -> list[dict[str, Any]]:
    """Practices with dependency and dependent (fan-in) counts, sorted by name."""
    results = db.fetchall("SELECT * FROM practice_summary ORDER BY name, id")
    return [dict(row) for row in results]


# Metadata Operations


def set_metadata(db: PracticeDB, metadata: Metadata) -> None:
    """Write every metadata record, replacing existing values per key."""
    db.executemany(
        """
        INSERT INTO metadata (key, value) VALUES (?, ?)
        ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = datetime('now')
        """,
        metadata.to_records(),
    )


def get_metadata(db: PracticeDB) -> Metadata | None:
    """Read the dataset metadata, or None if no version has been stored."""
    records = {row["key"]: row["value"] for row in db.fetchall("SELECT key, value FROM metadata")}
    if "version" not in records or "lastUpdated" not in records:
        return None
    return Metadata.from_records(records)


def clear_catalog(db: PracticeDB) -> None:
    """Delete every practice, dependency and metadata record."""
    db.execute("DELETE FROM practice_dependencies")
    db.execute("DELETE FROM practices")
    db.execute("DELETE FROM metadata")
