"""Database schema management for the practice store."""

from __future__ import annotations

import sqlite3
from importlib import resources
from pathlib import Path


def get_schema() -> str:
    """Load the database schema from package resources.

    Returns:
        The SQL schema as a string.

    Raises:
        FileNotFoundError: If schema.sql is not found in package resources.
    """
    return resources.files("practicedag.data").joinpath("schema.sql").read_text(encoding="utf-8")


def apply_schema(connection: sqlite3.Connection) -> None:
    """Create any missing tables, indexes and views on an open connection.

    The schema uses IF NOT EXISTS throughout, so existing data is preserved.

    Args:
        connection: Open SQLite connection.

    Raises:
        sqlite3.Error: If the script fails.
    """
    connection.executescript(get_schema())


def init_database(db_path: str | Path) -> None:
    """Initialize a database file from the schema.

    Args:
        db_path: Path to the SQLite database file.

    Raises:
        sqlite3.Error: If database initialization fails.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    connection = sqlite3.connect(str(db_path))
    try:
        apply_schema(connection)
        connection.commit()
    finally:
        connection.close()
