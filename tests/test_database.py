"""Tests for practicedag.database and practicedag.schema modules."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from practicedag.database import (
    ConnectionError,
    DatabaseError,
    PracticeDB,
    TransactionError,
)
from practicedag.schema import get_schema, init_database


def insert_practice(db: PracticeDB, practice_id: str, practice_type: str = "practice") -> None:
    db.execute(
        "INSERT INTO practices (id, name, type, category, description) VALUES (?, ?, ?, ?, ?)",
        (practice_id, practice_id.title(), practice_type, "automation", "A test practice."),
    )


class TestPracticeDBInit:
    """Tests for PracticeDB initialization."""

    def test_init_with_string_path(self, temp_db_path: Path) -> None:
        """Test initialization with string path."""
        db = PracticeDB(str(temp_db_path))
        assert db.db_path == temp_db_path
        assert db.auto_init is True
        assert db.timeout == 5.0

    def test_not_connected_initially(self, temp_db_path: Path) -> None:
        """Test database is not connected after init."""
        db = PracticeDB(temp_db_path)
        assert not db.is_connected
        with pytest.raises(ConnectionError, match="not connected"):
            _ = db.connection

    def test_memory_path(self) -> None:
        """Test ':memory:' is kept as-is."""
        db = PracticeDB(":memory:")
        assert db.is_memory
        assert db.db_path == ":memory:"

    def test_exception_hierarchy(self) -> None:
        """Test database exceptions share a base class."""
        assert issubclass(ConnectionError, DatabaseError)
        assert issubclass(TransactionError, DatabaseError)


class TestPracticeDBConnection:
    """Tests for opening and closing the store."""

    def test_auto_init_creates_schema(self, temp_db_path: Path) -> None:
        """Test a missing file is created with every table."""
        with PracticeDB(temp_db_path) as db:
            assert db.is_connected
            for table in ("practices", "practice_dependencies", "metadata"):
                assert db.table_exists(table)
        assert temp_db_path.exists()

    def test_auto_init_disabled(self, temp_db_path: Path) -> None:
        """Test no schema is created when auto_init is off."""
        with PracticeDB(temp_db_path, auto_init=False) as db:
            assert not db.table_exists("practices")

    def test_memory_store_has_schema(self) -> None:
        """Test an in-memory store gets the schema on connect."""
        with PracticeDB(":memory:") as db:
            assert db.table_exists("practices")

    def test_closed_after_context(self, temp_db_path: Path) -> None:
        """Test the connection is closed on exit."""
        with PracticeDB(temp_db_path) as db:
            pass
        assert not db.is_connected

    def test_foreign_keys_enabled(self, db: PracticeDB) -> None:
        """Test foreign keys are enforced."""
        row = db.fetchone("PRAGMA foreign_keys")
        assert row is not None
        assert row[0] == 1
        with pytest.raises(sqlite3.IntegrityError):
            db.execute(
                "INSERT INTO practice_dependencies (practice_id, depends_on_id) VALUES (?, ?)",
                ("missing-a", "missing-b"),
            )

    def test_rows_by_name(self, db: PracticeDB) -> None:
        """Test rows can be read by column name."""
        insert_practice(db, "alpha")
        row = db.fetchone("SELECT id, requirements FROM practices")
        assert row is not None
        assert row["id"] == "alpha"
        assert row["requirements"] == "[]"


class TestSchemaConstraints:
    """Tests for table constraints."""

    @pytest.mark.parametrize("bad_id", ["Alpha", "alpha--beta", "alpha-", "-alpha", "alpha beta"])
    def test_kebab_case_id(self, db: PracticeDB, bad_id: str) -> None:
        """Test practice ids must be kebab-case."""
        with pytest.raises(sqlite3.IntegrityError):
            insert_practice(db, bad_id)

    def test_type_check(self, db: PracticeDB) -> None:
        """Test only root and practice types are stored."""
        with pytest.raises(sqlite3.IntegrityError):
            insert_practice(db, "alpha", practice_type="leaf")

    def test_self_dependency_rejected(self, db: PracticeDB) -> None:
        """Test a practice cannot depend on itself."""
        insert_practice(db, "alpha")
        with pytest.raises(sqlite3.IntegrityError):
            db.execute(
                "INSERT INTO practice_dependencies (practice_id, depends_on_id) VALUES (?, ?)",
                ("alpha", "alpha"),
            )

    def test_cascade_delete(self, db: PracticeDB) -> None:
        """Test deleting a practice removes its edges."""
        insert_practice(db, "alpha")
        insert_practice(db, "beta")
        db.execute(
            "INSERT INTO practice_dependencies (practice_id, depends_on_id) VALUES (?, ?)",
            ("alpha", "beta"),
        )
        db.execute("DELETE FROM practices WHERE id = ?", ("beta",))
        assert db.fetchall("SELECT * FROM practice_dependencies") == []

    def test_views(self, db: PracticeDB) -> None:
        """Test the summary, root and leaf views."""
        insert_practice(db, "goal", practice_type="root")
        insert_practice(db, "alpha")
        db.execute(
            "INSERT INTO practice_dependencies (practice_id, depends_on_id) VALUES (?, ?)",
            ("goal", "alpha"),
        )
        summary = {
            row["id"]: (row["dependency_count"], row["dependent_count"])
            for row in db.fetchall("SELECT * FROM practice_summary")
        }
        assert summary == {"goal": (1, 0), "alpha": (0, 1)}
        assert [row["id"] for row in db.fetchall("SELECT id FROM root_practices")] == ["goal"]
        assert [row["id"] for row in db.fetchall("SELECT id FROM leaf_practices")] == ["alpha"]


class TestTransactions:
    """Tests for transaction handling."""

    def test_commit_on_success(self, db: PracticeDB) -> None:
        """Test the transaction commits when the block succeeds."""
        with db.transaction():
            assert db.in_transaction
            insert_practice(db, "alpha")
        assert not db.in_transaction
        assert db.fetchone("SELECT id FROM practices") is not None

    def test_rollback_on_error(self, db: PracticeDB) -> None:
        """Test the transaction rolls back and re-raises on error."""
        with pytest.raises(ValueError, match="boom"), db.transaction():
            insert_practice(db, "alpha")
            raise ValueError("boom")
        assert db.fetchone("SELECT id FROM practices") is None
        assert not db.in_transaction

    def test_nested_is_noop(self, db: PracticeDB) -> None:
        """Test inner blocks join the outer transaction."""
        with pytest.raises(RuntimeError), db.transaction():
            with db.transaction(immediate=True):
                insert_practice(db, "alpha")
            assert db.in_transaction
            raise RuntimeError("outer failure")
        assert db.fetchone("SELECT id FROM practices") is None

    def test_requires_connection(self, temp_db_path: Path) -> None:
        """Test transaction() needs an open connection."""
        db = PracticeDB(temp_db_path)
        with pytest.raises(ConnectionError), db.transaction():
            pass

    def test_immediate_lock_blocks_second_writer(self, temp_db_path: Path) -> None:
        """Test a second immediate transaction waits and then times out."""
        init_database(temp_db_path)
        with PracticeDB(temp_db_path) as first, PracticeDB(temp_db_path, timeout=0) as second:
            with first.transaction(immediate=True):
                with pytest.raises(TransactionError, match="Failed to begin"):
                    second.begin_transaction(immediate=True)
            # Lock released on commit
            with second.transaction(immediate=True):
                insert_practice(second, "alpha")
            assert first.fetchone("SELECT id FROM practices") is not None

    def test_commit_without_transaction(self, db: PracticeDB) -> None:
        """Test commit and rollback are no-ops outside a transaction."""
        db.commit()
        db.rollback()
        assert not db.connection.in_transaction


class TestSchemaResource:
    """Tests for the packaged schema."""

    def test_schema_is_packaged(self) -> None:
        """Test the schema script ships with the package."""
        schema = get_schema()
        assert "CREATE TABLE IF NOT EXISTS practices" in schema
        assert "CREATE VIEW IF NOT EXISTS root_practices" in schema

    def test_init_is_repeatable(self, temp_db_path: Path) -> None:
        """Test re-applying the schema keeps existing data."""
        with PracticeDB(temp_db_path) as db:
            insert_practice(db, "alpha")
        init_database(temp_db_path)
        with PracticeDB(temp_db_path) as db:
            assert db.fetchone("SELECT id FROM practices WHERE id = 'alpha'") is not None
