"""Database connection and transaction management for the practice store.

Provides the PracticeDB class for managing SQLite database connections with
context manager support and explicit transaction handling.

Design decisions:
- Eager connection: Connection is created on __enter__, not lazily
- Foreign keys enabled via PRAGMA foreign_keys = ON
- Autocommit driver mode (isolation_level=None): transactions are only the
  ones opened by transaction(), so BEGIN IMMEDIATE is under our control
- Not thread-safe; use one PracticeDB per thread or process
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from practicedag.schema import apply_schema, init_database

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class DatabaseError(Exception):
    """Base exception for database-related errors."""


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""


class TransactionError(DatabaseError):
    """Raised when transaction operations fail."""


class PracticeDB:
    """Connection manager for the practice store.

    Example usage:
        >>> with PracticeDB("practices.db") as db:
        ...     with db.transaction(immediate=True):
        ...         db.execute("INSERT INTO practice_dependencies ...")
        ...         # commit on success, rollback on exception

    Attributes:
        db_path: Path to the SQLite database file, or ":memory:".
        auto_init: If True, create the schema when the file doesn't exist.
        timeout: Seconds to wait for another writer's lock before failing.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        auto_init: bool = True,
        timeout: float = 5.0,
    ) -> None:
        self.db_path = db_path if db_path == MEMORY_PATH else Path(db_path)
        self.auto_init = auto_init
        self.timeout = timeout
        self._connection: sqlite3.Connection | None = None
        self._in_transaction: bool = False

    def __enter__(self) -> PracticeDB:
        """Open database connection.

        Raises:
            ConnectionError: If connection fails.
        """
        self._open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._close()

    @property
    def is_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    def _open(self) -> None:
        if self._connection is not None:
            return

        if self.auto_init and not self.is_memory and not Path(self.db_path).exists():
            try:
                init_database(self.db_path)
            except (sqlite3.Error, OSError) as e:
                raise ConnectionError(f"Failed to initialize database: {e}") from e

        try:
            self._connection = sqlite3.connect(
                str(self.db_path), timeout=self.timeout, isolation_level=None
            )
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.row_factory = sqlite3.Row
            if self.is_memory and self.auto_init:
                apply_schema(self._connection)
        except sqlite3.Error as e:
            raise ConnectionError(f"Failed to connect to database: {e}") from e

        logger.debug("Opened practice store %s", self.db_path)

    def _close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the underlying SQLite connection.

        Raises:
            ConnectionError: If not connected.
        """
        if self._connection is None:
            raise ConnectionError("Database not connected. Use 'with PracticeDB(...)' context.")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def in_transaction(self) -> bool:
        """True inside a transaction() block."""
        return self._in_transaction

    @contextmanager
    def transaction(self, *, immediate: bool = False) -> Iterator[None]:
        """Transaction context manager.

        Begins a transaction, commits on success, rolls back on exception.
        Inner transaction() blocks are no-ops (no savepoints), so an inner
        immediate=True does not upgrade an outer deferred transaction.

        Args:
            immediate: Take SQLite's reserved write lock at BEGIN. Concurrent
                immediate transactions on the same file then run one after
                another, so reads inside the block see the committed state
                nobody else can change before this block commits.

        Yields:
            None

        Raises:
            ConnectionError: If not connected to database.
            TransactionError: If BEGIN (e.g. lock timeout), COMMIT or
                ROLLBACK fails.
        """
        if self._connection is None:
            raise ConnectionError("Database not connected. Use 'with PracticeDB(...)' context.")

        if self._in_transaction:
            yield
            return

        self.begin_transaction(immediate=immediate)
        self._in_transaction = True
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise
        finally:
            self._in_transaction = False

    def begin_transaction(self, *, immediate: bool = False) -> None:
        """Begin a new transaction explicitly.

        For most use cases, prefer the transaction() context manager.

        Raises:
            ConnectionError: If not connected.
            TransactionError: If BEGIN fails.
        """
        statement = "BEGIN IMMEDIATE" if immediate else "BEGIN"
        try:
            self.connection.execute(statement)
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to begin transaction: {e}") from e

    def commit(self) -> None:
        """Commit the current transaction.

        Raises:
            ConnectionError: If not connected.
            TransactionError: If COMMIT fails.
        """
        try:
            if self.connection.in_transaction:
                self.connection.execute("COMMIT")
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to commit transaction: {e}") from e

    def rollback(self) -> None:
        """Rollback the current transaction.

        Raises:
            ConnectionError: If not connected.
            TransactionError: If ROLLBACK fails.
        """
        try:
            if self.connection.in_transaction:
                self.connection.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to rollback transaction: {e}") from e

    def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Raises:
            ConnectionError: If not connected.
            sqlite3.Error: If execution fails.
        """
        return self.connection.execute(sql, parameters)

    def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]] | list[dict[str, Any]],
    ) -> sqlite3.Cursor:
        return self.connection.executemany(sql, parameters)

    def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Row | None:
        """Execute SQL and fetch one row.

        Returns:
            First row of results, or None if no results.
        """
        cursor = self.execute(sql, parameters)
        result = cursor.fetchone()
        return cast(sqlite3.Row | None, result)

    def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute SQL and fetch all rows."""
        cursor = self.execute(sql, parameters)
        return cursor.fetchall()

    def table_exists(self, table_name: str) -> bool:
        result = self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None
