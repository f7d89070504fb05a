"""
DuckDB database manager.

Provides:
- Lazy connection management (file or in-memory)
- Parameterized execute/fetch helpers
- Translation of driver errors into PersistenceError
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

import duckdb

from ...domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager for DuckDB storage.

    A single connection is shared by the OHLC store and the strategy and
    backtest repositories so that all of them see the same database.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """
        Initialize database manager.

        Args:
            db_path: Path to DuckDB file or ":memory:" for in-memory
        """
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else ":memory:"
        self._conn: Optional[duckdb.DuckDBPyConnection] = None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get database connection, creating if needed."""
        if self._conn is None:
            try:
                if isinstance(self.db_path, Path):
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = duckdb.connect(str(self.db_path))
            except (duckdb.Error, OSError) as e:
                raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e
            logger.debug(f"Opened DuckDB database at {self.db_path}")
        return self._conn

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> duckdb.DuckDBPyConnection:
        """Execute a single statement."""
        try:
            if params is None:
                return self.conn.execute(sql)
            return self.conn.execute(sql, list(params))
        except duckdb.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e

    def fetchall(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Tuple]:
        """Execute a query and return all rows."""
        try:
            return self.execute(sql, params).fetchall()
        except duckdb.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e

    def fetchone(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Tuple]:
        """Execute a query and return the first row."""
        try:
            return self.execute(sql, params).fetchone()
        except duckdb.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[DatabaseManager]:
        """Run a block of statements atomically."""
        self.execute("BEGIN TRANSACTION")
        try:
            yield self
        except BaseException:
            self.execute("ROLLBACK")
            raise
        else:
            self.execute("COMMIT")

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> DatabaseManager:
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.close()
