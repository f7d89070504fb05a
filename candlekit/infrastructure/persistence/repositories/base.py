"""
Base repository for DuckDB-backed records.

Concrete repositories share one DatabaseManager connection and own the
schema of their table.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from ..database import DatabaseManager

logger = logging.getLogger(__name__)

# Type variable for entity types
T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository.

    Subclasses must implement:
    - table_name: The database table name
    - ensure_schema: Create the table (and id sequence) if missing
    - _to_entity: Convert a row tuple to an entity
    """

    def __init__(self, db: DatabaseManager):
        """
        Initialize repository with a database manager.

        Args:
            db: Shared DuckDB database manager.
        """
        self._db = db

    @property
    @abstractmethod
    def table_name(self) -> str:
        """The database table name for this repository."""

    @property
    def sequence_name(self) -> str:
        return f"{self.table_name}_id_seq"

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the table if it doesn't exist."""

    @abstractmethod
    def _to_entity(self, row: Tuple) -> T:
        """Convert a database row to an entity."""

    def _ensure_sequence(self) -> None:
        self._db.execute(f"CREATE SEQUENCE IF NOT EXISTS {self.sequence_name} START 1")

    def _fetch_entities(self, sql: str, params: Optional[Sequence] = None) -> List[T]:
        return [self._to_entity(row) for row in self._db.fetchall(sql, params)]

    def _fetch_entity(self, sql: str, params: Optional[Sequence] = None) -> Optional[T]:
        row = self._db.fetchone(sql, params)
        return self._to_entity(row) if row else None

    def count(self) -> int:
        row = self._db.fetchone(f"SELECT COUNT(*) FROM {self.table_name}")
        return int(row[0]) if row else 0
