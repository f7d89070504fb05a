"""
Repository for strategy records.

Rule-based strategies carry their StrategyConfiguration as JSON in
rules_configuration; code-only strategies leave it NULL.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ....domain.strategy.models import Strategy, StrategyConfiguration
from ....utils.timezone import now_utc, to_naive_utc, to_utc
from .base import BaseRepository

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT id, name, description, rules_configuration, strategy_class_name, created_at
    FROM strategies
"""


class StrategyRepository(BaseRepository[Strategy]):
    """Repository for strategies."""

    @property
    def table_name(self) -> str:
        return "strategies"

    def ensure_schema(self) -> None:
        self._ensure_sequence()
        self._db.execute(f"""
            CREATE TABLE IF NOT EXISTS strategies (
                id BIGINT PRIMARY KEY DEFAULT nextval('{self.sequence_name}'),
                name VARCHAR NOT NULL,
                description VARCHAR DEFAULT '',
                rules_configuration VARCHAR,
                strategy_class_name VARCHAR,
                created_at TIMESTAMP NOT NULL
            )
        """)

    def _to_entity(self, row: Tuple) -> Strategy:
        return Strategy(
            id=int(row[0]),
            name=row[1],
            description=row[2] or "",
            rules_configuration=row[3],
            strategy_class_name=row[4],
            created_at=to_utc(row[5]) if row[5] else None,
        )

    def create(
        self,
        name: str,
        description: str = "",
        configuration: Optional[StrategyConfiguration] = None,
        strategy_class_name: Optional[str] = None,
    ) -> Strategy:
        """
        Insert a strategy.

        Args:
            name: Display name.
            description: Free text.
            configuration: Rules for a rule-based strategy, or None.
            strategy_class_name: Implementation name for code-only strategies.

        Returns:
            The stored strategy with its assigned id.
        """
        rules_json = configuration.model_dump_json(by_alias=True) if configuration else None
        row = self._db.fetchone("""
            INSERT INTO strategies (name, description, rules_configuration, strategy_class_name, created_at)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
        """, [name, description, rules_json, strategy_class_name, to_naive_utc(now_utc())])
        strategy_id = int(row[0])
        logger.info(f"Created strategy {strategy_id}: {name}")
        return self.get(strategy_id)

    def get(self, strategy_id: int) -> Optional[Strategy]:
        return self._fetch_entity(f"{_SELECT} WHERE id = ?", [strategy_id])

    def list(self) -> List[Strategy]:
        return self._fetch_entities(f"{_SELECT} ORDER BY id")
