"""In-process record store."""

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional

from ..query.result import Success
from .base import RecordStore, Row, matches, order_rows

logger = logging.getLogger(__name__)


class MemoryStore(RecordStore):
    """
    Record store that keeps every table in a dictionary.

    Used for dry runs and tests. Rows are deep-copied on the way in and out
    so callers cannot mutate stored state by accident.
    """

    backend_type = "memory"

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None):
        """
        Initialize memory store.

        Args:
            tables: Optional initial table contents
        """
        self.tables: Dict[str, List[Row]] = copy.deepcopy(tables) if tables else {}

    async def insert(self, table: str, rows: List[Row]):
        inserted = []
        for row in rows:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid.uuid4()))
            inserted.append(stored)

        self.tables.setdefault(table, []).extend(inserted)
        logger.debug(f"Inserted {len(inserted)} rows into {table}")
        return Success(copy.deepcopy(inserted))

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        rows = [row for row in self.tables.get(table, []) if matches(row, filters)]
        return Success(copy.deepcopy(order_rows(rows, order_by, descending, limit)))

    async def delete_where(self, table: str, column: str, value: Any):
        rows = self.tables.get(table, [])
        kept = [row for row in rows if row.get(column) != value]
        deleted = len(rows) - len(kept)
        self.tables[table] = kept
        logger.debug(f"Deleted {deleted} rows from {table} where {column} = {value}")
        return Success(deleted)

    async def health_check(self) -> bool:
        return True
