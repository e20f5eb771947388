"""Record store interface shared by all backends."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..query.result import OperationResult

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

INVENTORY_TABLE = "inventory"
PATIENTS_TABLE = "patients"
PRESCRIPTIONS_TABLE = "prescriptions"
MIGRATION_LOGS_TABLE = "migration_logs"
MIGRATION_ROLLBACKS_TABLE = "migration_rollbacks"
MAPPING_TEMPLATES_TABLE = "mapping_templates"


class RecordStore(ABC):
    """
    Abstract base class for record stores.

    Every operation returns an OperationResult. Backend failures are reported
    as Failure values rather than raised, so callers can hand the calls
    straight to the retry executor.
    """

    backend_type = "unknown"

    @abstractmethod
    async def insert(self, table: str, rows: List[Row]) -> OperationResult:
        """
        Insert rows into a table.

        Args:
            table: Table name
            rows: Rows to insert. Rows without an ``id`` are given one.

        Returns:
            Success with the inserted rows (ids filled in), or Failure
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> OperationResult:
        """
        Read rows from a table.

        Args:
            table: Table name
            filters: Column equality filters, all must match
            order_by: Column to sort by. Insertion order is kept when omitted.
            descending: Sort newest/largest first
            limit: Maximum number of rows to return

        Returns:
            Success with a list of rows, or Failure
        """
        pass

    @abstractmethod
    async def delete_where(self, table: str, column: str, value: Any) -> OperationResult:
        """
        Delete every row whose column equals value.

        Args:
            table: Table name
            column: Column to filter on
            value: Value to match

        Returns:
            Success with the number of deleted rows, or Failure
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the store is reachable.

        Returns:
            True if the store is healthy, False otherwise
        """
        pass


def matches(row: Row, filters: Optional[Dict[str, Any]]) -> bool:
    """Return True if a row satisfies every equality filter."""
    if not filters:
        return True
    return all(row.get(column) == value for column, value in filters.items())


def order_rows(
    rows: List[Row], order_by: Optional[str], descending: bool, limit: Optional[int]
) -> List[Row]:
    """Apply ordering and limit the way every local backend does."""
    if order_by:
        # Rows missing the column sort first, or last when descending
        rows = sorted(
            rows,
            key=lambda r: (r.get(order_by) is not None, r.get(order_by)),
            reverse=descending,
        )
    if limit is not None:
        rows = rows[:limit]
    return rows


class StoreError(Exception):
    """
    Exception raised when a store cannot be created or configured.

    Runtime backend failures are returned as Failure values; this exception
    is only for problems the caller has to fix, such as bad configuration.
    """

    def __init__(
        self,
        message: str,
        backend_type: str = "unknown",
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize store error.

        Args:
            message: Error message
            backend_type: Type of backend that failed
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.backend_type = backend_type
        self.original_error = original_error

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (caused by: {self.original_error})"
        return base_msg
