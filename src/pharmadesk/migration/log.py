"""Append-only audit log of migration batches."""

import logging
from typing import Any, Callable, Iterable, List, Optional, Union

from ..query.result import Failure, OperationResult, Success
from ..query.retry import RetryPolicy, execute_with_retry
from ..store.base import MIGRATION_LOGS_TABLE, MIGRATION_ROLLBACKS_TABLE, RecordStore
from .exceptions import MigrationError
from .models import MigrationLogEntry, MigrationType, RollbackRecord

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


def _parse_rows(rows: Iterable[dict], parse: Callable[[dict], Any], label: str) -> list:
    """Parse stored rows, skipping the ones that cannot be read with a warning."""
    parsed = []
    for row in rows:
        try:
            parsed.append(parse(row))
        except (KeyError, TypeError, ValueError, MigrationError) as e:
            logger.warning(f"Skipping malformed {label} row {row.get('id')}: {e}")
    return parsed


class MigrationLog:
    """Logger for tracking migration batch outcomes.

    Entries are only ever appended. Recording the same migration id twice is
    tolerated and produces two entries.
    """

    def __init__(self, store: RecordStore, policy: Optional[RetryPolicy] = None):
        """Initialize the migration log.

        Args:
            store: Record store holding the ``migration_logs`` table
            policy: Retry policy for store calls
        """
        self.store = store
        self.policy = policy or RetryPolicy()

    async def record_batch(
        self,
        migration_id: str,
        type: Union[str, MigrationType],
        added_count: int,
        skipped_count: int,
        issues: Iterable[Any] = (),
    ) -> OperationResult:
        """Append one log entry for a migration batch.

        Args:
            migration_id: Id stamped on the batch's records
            type: Record category of the batch
            added_count: Number of records created
            skipped_count: Number of source rows skipped
            issues: Skipped rows as ImportIssue objects or ``{row, reason}`` dicts,
                kept in the given order

        Returns:
            Success with the stored MigrationLogEntry, or Failure
        """
        entry = MigrationLogEntry.create(
            migration_id=migration_id,
            type=MigrationType.parse(type),
            added_count=added_count,
            skipped_count=skipped_count,
            issues=issues,
        )

        result = await execute_with_retry(
            lambda: self.store.insert(MIGRATION_LOGS_TABLE, [entry.to_dict()]),
            self.policy.with_context("record migration log"),
        )
        if not result.is_success:
            logger.error(f"Error logging migration {migration_id}: {result.error}")
            return result

        stored = MigrationLogEntry.from_dict(result.data[0])
        logger.info(
            f"Logged {stored.type.value} migration {migration_id}: "
            f"{added_count} added, {skipped_count} skipped"
        )
        return Success(stored)

    async def get_entries(
        self,
        migration_id: Optional[str] = None,
        type: Optional[Union[str, MigrationType]] = None,
    ) -> OperationResult:
        """Get log entries in the order they were recorded.

        Args:
            migration_id: Only return entries for this migration id
            type: Only return entries for this record category

        Returns:
            Success with a list of MigrationLogEntry, or Failure
        """
        filters = {}
        if migration_id is not None:
            filters["migration_id"] = migration_id
        if type is not None:
            filters["type"] = MigrationType.parse(type).value

        result = await execute_with_retry(
            lambda: self.store.select(MIGRATION_LOGS_TABLE, filters=filters or None),
            self.policy.with_context("read migration logs"),
        )
        if not result.is_success:
            return result
        return Success(_parse_rows(result.data, MigrationLogEntry.from_dict, "migration log"))

    async def get_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[MigrationLogEntry]:
        """Get the most recent log entries, newest first.

        Failures are logged and reported as an empty list.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of log entries
        """
        result = await execute_with_retry(
            lambda: self.store.select(
                MIGRATION_LOGS_TABLE, order_by="timestamp", descending=True, limit=limit
            ),
            self.policy.with_context("read recent migrations"),
        )
        if not result.is_success:
            logger.error(f"Failed to fetch migration logs: {result.error}")
            return []

        return _parse_rows(result.data, MigrationLogEntry.from_dict, "migration log")

    async def record_rollback(self, record: RollbackRecord) -> OperationResult:
        """Append a rollback attempt to the rollback history."""
        return await execute_with_retry(
            lambda: self.store.insert(MIGRATION_ROLLBACKS_TABLE, [record.to_dict()]),
            self.policy.with_context("record rollback"),
        )

    async def get_rollbacks(
        self,
        migration_id: Optional[str] = None,
        type: Optional[Union[str, MigrationType]] = None,
    ) -> OperationResult:
        """Get rollback records, optionally filtered.

        Returns:
            Success with a list of RollbackRecord, or Failure
        """
        filters = {}
        if migration_id is not None:
            filters["migration_id"] = migration_id
        if type is not None:
            filters["type"] = MigrationType.parse(type).value

        result = await execute_with_retry(
            lambda: self.store.select(MIGRATION_ROLLBACKS_TABLE, filters=filters or None),
            self.policy.with_context("read rollback records"),
        )
        if isinstance(result, Failure):
            return result
        return Success(_parse_rows(result.data, RollbackRecord.from_dict, "rollback"))
