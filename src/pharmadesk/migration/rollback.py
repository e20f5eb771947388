"""Rollback of migration batches by migration id."""

import logging
from typing import Optional, Union

from ..query.retry import RetryPolicy, execute_with_retry
from ..store.base import RecordStore
from .log import MigrationLog
from .models import BatchState, MigrationType, RollbackRecord

logger = logging.getLogger(__name__)


class RollbackHandler:
    """Undo a migration batch by deleting every record stamped with its id.

    Rollback is a single delete-by-filter against one category's table. The
    migration log entry is left untouched; the attempt is appended to the
    rollback history instead.
    """

    def __init__(
        self,
        store: RecordStore,
        log: Optional[MigrationLog] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        """Initialize the rollback handler.

        Args:
            store: Record store holding the category tables
            log: Migration log used for the rollback history. Created on the
                same store when omitted.
            policy: Retry policy for the delete call
        """
        self.store = store
        self.policy = policy or RetryPolicy()
        self.log = log or MigrationLog(store, self.policy)

    async def rollback(self, migration_id: str, type: Union[str, MigrationType]) -> bool:
        """Delete every record of one category carrying the migration id.

        Args:
            migration_id: Id of the batch to undo
            type: Record category to delete from

        Returns:
            True if the delete call succeeded, False otherwise. Failures are
            logged, never raised.
        """
        try:
            migration_type = MigrationType.parse(type)

            result = await execute_with_retry(
                lambda: self.store.delete_where(
                    migration_type.table, "migration_id", migration_id
                ),
                self.policy.with_context(f"rollback {migration_type.value}"),
            )
        except Exception as e:
            logger.error(f"Rollback error for migration {migration_id}: {e}")
            return False

        if result.is_success:
            logger.info(
                f"Rolled back {migration_type.value} migration {migration_id}: "
                f"{result.data} records deleted"
            )
            record = RollbackRecord.create(
                migration_id, migration_type, success=True, deleted_count=result.data
            )
        else:
            logger.error(
                f"Failed to rollback {migration_type.value} migration {migration_id}: "
                f"{result.error}"
            )
            record = RollbackRecord.create(
                migration_id, migration_type, success=False, error=str(result.error)
            )

        await self._record_attempt(record)
        return result.is_success

    async def _record_attempt(self, record: RollbackRecord) -> None:
        try:
            history = await self.log.record_rollback(record)
            if not history.is_success:
                logger.warning(
                    f"Could not record rollback of {record.migration_id}: {history.error}"
                )
        except Exception as e:
            logger.warning(f"Could not record rollback of {record.migration_id}: {e}")

    async def status(self, migration_id: str, type: Union[str, MigrationType]) -> BatchState:
        """Return whether a batch is still active or has been rolled back.

        A batch counts as rolled back once a successful rollback has been
        recorded for its id and category. If the history cannot be read the
        batch is reported as active.
        """
        result = await self.log.get_rollbacks(migration_id=migration_id, type=type)
        if not result.is_success:
            logger.warning(f"Could not read rollback history for {migration_id}: {result.error}")
            return BatchState.ACTIVE

        if any(record.success for record in result.data):
            return BatchState.ROLLED_BACK
        return BatchState.ACTIVE
