"""Import processing for migration batches.

Each call validates the source rows of one category, classifies and stamps
the valid ones with a fresh migration id, inserts them in a single store
call and then appends the batch to the migration log.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Union

from ..query.retry import RetryPolicy, execute_with_retry
from ..store.base import RecordStore
from .classification import classify_medicine, classify_patient, classify_prescription
from .log import MigrationLog
from .models import ImportIssue, ImportResult, MigrationType, generate_migration_id
from .validation import validate_inventory_item, validate_patient, validate_prescription

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def _number(value: Any, default: Any) -> Any:
    if value in (None, ""):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return int(number) if number.is_integer() else number


def build_inventory_record(item: Row, migration_id: str) -> Row:
    """Build the inventory record stored for a valid source row."""
    return {
        "name": item["name"],
        "generic_name": item.get("generic_name") or None,
        "manufacturer": item.get("manufacturer") or None,
        "ndc": item.get("batch_number") or None,
        "expiry_date": item.get("expiry_date") or None,
        "quantity": _number(item.get("quantity"), 0),
        "unit_cost": _number(item.get("unit_cost"), 0),
        "selling_price": _number(item.get("selling_price"), None),
        "status": "in stock",
        "migration_id": migration_id,
        "category": classify_medicine(item.get("generic_name"), item.get("name")),
    }


def build_patient_record(patient: Row, migration_id: str) -> Row:
    """Build the patient record stored for a valid source row."""
    return {
        "name": patient["name"],
        "phone_number": str(patient["phone_number"]),
        "status": patient.get("status") or "active",
        "patient_type": classify_patient(patient),
        "migration_id": migration_id,
        "user_id": patient.get("user_id") or None,
    }


def build_prescription_record(prescription: Row, migration_id: str) -> Row:
    """Build the prescription record stored for a valid source row.

    Rows without a list of ``items`` are classified as Regular without
    polytherapy.
    """
    classification = {"prescription_type": "Regular", "polytherapy": False}
    if isinstance(prescription.get("items"), list):
        classification = classify_prescription(prescription["items"])

    return {
        "prescription_number": prescription["prescription_number"],
        "doctor_name": prescription["doctor_name"],
        "date": prescription["date"],
        "status": prescription.get("status") or "active",
        "patient_id": prescription.get("patient_id") or None,
        "user_id": prescription.get("user_id") or None,
        "prescription_type": classification["prescription_type"],
        "polytherapy": classification["polytherapy"],
        "migration_id": migration_id,
    }


_HANDLERS = {
    MigrationType.INVENTORY: (validate_inventory_item, build_inventory_record),
    MigrationType.PATIENTS: (validate_patient, build_patient_record),
    MigrationType.PRESCRIPTIONS: (validate_prescription, build_prescription_record),
}


class ImportProcessor:
    """Imports source rows of one category as a single migration batch."""

    def __init__(
        self,
        store: RecordStore,
        log: Optional[MigrationLog] = None,
        policy: Optional[RetryPolicy] = None,
        id_factory: Callable[[], str] = generate_migration_id,
    ):
        """Initialize the import processor.

        Args:
            store: Record store receiving the records
            log: Migration log for batch entries, created on the same store when omitted
            policy: Retry policy for the insert call
            id_factory: Source of new migration ids
        """
        self.store = store
        self.policy = policy or RetryPolicy()
        self.log = log or MigrationLog(store, self.policy)
        self.id_factory = id_factory

    async def process(self, type: Union[str, MigrationType], rows: List[Row]) -> ImportResult:
        """Import rows of one category.

        Rows are numbered from 1 in the issues list. When no row is valid or
        the insert fails, nothing is logged and the whole batch counts as
        skipped.

        Args:
            type: Record category of the rows
            rows: Source rows with canonical field names

        Returns:
            ImportResult with the batch's migration id
        """
        migration_type = MigrationType.parse(type)
        validate, build = _HANDLERS[migration_type]
        migration_id = self.id_factory()

        records = []
        issues = []
        for index, row in enumerate(rows, start=1):
            validation = validate(row)
            if not validation.valid:
                issues.append(ImportIssue(row=index, reason=validation.first_message()))
                continue
            records.append(build(row, migration_id))

        if not records:
            logger.warning(f"No valid {migration_type.value} rows to import")
            return ImportResult(
                success=False,
                added=0,
                skipped=len(rows),
                issues=issues,
                migration_id=migration_id,
            )

        result = await execute_with_retry(
            lambda: self.store.insert(migration_type.table, records),
            self.policy.with_context(f"import {migration_type.value}"),
        )
        if not result.is_success:
            logger.error(f"{migration_type.value} insert failed: {result.error.message}")
            return ImportResult(
                success=False,
                added=0,
                skipped=len(rows),
                issues=[ImportIssue(row=0, reason=result.error.message)],
                migration_id=migration_id,
            )

        skipped = len(rows) - len(records)
        logged = await self.log.record_batch(
            migration_id, migration_type, len(records), skipped, issues
        )
        if not logged.is_success:
            logger.warning(f"Imported migration {migration_id} has no log entry")

        return ImportResult(
            success=True,
            added=len(records),
            skipped=skipped,
            issues=issues,
            migration_id=migration_id,
        )

    async def process_inventory(self, rows: List[Row]) -> ImportResult:
        return await self.process(MigrationType.INVENTORY, rows)

    async def process_patients(self, rows: List[Row]) -> ImportResult:
        return await self.process(MigrationType.PATIENTS, rows)

    async def process_prescriptions(self, rows: List[Row]) -> ImportResult:
        return await self.process(MigrationType.PRESCRIPTIONS, rows)
