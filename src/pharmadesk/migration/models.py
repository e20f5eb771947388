"""Data models for migration batches."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..store.base import (
    INVENTORY_TABLE,
    PATIENTS_TABLE,
    PRESCRIPTIONS_TABLE,
)
from .exceptions import InvalidMigrationTypeError


class MigrationType(str, Enum):
    """Record categories that can be imported and rolled back."""

    INVENTORY = "Inventory"
    PATIENTS = "Patients"
    PRESCRIPTIONS = "Prescriptions"

    @property
    def table(self) -> str:
        """Name of the record table holding this category."""
        return _TABLES[self]

    @classmethod
    def parse(cls, value: Union[str, "MigrationType"]) -> "MigrationType":
        """Parse a category name case-insensitively."""
        if isinstance(value, MigrationType):
            return value
        for member in cls:
            if str(value).strip().lower() in (member.value.lower(), member.table):
                return member
        raise InvalidMigrationTypeError(str(value))


_TABLES = {
    MigrationType.INVENTORY: INVENTORY_TABLE,
    MigrationType.PATIENTS: PATIENTS_TABLE,
    MigrationType.PRESCRIPTIONS: PRESCRIPTIONS_TABLE,
}


class BatchState(str, Enum):
    """Observable state of a migration batch."""

    ACTIVE = "Active"
    ROLLED_BACK = "RolledBack"


def generate_migration_id() -> str:
    """Generate a new opaque migration id."""
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ImportIssue:
    """A source row that was skipped during import."""

    row: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportIssue":
        return cls(row=int(data["row"]), reason=str(data["reason"]))


def _as_issues(issues: Iterable[Any]) -> Tuple[ImportIssue, ...]:
    return tuple(i if isinstance(i, ImportIssue) else ImportIssue.from_dict(i) for i in issues)


@dataclass(frozen=True)
class MigrationLogEntry:
    """Immutable audit record of one import batch for one category."""

    migration_id: str
    type: MigrationType
    timestamp: str
    added_count: int
    skipped_count: int
    issues: Tuple[ImportIssue, ...] = ()
    id: Optional[str] = None

    @classmethod
    def create(
        cls,
        migration_id: str,
        type: MigrationType,
        added_count: int,
        skipped_count: int,
        issues: Iterable[Any] = (),
    ) -> "MigrationLogEntry":
        """Create a new log entry stamped with the current time."""
        return cls(
            migration_id=migration_id,
            type=MigrationType.parse(type),
            timestamp=_now(),
            added_count=added_count,
            skipped_count=skipped_count,
            issues=_as_issues(issues),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        data = {
            "migration_id": self.migration_id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "added_count": self.added_count,
            "skipped_count": self.skipped_count,
            "issues": [issue.to_dict() for issue in self.issues],
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationLogEntry":
        """Create from a stored row."""
        return cls(
            migration_id=data["migration_id"],
            type=MigrationType.parse(data["type"]),
            timestamp=data["timestamp"],
            added_count=int(data.get("added_count", 0)),
            skipped_count=int(data.get("skipped_count", 0)),
            issues=_as_issues(data.get("issues") or []),
            id=data.get("id"),
        )


@dataclass(frozen=True)
class RollbackRecord:
    """Record of one rollback attempt. Stored beside, never inside, the log."""

    migration_id: str
    type: MigrationType
    timestamp: str
    success: bool
    deleted_count: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def create(
        cls,
        migration_id: str,
        type: MigrationType,
        success: bool,
        deleted_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> "RollbackRecord":
        return cls(
            migration_id=migration_id,
            type=type,
            timestamp=_now(),
            success=success,
            deleted_count=deleted_count,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "migration_id": self.migration_id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "success": self.success,
            "deleted_count": self.deleted_count,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RollbackRecord":
        return cls(
            migration_id=data["migration_id"],
            type=MigrationType.parse(data["type"]),
            timestamp=data["timestamp"],
            success=bool(data.get("success", False)),
            deleted_count=data.get("deleted_count"),
            error=data.get("error"),
        )


@dataclass
class ImportResult:
    """Outcome of importing one batch of source rows."""

    success: bool
    added: int
    skipped: int
    issues: List[ImportIssue] = field(default_factory=list)
    migration_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "added": self.added,
            "skipped": self.skipped,
            "issues": [issue.to_dict() for issue in self.issues],
            "migration_id": self.migration_id,
        }


@dataclass
class MappingTemplate:
    """Saved mapping from source column headers to canonical field names."""

    name: str
    source_system: str
    data_type: MigrationType
    mappings: Dict[str, str]
    id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "source_system": self.source_system,
            "data_type": self.data_type.value,
            "mappings": dict(self.mappings),
            "created_at": self.created_at or _now(),
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingTemplate":
        return cls(
            name=data["name"],
            source_system=data.get("source_system", ""),
            data_type=MigrationType.parse(data["data_type"]),
            mappings=dict(data.get("mappings") or {}),
            id=data.get("id"),
            created_at=data.get("created_at"),
        )
