"""Migration batches: import, audit log and rollback."""

from .exceptions import (
    InvalidMigrationTypeError,
    MappingTemplateNotFoundError,
    MigrationError,
    SourceFileError,
)
from .log import MigrationLog
from .mapping import apply_mappings, auto_detect_field_mappings
from .models import (
    BatchState,
    ImportIssue,
    ImportResult,
    MappingTemplate,
    MigrationLogEntry,
    MigrationType,
    RollbackRecord,
    generate_migration_id,
)
from .processor import ImportProcessor
from .readers import read_source_file
from .rollback import RollbackHandler
from .templates import MappingTemplateStore

__all__ = [
    "MigrationError",
    "InvalidMigrationTypeError",
    "SourceFileError",
    "MappingTemplateNotFoundError",
    "MigrationLog",
    "RollbackHandler",
    "ImportProcessor",
    "MappingTemplateStore",
    "BatchState",
    "ImportIssue",
    "ImportResult",
    "MappingTemplate",
    "MigrationLogEntry",
    "MigrationType",
    "RollbackRecord",
    "generate_migration_id",
    "apply_mappings",
    "auto_detect_field_mappings",
    "read_source_file",
]
