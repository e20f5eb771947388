"""Custom exception classes for migration operations.

Store failures are never raised; they travel as Failure results. These
exceptions cover mistakes the caller has to fix before anything is sent to
the store.
"""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base exception for migration operations."""

    def __init__(
        self,
        message: str,
        migration_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize migration error.

        Args:
            message: Error message
            migration_id: Migration ID related to the error
            context: Additional context information
        """
        super().__init__(message)
        self.migration_id = migration_id
        self.context = context or {}


class InvalidMigrationTypeError(MigrationError):
    """Exception raised when a record category name is not recognised."""

    def __init__(self, value: str):
        """Initialize invalid migration type error.

        Args:
            value: The category name that was given
        """
        super().__init__(
            f"Invalid migration type '{value}'. Must be one of: Inventory, Patients, Prescriptions",
            context={"value": value},
        )
        self.value = value


class SourceFileError(MigrationError):
    """Exception raised when an import source file cannot be read."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        """Initialize source file error.

        Args:
            message: Error message
            file_path: Path of the file being read
            line_number: Line where the problem was found, if known
            original_exception: Original exception that caused the error
        """
        super().__init__(
            message,
            context={
                "file_path": file_path,
                "line_number": line_number,
                "original_exception": str(original_exception) if original_exception else None,
            },
        )
        self.file_path = file_path
        self.line_number = line_number
        self.original_exception = original_exception


class MappingTemplateNotFoundError(MigrationError):
    """Exception raised when a named mapping template does not exist."""

    def __init__(self, name: str, data_type: str):
        super().__init__(
            f"Mapping template '{name}' not found for {data_type}",
            context={"name": name, "data_type": data_type},
        )
        self.name = name
        self.data_type = data_type
