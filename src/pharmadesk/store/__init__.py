"""Record store backends.

This module provides the storage backends the migration components talk to:
- MemoryStore: in-process tables for dry runs and tests
- FileSystemStore: JSON tables on the local filesystem
- DynamoDBStore: AWS DynamoDB tables
- RecordStore: Abstract base class for all backends
"""

from typing import Any, Dict, Optional

from .base import (
    INVENTORY_TABLE,
    MAPPING_TEMPLATES_TABLE,
    MIGRATION_LOGS_TABLE,
    MIGRATION_ROLLBACKS_TABLE,
    PATIENTS_TABLE,
    PRESCRIPTIONS_TABLE,
    RecordStore,
    StoreError,
)
from .dynamodb import DynamoDBStore
from .filesystem import FileSystemStore
from .memory import MemoryStore

SUPPORTED_BACKENDS = ("memory", "filesystem", "dynamodb")


def create_store(store_config: Optional[Dict[str, Any]] = None) -> RecordStore:
    """
    Create a record store from the ``store`` configuration section.

    Args:
        store_config: Store configuration. Defaults to a filesystem store.

    Returns:
        The configured record store

    Raises:
        StoreError: If the backend is unknown or its settings are incomplete
    """
    store_config = store_config or {}
    backend = str(store_config.get("backend", "filesystem")).lower()

    if backend == "memory":
        return MemoryStore()

    if backend == "filesystem":
        path = store_config.get("filesystem", {}).get("path")
        if not path:
            raise StoreError("store.filesystem.path is required", backend_type=backend)
        return FileSystemStore(path)

    if backend == "dynamodb":
        dynamo_config = store_config.get("dynamodb", {})
        return DynamoDBStore(
            table_prefix=dynamo_config.get("table_prefix", "pharmadesk_"),
            region_name=dynamo_config.get("region"),
            profile_name=dynamo_config.get("profile"),
            endpoint_url=dynamo_config.get("endpoint_url"),
        )

    raise StoreError(
        f"Unknown store backend '{backend}'. Valid backends are: {', '.join(SUPPORTED_BACKENDS)}",
        backend_type=backend,
    )


__all__ = [
    "RecordStore",
    "StoreError",
    "MemoryStore",
    "FileSystemStore",
    "DynamoDBStore",
    "create_store",
    "SUPPORTED_BACKENDS",
    "INVENTORY_TABLE",
    "PATIENTS_TABLE",
    "PRESCRIPTIONS_TABLE",
    "MIGRATION_LOGS_TABLE",
    "MIGRATION_ROLLBACKS_TABLE",
    "MAPPING_TEMPLATES_TABLE",
]
