"""
Filesystem record store.

Each table is a JSON document ``{"rows": [...]}`` in its own file under the
store directory. Writes go to a temporary file first and are moved into
place, so a crash never leaves a half-written table behind.
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os

from ..query.result import ErrorInfo, Failure, Success, from_exception
from .base import RecordStore, Row, StoreError, matches, order_rows

logger = logging.getLogger(__name__)


class FileSystemStore(RecordStore):
    """Record store backed by JSON files on the local filesystem."""

    backend_type = "filesystem"

    def __init__(self, base_path: str, create_dirs: bool = True):
        """
        Initialize filesystem store.

        Args:
            base_path: Directory holding one JSON file per table
            create_dirs: Whether to create the directory if it doesn't exist
        """
        self.base_path = Path(base_path).expanduser()
        self._table_locks: Dict[str, asyncio.Lock] = {}

        if create_dirs:
            try:
                self.base_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreError(
                    f"Failed to create store directory {self.base_path}",
                    backend_type=self.backend_type,
                    original_error=e,
                )

        logger.info(f"Initialized filesystem store at {self.base_path}")

    def _lock(self, table: str) -> asyncio.Lock:
        """Lock serializing read-modify-write cycles on one table file."""
        if table not in self._table_locks:
            self._table_locks[table] = asyncio.Lock()
        return self._table_locks[table]

    def _table_path(self, table: str) -> Path:
        if not table or "/" in table or "\\" in table or table.startswith("."):
            raise ValueError(f"Invalid table name: {table!r}")
        return self.base_path / f"{table}.json"

    async def _read_table(self, table: str) -> List[Row]:
        path = self._table_path(table)
        if not path.exists():
            return []

        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()

        if not content.strip():
            return []
        return json.loads(content).get("rows", [])

    async def _write_table(self, table: str, rows: List[Row]) -> None:
        path = self._table_path(table)
        temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")

        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps({"rows": rows}, indent=2, default=str))

        await aiofiles.os.replace(str(temp_path), str(path))

    async def insert(self, table: str, rows: List[Row]):
        try:
            inserted = []
            for row in rows:
                stored = dict(row)
                stored.setdefault("id", str(uuid.uuid4()))
                inserted.append(stored)

            async with self._lock(table):
                existing = await self._read_table(table)
                await self._write_table(table, existing + inserted)
            logger.debug(f"Inserted {len(inserted)} rows into {table}")
            return Success(inserted)

        except json.JSONDecodeError as e:
            logger.error(f"Table file for {table} is corrupt: {e}")
            return Failure(ErrorInfo(code="corrupt_table", message=str(e), details={"table": table}))
        except Exception as e:
            logger.error(f"Failed to insert into {table}: {e}")
            return from_exception(e)

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        try:
            rows = [row for row in await self._read_table(table) if matches(row, filters)]
            return Success(order_rows(rows, order_by, descending, limit))

        except json.JSONDecodeError as e:
            logger.error(f"Table file for {table} is corrupt: {e}")
            return Failure(ErrorInfo(code="corrupt_table", message=str(e), details={"table": table}))
        except Exception as e:
            logger.error(f"Failed to read {table}: {e}")
            return from_exception(e)

    async def delete_where(self, table: str, column: str, value: Any):
        try:
            async with self._lock(table):
                rows = await self._read_table(table)
                kept = [row for row in rows if row.get(column) != value]
                deleted = len(rows) - len(kept)

                if deleted:
                    await self._write_table(table, kept)

            logger.debug(f"Deleted {deleted} rows from {table} where {column} = {value}")
            return Success(deleted)

        except json.JSONDecodeError as e:
            logger.error(f"Table file for {table} is corrupt: {e}")
            return Failure(ErrorInfo(code="corrupt_table", message=str(e), details={"table": table}))
        except Exception as e:
            logger.error(f"Failed to delete from {table}: {e}")
            return from_exception(e)

    async def health_check(self) -> bool:
        try:
            health_file = self.base_path / f".health-{uuid.uuid4().hex}"
            async with aiofiles.open(health_file, "w") as f:
                await f.write("ok")
            await aiofiles.os.remove(str(health_file))
            return True
        except Exception as e:
            logger.warning(f"Filesystem store health check failed: {e}")
            return False
