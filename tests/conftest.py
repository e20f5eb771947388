"""Shared fixtures for pharmadesk tests."""

import logging
from typing import Any, List

import pytest

from pharmadesk.query.result import ErrorInfo, Failure
from pharmadesk.query.retry import RetryPolicy
from pharmadesk.store import MemoryStore


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedOperation:
    """Zero-argument operation returning a scripted sequence of outcomes.

    Exceptions in the script are raised instead of returned.
    """

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FailingStore(MemoryStore):
    """Memory store whose operations fail a set number of times first."""

    def __init__(self, fail_insert=0, fail_select=0, fail_delete=0, error=None):
        super().__init__()
        self.remaining = {"insert": fail_insert, "select": fail_select, "delete": fail_delete}
        self.calls = {"insert": 0, "select": 0, "delete": 0}
        self.error = error or ErrorInfo(code="network_error", message="connection reset")

    def _should_fail(self, operation: str) -> bool:
        self.calls[operation] += 1
        if self.remaining[operation] != 0:
            self.remaining[operation] -= 1
            return True
        return False

    async def insert(self, table, rows):
        if self._should_fail("insert"):
            return Failure(self.error)
        return await super().insert(table, rows)

    async def select(self, table, filters=None, order_by=None, descending=False, limit=None):
        if self._should_fail("select"):
            return Failure(self.error)
        return await super().select(table, filters, order_by, descending, limit)

    async def delete_where(self, table, column, value):
        if self._should_fail("delete"):
            return Failure(self.error)
        return await super().delete_where(table, column, value)


@pytest.fixture
def recording_sleep():
    """Sleep replacement recording backoff delays."""
    return RecordingSleep()


@pytest.fixture
def fast_policy():
    """Retry policy without backoff delay."""
    return RetryPolicy(max_attempts=3, base_delay_ms=0)


@pytest.fixture
def memory_store():
    """Empty in-memory record store."""
    return MemoryStore()


@pytest.fixture
def scripted():
    """Factory for scripted operations."""
    return ScriptedOperation


@pytest.fixture
def failing_store():
    """Factory for stores that fail their first calls."""
    return FailingStore


@pytest.fixture
def cli_home(tmp_path, monkeypatch):
    """Point the CLI at a temporary home directory and filesystem store.

    Console logging is limited to errors so stdout carries only command
    output. Handlers installed on the pharmadesk logger are removed afterwards.
    """
    monkeypatch.setenv("PHARMADESK_HOME", str(tmp_path))
    monkeypatch.setenv("PHARMADESK_STORE_BACKEND", "filesystem")
    monkeypatch.setenv("PHARMADESK_STORE_PATH", str(tmp_path / "data"))
    monkeypatch.setenv("PHARMADESK_RETRY_BASE_DELAY_MS", "0")
    monkeypatch.setenv("PHARMADESK_LOG_LEVEL", "ERROR")
    monkeypatch.delenv("PHARMADESK_RETRY_MAX_ATTEMPTS", raising=False)

    logger = logging.getLogger("pharmadesk")
    handlers, level = list(logger.handlers), logger.level
    yield tmp_path
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
