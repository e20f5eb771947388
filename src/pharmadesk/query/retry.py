"""Retry with linear backoff for remote store calls."""

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from .result import ErrorInfo, Failure, OperationResult, from_exception, from_response, is_result

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff for a wrapped remote call.

    The wait before attempt ``n`` (``n >= 2``) is ``base_delay_ms * n``.
    ``is_retryable`` may be supplied to stop retrying on errors that cannot
    succeed on a second try; by default every failure is retried.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    context: Optional[str] = None
    is_retryable: Optional[Callable[[ErrorInfo], bool]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ValueError(f"max_attempts must be a positive integer, got {self.max_attempts!r}")
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must not be negative, got {self.base_delay_ms!r}")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given 1-based attempt."""
        if attempt < 2:
            return 0.0
        return self.base_delay_ms * attempt / 1000.0

    def with_context(self, context: str) -> "RetryPolicy":
        """Copy of this policy with a different diagnostics label."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            context=context,
            is_retryable=self.is_retryable,
        )

    @classmethod
    def from_config(cls, retry_config: Mapping[str, Any], context: Optional[str] = None):
        """Build a policy from the ``retry`` section of the configuration."""
        return cls(
            max_attempts=int(retry_config.get("max_attempts", DEFAULT_MAX_ATTEMPTS)),
            base_delay_ms=int(retry_config.get("base_delay_ms", DEFAULT_BASE_DELAY_MS)),
            context=context,
        )


async def _attempt(operation: Callable[[], Any]) -> OperationResult:
    value = operation()
    if inspect.isawaitable(value):
        value = await value
    if is_result(value):
        return value
    if isinstance(value, Mapping):
        return from_response(value)
    raise TypeError(
        f"Operation returned {type(value).__name__}, expected a Success/Failure "
        "or a mapping with 'data' and 'error' keys"
    )


async def execute_with_retry(
    operation: Callable[[], Any],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> OperationResult:
    """Run a remote operation, retrying failures per the policy.

    Args:
        operation: Zero-argument callable returning a result (or an awaitable of one)
        policy: Retry policy, defaults to three attempts with a one second base delay
        sleep: Awaitable sleep used for backoff, replaceable in tests

    Returns:
        The first Success, or the Failure from the final attempt
    """
    policy = policy or RetryPolicy()
    label = f" ({policy.context})" if policy.context else ""
    last_failure: Optional[Failure] = None

    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            await sleep(policy.delay_before(attempt))

        try:
            result = await _attempt(operation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error executing query on attempt {attempt}{label}: {e}")
            result = from_exception(e)
        else:
            if result.is_success:
                if attempt > 1:
                    logger.debug(f"Query succeeded after {attempt} attempts{label}")
                return result
            logger.warning(f"Query error on attempt {attempt}{label}: {result.error}")

        last_failure = result

        if policy.is_retryable is not None and not policy.is_retryable(result.error):
            logger.debug(f"Not retrying non-retryable error{label}: {result.error.code}")
            break

    logger.error(f"Query failed after {attempt} attempt(s){label}: {last_failure.error}")
    return last_failure


def with_retry(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    context: Optional[str] = None,
):
    """Decorator adding retry to an async function returning an OperationResult.

    Args:
        max_attempts: Maximum number of attempts
        base_delay_ms: Base backoff delay in milliseconds
        context: Diagnostics label, defaults to the function name

    Returns:
        Decorator function
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            policy = RetryPolicy(
                max_attempts=max_attempts,
                base_delay_ms=base_delay_ms,
                context=context or func.__name__,
            )
            return await execute_with_retry(lambda: func(*args, **kwargs), policy)

        return wrapper

    return decorator
