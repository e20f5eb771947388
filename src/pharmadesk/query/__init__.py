"""Result types and retry execution for remote store calls."""

from .result import (
    ErrorInfo,
    Failure,
    OperationResult,
    Success,
    from_exception,
    from_response,
    is_result,
)
from .retry import RetryPolicy, execute_with_retry, with_retry

__all__ = [
    "ErrorInfo",
    "Failure",
    "OperationResult",
    "Success",
    "from_exception",
    "from_response",
    "is_result",
    "RetryPolicy",
    "execute_with_retry",
    "with_retry",
]
