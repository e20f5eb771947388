"""Tagged results for remote store calls."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorInfo:
    """Description of a failed remote call."""

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True)
class Success(Generic[T]):
    """A remote call that returned data."""

    data: T

    @property
    def is_success(self) -> bool:
        return True

    def unwrap_or(self, default: Any) -> T:
        return self.data


@dataclass(frozen=True)
class Failure:
    """A remote call that failed. Carries no data."""

    error: ErrorInfo

    @property
    def is_success(self) -> bool:
        return False

    def unwrap_or(self, default: Any) -> Any:
        return default


OperationResult = Union[Success[T], Failure]


def from_exception(error: BaseException, code: Optional[str] = None) -> Failure:
    """Build a Failure from a caught exception.

    Args:
        error: The exception raised by the remote call
        code: Error code to use instead of the exception class name

    Returns:
        Failure describing the exception
    """
    details: Dict[str, Any] = {"exception_type": type(error).__name__}

    # botocore ClientError keeps the service error code in its response
    response = getattr(error, "response", None)
    if code is None and isinstance(response, dict):
        code = response.get("Error", {}).get("Code")

    return Failure(ErrorInfo(code=code or type(error).__name__, message=str(error), details=details))


def from_response(response: Mapping[str, Any]) -> OperationResult:
    """Convert a ``{"data": ..., "error": ...}`` mapping to a result variant.

    A non-empty ``error`` always wins over ``data``.
    """
    error = response.get("error")
    if not error:
        return Success(response.get("data"))

    if isinstance(error, ErrorInfo):
        return Failure(error)
    if isinstance(error, BaseException):
        return from_exception(error)
    if isinstance(error, Mapping):
        return Failure(
            ErrorInfo(
                code=str(error.get("code") or "remote_error"),
                message=str(error.get("message") or error),
                details={k: v for k, v in error.items() if k not in ("code", "message")},
            )
        )
    return Failure(ErrorInfo(code="remote_error", message=str(error)))


def is_result(value: Any) -> bool:
    """Return True if value is already a Success or Failure."""
    return isinstance(value, (Success, Failure))
