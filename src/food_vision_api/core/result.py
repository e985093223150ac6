"""
Discriminated result type for the detection and reconciliation flow.

Every call site receives either ``Success`` or ``Failure`` and has to
branch on it explicitly. A pending request has no result at all, so there
is no third "loading" case.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful result with data."""

    data: T


@dataclass(frozen=True)
class Failure:
    """Failed result with a user-facing message."""

    message: str
    exception: BaseException | None = None
    error_code: str = "ERROR"


Result = Union[Success[T], Failure]


def is_success(result: "Result[T]") -> bool:
    return isinstance(result, Success)


def data_or_none(result: "Result[T]") -> T | None:
    """Get the data of a successful result, or None."""
    if isinstance(result, Success):
        return result.data
    return None


def error_or_none(result: "Result[T]") -> str | None:
    """Get the failure message, or None for a success."""
    if isinstance(result, Failure):
        return result.message
    return None
