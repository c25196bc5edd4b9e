"""Explicit result types for the connect workflow.

Each step of the connect workflow returns either ``Ok(value)`` or
``Err(error)`` so every exit path is a plain branch instead of a caught
exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Literal, TypeGuard, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Represents a successful result."""

    value: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Represents a failed result."""

    error: E
    ok: Literal[False] = False


Result = Union[Ok[T], Err[E]]


def is_ok(result: "Result[T, E]") -> TypeGuard[Ok[T]]:
    """Checks if the result is a success."""
    return isinstance(result, Ok)


def is_err(result: "Result[T, E]") -> TypeGuard[Err[E]]:
    """Checks if the result is an error."""
    return isinstance(result, Err)


class ConnectErrorKind(str, Enum):
    """Why a connect request ended in failure."""

    NOT_FOUND = "not_found"
    CONNECTION = "connection"
    PROBE = "probe"
    REGISTRY = "registry"


@dataclass(frozen=True)
class ConnectFailure:
    """Error value carried by ``Err`` for a failed connect request.

    Attributes:
        kind: Failing step
        message: Diagnostic detail (published on the event stream, not returned to HTTP clients)
        device_id: Requested device id
    """

    kind: ConnectErrorKind
    message: str
    device_id: str


__all__ = [
    "ConnectErrorKind",
    "ConnectFailure",
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
