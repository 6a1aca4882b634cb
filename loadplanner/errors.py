"""
Error kinds and typed results for the planner core.

Internal code raises one of the PlannerError subclasses below. The core
boundary (PlannerSession, the mutation engine) catches them and hands the
caller an Outcome / MutationResult instead, so nothing past the boundary
ever sees an exception.

    ValidationError        malformed ids, bad numbers, duplicates, capacity
    NotFoundError          unknown flight, unit or slot
    InfeasibleError        no optimal layout exists (or too many units)
    IncompleteResultError  solver said optimal but the layout has holes
    InternalError          unexpected solver / repository failure
    BusyError              a load or optimization is already in flight
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Stable error kinds reported to callers"""

    VALIDATION = auto()
    NOT_FOUND = auto()
    INFEASIBLE = auto()
    INCOMPLETE_RESULT = auto()
    INTERNAL = auto()
    BUSY = auto()


class PlannerError(Exception):
    """Base class for every error raised inside the core."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PlannerError):
    kind = ErrorKind.VALIDATION
    status = 400


class NotFoundError(PlannerError):
    kind = ErrorKind.NOT_FOUND
    status = 404


class InfeasibleError(PlannerError):
    kind = ErrorKind.INFEASIBLE
    status = 422


class IncompleteResultError(PlannerError):
    kind = ErrorKind.INCOMPLETE_RESULT
    status = 500


class InternalError(PlannerError):
    kind = ErrorKind.INTERNAL
    status = 500


class BusyError(PlannerError):
    kind = ErrorKind.BUSY
    status = 409


HTTP_STATUS: dict[ErrorKind, int] = {
    cls.kind: cls.status
    for cls in (
        ValidationError,
        NotFoundError,
        InfeasibleError,
        IncompleteResultError,
        InternalError,
        BusyError,
    )
}


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a boundary call: either a value or an error kind + message."""

    ok: bool
    value: T | None = None
    error_kind: ErrorKind | None = None
    message: str = ""

    @classmethod
    def success(cls, value: T, message: str = "") -> Outcome[T]:
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, error: PlannerError) -> Outcome[T]:
        return cls(ok=False, error_kind=error.kind, message=error.message)
