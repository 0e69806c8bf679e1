"""
Domain errors and operation outcomes.

Business-rule failures are expected control flow: services raise DomainError
inside a unit of work, roll back, and hand the caller an Outcome carrying a
stable error kind. Only unexpected persistence failures become Internal.

Usage:
    outcome = await accounts.create_account(payload)
    if not outcome.ok:
        return {"kind": outcome.error.kind, "message": outcome.error.message}
    user = outcome.value
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Stable error codes returned to callers."""

    VALIDATION_FAILED = "ValidationFailed"
    CONFLICT = "Conflict"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    ALREADY_PROCESSED = "AlreadyProcessed"
    INTERNAL = "Internal"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.CONFLICT: 409,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_PROCESSED: 409,
    ErrorKind.INTERNAL: 500,
}


class DomainError(Exception):
    """A declined operation with a typed kind."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str | None = None, *, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message or self.kind.value)

    def to_payload(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


class ValidationFailed(DomainError):
    kind = ErrorKind.VALIDATION_FAILED


class Conflict(DomainError):
    kind = ErrorKind.CONFLICT


class Forbidden(DomainError):
    kind = ErrorKind.FORBIDDEN


class NotFound(DomainError):
    kind = ErrorKind.NOT_FOUND


class AlreadyProcessed(DomainError):
    kind = ErrorKind.ALREADY_PROCESSED


class InternalError(DomainError):
    kind = ErrorKind.INTERNAL


@dataclass
class Outcome(Generic[T]):
    """
    Result of a service operation.

    Attributes:
        value: Success payload (None for operations without one)
        error: The declining DomainError, or None on success
    """
    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
