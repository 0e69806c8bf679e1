"""
Shared plumbing for service operations.

run_operation() opens a unit of work, runs the operation body, commits, and
turns every failure into an Outcome:

- DomainError: rolled back, returned as-is
- IntegrityError on a unique index: rolled back, returned as Conflict
- any other IntegrityError: rolled back, logged with traceback, returned as Internal
- pydantic ValidationError: returned as ValidationFailed
- anything else: rolled back, logged with traceback, returned as Internal
"""

from typing import Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from clubaccess.core.errors import (
    Conflict,
    DomainError,
    InternalError,
    Outcome,
    ValidationFailed,
)
from clubaccess.core.uow import UnitOfWork

logger = structlog.get_logger()

T = TypeVar("T")

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the driver reports a unique index violation (asyncpg or SQLite)."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


def validation_message(error: ValidationError) -> str:
    """Compact one-line summary of a pydantic ValidationError."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {item.get('msg')}" if loc else str(item.get("msg")))
    return "; ".join(parts)


async def run_operation(
    uow_factory: Callable[[], UnitOfWork],
    operation: str,
    body: Callable[[UnitOfWork], Awaitable[T]],
    **log_context: Any,
) -> Outcome[T]:
    """Run body inside one unit of work and commit it."""
    try:
        async with uow_factory() as uow:
            value = await body(uow)
            await uow.commit()
    except DomainError as e:
        logger.info(
            "Operation declined",
            operation=operation,
            kind=e.kind.value,
            reason=e.message,
            **log_context,
        )
        return Outcome.failure(e)
    except ValidationError as e:
        return Outcome.failure(ValidationFailed(validation_message(e)))
    except IntegrityError as e:
        if is_unique_violation(e):
            logger.warning("Unique violation", operation=operation, **log_context)
            return Outcome.failure(Conflict("A conflicting record already exists"))
        logger.exception("Integrity violation", operation=operation, **log_context)
        return Outcome.failure(InternalError("Internal error"))
    except Exception:
        logger.exception("Operation failed", operation=operation, **log_context)
        return Outcome.failure(InternalError("Internal error"))

    return Outcome.success(value)
