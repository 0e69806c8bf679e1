"""
Tests for the unit of work and run_operation error mapping.
"""

import pytest

from clubaccess.core.errors import ErrorKind
from clubaccess.core.uow import UnitOfWork
from clubaccess.models import User
from clubaccess.services.base import run_operation

from conftest import count_rows


def new_user(email):
    return User(email=email, password_hash="x", first_name="A", last_name="B", role="coach")


async def test_unique_violation_is_conflict(uow_factory):
    async def body(uow):
        await uow.users.add(new_user("same@example.com"))
        await uow.users.add(new_user("same@example.com"))

    outcome = await run_operation(uow_factory, "test.unique", body)

    assert outcome.kind == ErrorKind.CONFLICT
    assert await count_rows(uow_factory, User) == 0


async def test_other_integrity_error_is_internal(uow_factory):
    """A NOT NULL failure is a bug, not a conflicting record."""
    async def body(uow):
        await uow.users.add(new_user(None))

    outcome = await run_operation(uow_factory, "test.not_null", body)

    assert outcome.kind == ErrorKind.INTERNAL
    assert outcome.error.message == "Internal error"


async def test_uncommitted_work_is_rolled_back(uow_factory):
    async with uow_factory() as uow:
        await uow.users.add(new_user("gone@example.com"))

    assert await count_rows(uow_factory, User) == 0


async def test_commit_outside_block_raises(session_factory):
    uow = UnitOfWork(session_factory)

    with pytest.raises(RuntimeError):
        await uow.commit()
    with pytest.raises(RuntimeError):
        await uow.rollback()
