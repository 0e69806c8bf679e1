"""
Tests for the approval workflow.
"""

import asyncio
from uuid import uuid4

import pytest
import pytest_asyncio

from clubaccess.core.errors import ErrorKind
from clubaccess.models import AccessRequest, ApprovalRequest, User

from conftest import count_rows, deactivate_permission, deactivate_role, fetch


async def pending_request_for(uow_factory, user_id) -> ApprovalRequest:
    async with uow_factory() as uow:
        request = await uow.approval_requests.get_one(user_id=user_id)
        await uow.commit()
    return request


async def access_requests_for(uow_factory, parent_id) -> list[AccessRequest]:
    async with uow_factory() as uow:
        requests = await uow.access_requests.all(parent_id=parent_id)
        await uow.commit()
    return requests


@pytest_asyncio.fixture
async def guardian_signup(accounts, athlete, coach, uow_factory):
    """A registered guardian with full coach/athlete context; returns (user, request)."""
    user = (await accounts.register({
        "email": "dad@example.com",
        "password": "secret123",
        "first_name": "Dan",
        "last_name": "Pop",
        "role": "parent",
        "coach_id": str(coach.id),
        "athlete_id": str(athlete.id),
        "approval_notes": "Father of Ana",
    })).unwrap()
    return user, await pending_request_for(uow_factory, user.id)


@pytest_asyncio.fixture
async def coach_signup(accounts, seeded, uow_factory):
    user = (await accounts.register({
        "email": "newcoach@example.com",
        "password": "secret123",
        "first_name": "Nick",
        "last_name": "Coach",
        "role": "coach",
    })).unwrap()
    return user, await pending_request_for(uow_factory, user.id)


class TestApprove:
    async def test_admin_approves_guardian(self, approvals, admin, athlete, coach, guardian_signup, uow_factory):
        user, request = guardian_signup

        outcome = await approvals.approve(admin, request.id)

        assert outcome.ok
        assert outcome.value.status == "approved"
        assert outcome.value.approved_by == admin.id
        assert outcome.value.response_date is not None

        refreshed = await fetch(uow_factory, User, user.id)
        assert refreshed.is_active is True
        assert refreshed.needs_approval is False
        assert refreshed.approved_by == admin.id
        assert refreshed.approved_at is not None

        access = await access_requests_for(uow_factory, user.id)
        assert len(access) == 1
        assert access[0].status == "approved"
        assert access[0].athlete_id == athlete.id
        assert access[0].coach_id == coach.id
        assert access[0].message == "Father of Ana"

    async def test_second_approve_is_already_processed(self, approvals, admin, guardian_signup, uow_factory):
        user, request = guardian_signup
        first = await approvals.approve(admin, request.id)
        after_first = await fetch(uow_factory, User, user.id)

        second = await approvals.approve(admin, request.id)

        assert first.ok
        assert second.kind == ErrorKind.ALREADY_PROCESSED
        after_second = await fetch(uow_factory, User, user.id)
        assert (after_second.is_active, after_second.needs_approval, after_second.approved_at) == (
            after_first.is_active, after_first.needs_approval, after_first.approved_at,
        )
        assert await count_rows(uow_factory, AccessRequest) == 1

    async def test_status_flip_is_compare_and_set(self, approvals, admin, guardian_signup, uow_factory):
        _, request = guardian_signup
        await approvals.approve(admin, request.id)

        # A reviewer that read the request while it was still pending loses
        async with uow_factory() as uow:
            changed = await uow.approval_requests.update_where(
                {"id": request.id, "status": "pending"},
                status="rejected",
            )
            await uow.commit()

        assert changed == 0
        assert (await fetch(uow_factory, ApprovalRequest, request.id)).status == "approved"

    async def test_concurrent_approvals_settle_once(
        self, approvals, admin, coach, guardian_signup, hook_manager, uow_factory, monkeypatch
    ):
        user, request = guardian_signup
        both_checked = asyncio.Barrier(2)
        winner_committed = asyncio.Event()
        arrivals = []
        flip = approvals._flip

        @hook_manager.on("approval.approved")
        async def release(request):
            winner_committed.set()

        async def racing_flip(uow, req, **values):
            position = len(arrivals)
            arrivals.append(values["approved_by"])
            # Both reviewers have read the request as pending before either writes
            await both_checked.wait()
            if position == 1:
                await winner_committed.wait()
            await flip(uow, req, **values)

        monkeypatch.setattr(approvals, "_flip", racing_flip)

        outcomes = await asyncio.wait_for(
            asyncio.gather(approvals.approve(admin, request.id), approvals.approve(coach, request.id)),
            timeout=10,
        )

        assert len(arrivals) == 2
        assert sorted(o.ok for o in outcomes) == [False, True]
        loser = next(o for o in outcomes if not o.ok)
        assert loser.kind == ErrorKind.ALREADY_PROCESSED
        assert (await fetch(uow_factory, User, user.id)).is_active is True
        assert await count_rows(uow_factory, AccessRequest) == 1

    async def test_pending_access_request_is_approved_not_duplicated(
        self, approvals, admin, athlete, coach, guardian_signup, uow_factory
    ):
        user, request = guardian_signup
        async with uow_factory() as uow:
            await uow.access_requests.add(AccessRequest(
                parent_id=user.id, athlete_id=athlete.id, coach_id=coach.id,
            ))
            await uow.commit()

        await approvals.approve(admin, request.id)

        access = await access_requests_for(uow_factory, user.id)
        assert [a.status for a in access] == ["approved"]

    async def test_named_coach_may_approve_guardian(self, approvals, coach, guardian_signup):
        _, request = guardian_signup
        outcome = await approvals.approve(coach, request.id)
        assert outcome.ok

    async def test_other_coach_forbidden(self, approvals, user_factory, guardian_signup, uow_factory):
        user, request = guardian_signup
        stranger = await user_factory.create(role="coach")

        outcome = await approvals.approve(stranger, request.id)

        assert outcome.kind == ErrorKind.FORBIDDEN
        assert (await fetch(uow_factory, User, user.id)).is_active is False

    async def test_named_coach_with_inactive_role_forbidden(self, approvals, coach, guardian_signup, uow_factory):
        user, request = guardian_signup
        await deactivate_role(uow_factory, "coach")

        outcome = await approvals.approve(coach, request.id)

        assert outcome.kind == ErrorKind.FORBIDDEN
        assert (await fetch(uow_factory, User, user.id)).is_active is False

    async def test_named_coach_without_review_permission_forbidden(
        self, approvals, coach, guardian_signup, uow_factory
    ):
        _, request = guardian_signup
        await deactivate_permission(uow_factory, "approval_requests.approve")

        assert (await approvals.approve(coach, request.id)).kind == ErrorKind.FORBIDDEN
        assert (await approvals.reject(coach, request.id)).kind == ErrorKind.FORBIDDEN
        assert (await fetch(uow_factory, ApprovalRequest, request.id)).status == "pending"

    async def test_coach_cannot_approve_coach_signup(self, approvals, coach, coach_signup):
        _, request = coach_signup
        outcome = await approvals.approve(coach, request.id)
        assert outcome.kind == ErrorKind.FORBIDDEN

    async def test_admin_approves_coach_without_access_request(
        self, approvals, admin, coach_signup, uow_factory
    ):
        user, request = coach_signup
        outcome = await approvals.approve(admin, request.id)

        assert outcome.ok
        assert (await fetch(uow_factory, User, user.id)).is_active is True
        assert await count_rows(uow_factory, AccessRequest) == 0

    async def test_missing_request(self, approvals, admin):
        outcome = await approvals.approve(admin, uuid4())
        assert outcome.kind == ErrorKind.NOT_FOUND

    async def test_already_active_user_is_already_processed(
        self, approvals, admin, user_factory, uow_factory
    ):
        active = await user_factory.create(role="coach")
        async with uow_factory() as uow:
            request = await uow.approval_requests.add(ApprovalRequest(
                user_id=active.id, requested_role="coach",
            ))
            await uow.commit()

        outcome = await approvals.approve(admin, request.id)

        assert outcome.kind == ErrorKind.ALREADY_PROCESSED
        assert (await fetch(uow_factory, ApprovalRequest, request.id)).status == "pending"

    async def test_context_falls_back_to_latest_pending_access_request(
        self, approvals, accounts, athlete, coach, uow_factory
    ):
        user = (await accounts.register({
            "email": "mum@example.com", "password": "secret123",
            "first_name": "M", "last_name": "P", "role": "parent",
        })).unwrap()
        async with uow_factory() as uow:
            await uow.access_requests.add(AccessRequest(
                parent_id=user.id, athlete_id=athlete.id, coach_id=coach.id,
            ))
            await uow.commit()
        request = await pending_request_for(uow_factory, user.id)

        # The coach is named only by the access request
        outcome = await approvals.approve(coach, request.id)

        assert outcome.ok
        access = await access_requests_for(uow_factory, user.id)
        assert [a.status for a in access] == ["approved"]

    async def test_context_deleted_after_signup(self, approvals, admin, athlete, guardian_signup, uow_factory):
        user, request = guardian_signup
        async with uow_factory() as uow:
            await uow.athletes.delete(athlete.id)
            await uow.commit()

        outcome = await approvals.approve(admin, request.id)

        assert outcome.ok
        assert (await fetch(uow_factory, User, user.id)).is_active is True
        assert await count_rows(uow_factory, AccessRequest) == 0

    async def test_approved_hook(self, approvals, admin, guardian_signup, hook_manager):
        seen = []

        @hook_manager.on("approval.approved")
        async def record(request):
            seen.append(request.id)

        _, request = guardian_signup
        await approvals.approve(admin, request.id)
        assert seen == [request.id]


class TestReject:
    async def test_reject_guardian(self, approvals, admin, athlete, coach, guardian_signup, uow_factory):
        user, request = guardian_signup
        async with uow_factory() as uow:
            await uow.access_requests.add(AccessRequest(
                parent_id=user.id, athlete_id=athlete.id, coach_id=coach.id,
            ))
            await uow.commit()

        outcome = await approvals.reject(admin, request.id, "Unknown guardian")

        assert outcome.ok
        assert outcome.value.status == "rejected"
        assert outcome.value.rejection_reason == "Unknown guardian"
        assert outcome.value.approved_by == admin.id

        refreshed = await fetch(uow_factory, User, user.id)
        assert refreshed.is_active is False
        assert refreshed.needs_approval is True

        access = await access_requests_for(uow_factory, user.id)
        assert [a.status for a in access] == ["rejected"]

    async def test_reject_then_approve(self, approvals, admin, guardian_signup):
        _, request = guardian_signup
        await approvals.reject(admin, request.id)

        outcome = await approvals.approve(admin, request.id)
        assert outcome.kind == ErrorKind.ALREADY_PROCESSED

    async def test_reject_forbidden_for_parent(self, approvals, user_factory, guardian_signup):
        _, request = guardian_signup
        parent = await user_factory.create(role="parent")
        outcome = await approvals.reject(parent, request.id)
        assert outcome.kind == ErrorKind.FORBIDDEN


class TestListAndDelete:
    async def test_visibility(self, approvals, admin, coach, user_factory, guardian_signup, coach_signup):
        guardian, guardian_request = guardian_signup
        _, coach_request = coach_signup

        all_requests = (await approvals.list_requests(admin)).unwrap()
        assert {r.id for r in all_requests} == {guardian_request.id, coach_request.id}

        coach_view = (await approvals.list_requests(coach)).unwrap()
        assert [r.id for r in coach_view] == [guardian_request.id]

        own = (await approvals.list_requests(guardian)).unwrap()
        assert [r.id for r in own] == [guardian_request.id]

        other_coach = await user_factory.create(role="coach")
        assert (await approvals.list_requests(other_coach)).unwrap() == []

    async def test_status_filter(self, approvals, admin, guardian_signup, coach_signup):
        _, guardian_request = guardian_signup
        await approvals.approve(admin, guardian_request.id)

        pending = (await approvals.list_requests(admin, status="pending")).unwrap()
        assert guardian_request.id not in {r.id for r in pending}

    async def test_delete_admin_only(self, approvals, admin, coach, guardian_signup, uow_factory):
        _, request = guardian_signup

        assert (await approvals.delete_request(coach, request.id)).kind == ErrorKind.FORBIDDEN
        assert (await approvals.delete_request(admin, request.id)).ok
        assert await fetch(uow_factory, ApprovalRequest, request.id) is None

    @pytest.mark.parametrize("missing", [uuid4()])
    async def test_delete_missing(self, approvals, admin, missing):
        assert (await approvals.delete_request(admin, missing)).kind == ErrorKind.NOT_FOUND
