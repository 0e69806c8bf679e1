"""
Tests for role, permission and grant management.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from clubaccess.core.errors import ErrorKind
from clubaccess.models import Permission, User
from clubaccess.permissions.catalog import PERMISSIONS, ROLE_DEFAULTS
from clubaccess.permissions.resolver import PermissionService
from clubaccess.utils.timezone import utc_now

from conftest import fetch


async def holds(uow_factory, actor, name, resource_id=None) -> bool:
    async with uow_factory() as uow:
        allowed = await PermissionService(uow).has_permission(actor, name, resource_id)
        await uow.commit()
    return allowed


async def permission_named(uow_factory, name) -> Permission:
    async with uow_factory() as uow:
        permission = await uow.permissions.get_by_name(name)
        await uow.commit()
    return permission


class TestSeeding:
    async def test_seed_is_idempotent(self, rbac, seeded, uow_factory):
        again = (await rbac.seed_defaults()).unwrap()

        assert {r.name for r in again} == set(ROLE_DEFAULTS)
        async with uow_factory() as uow:
            assert await uow.roles.count() == len(ROLE_DEFAULTS)
            assert await uow.permissions.count() == len(PERMISSIONS) + 1
            await uow.commit()

    async def test_system_roles_grant_defaults(self, coach, uow_factory):
        assert await holds(uow_factory, coach, "athletes.create") is True
        assert await holds(uow_factory, coach, "users.delete") is False


class TestRoles:
    async def test_custom_role_grants_through_role_id(self, rbac, admin, user_factory, uow_factory):
        role = (await rbac.create_role(admin, {
            "name": "assistant_coach",
            "permissions": ["athletes.view", "results.edit"],
        })).unwrap()
        assistant = await user_factory.create(role="athlete", role_id=role.id)

        assert await holds(uow_factory, assistant, "results.edit") is True
        # The named role still applies
        assert await holds(uow_factory, assistant, "events.view") is True
        assert await holds(uow_factory, assistant, "users.view") is False

    async def test_unknown_permission_rejected(self, rbac, admin):
        outcome = await rbac.create_role(admin, {"name": "odd", "permissions": ["flying.view"]})
        assert outcome.kind == ErrorKind.VALIDATION_FAILED

    async def test_duplicate_name_conflicts(self, rbac, admin):
        outcome = await rbac.create_role(admin, {"name": "coach"})
        assert outcome.kind == ErrorKind.CONFLICT

    async def test_requires_roles_manage(self, rbac, coach):
        outcome = await rbac.create_role(coach, {"name": "mine"})
        assert outcome.kind == ErrorKind.FORBIDDEN

    async def test_update_replaces_permissions(self, rbac, admin, user_factory, uow_factory):
        role = (await rbac.create_role(admin, {"name": "helper", "permissions": ["users.view"]})).unwrap()
        helper = await user_factory.create(role="athlete", role_id=role.id)

        updated = (await rbac.update_role(admin, role.id, {"permissions": ["roles.view"]})).unwrap()

        assert updated.permission_names == {"roles.view"}
        assert await holds(uow_factory, helper, "users.view") is False
        assert await holds(uow_factory, helper, "roles.view") is True

    async def test_inactive_role_stops_granting(self, rbac, admin, user_factory, uow_factory):
        role = (await rbac.create_role(admin, {"name": "helper", "permissions": ["users.view"]})).unwrap()
        helper = await user_factory.create(role="athlete", role_id=role.id)

        await rbac.update_role(admin, role.id, {"is_active": False})

        assert await holds(uow_factory, helper, "users.view") is False

    async def test_system_role_cannot_be_deleted(self, rbac, admin, seeded):
        coach_role = next(r for r in seeded if r.name == "coach")
        outcome = await rbac.delete_role(admin, coach_role.id)
        assert outcome.kind == ErrorKind.FORBIDDEN

    async def test_delete_custom_role_detaches_users(self, rbac, admin, user_factory, uow_factory):
        role = (await rbac.create_role(admin, {"name": "helper"})).unwrap()
        helper = await user_factory.create(role="athlete", role_id=role.id)

        assert (await rbac.delete_role(admin, role.id)).ok
        assert (await fetch(uow_factory, User, helper.id)).role_id is None

    async def test_list_roles(self, rbac, coach, user_factory):
        assert (await rbac.list_roles(coach)).kind == ErrorKind.FORBIDDEN

        viewer = await user_factory.create(role="superadmin")
        names = {r.name for r in (await rbac.list_roles(viewer)).unwrap()}
        assert names == set(ROLE_DEFAULTS)


class TestPermissions:
    async def test_create_and_deactivate(self, rbac, admin, coach, uow_factory):
        created = (await rbac.create_permission(admin, {"name": "reports.view"})).unwrap()
        assert created.is_active is True
        assert (await rbac.create_permission(admin, {"name": "reports.view"})).kind == ErrorKind.CONFLICT

        athletes_view = await permission_named(uow_factory, "athletes.view")
        assert await holds(uow_factory, coach, "athletes.view") is True

        (await rbac.set_permission_active(admin, athletes_view.id, False)).unwrap()

        assert await holds(uow_factory, coach, "athletes.view") is False

    @pytest.mark.parametrize("name", ["Reports", "reports", "reports..view", "reports.view!"])
    async def test_malformed_names(self, rbac, admin, name):
        outcome = await rbac.create_permission(admin, {"name": name})
        assert outcome.kind == ErrorKind.VALIDATION_FAILED

    async def test_list_requires_permissions_view(self, rbac, admin, coach):
        assert (await rbac.list_permissions(coach)).kind == ErrorKind.FORBIDDEN
        names = {p.name for p in (await rbac.list_permissions(admin)).unwrap()}
        assert "athletes.view" in names and "*" in names


class TestGrants:
    async def test_scoped_grant(self, rbac, admin, user_factory, uow_factory):
        member = await user_factory.create(role="athlete")
        perm = await permission_named(uow_factory, "athletes.edit")

        grant = (await rbac.grant_permission(admin, {
            "user_id": str(member.id),
            "permission_id": str(perm.id),
            "resource_type": "athlete",
            "resource_id": "A",
        })).unwrap()

        assert grant.granted_by == admin.id
        assert await holds(uow_factory, member, "athletes.edit", resource_id="A") is True
        assert await holds(uow_factory, member, "athletes.edit", resource_id="B") is False
        assert await holds(uow_factory, member, "athletes.edit") is False

    async def test_expired_grant(self, rbac, admin, user_factory, uow_factory):
        member = await user_factory.create(role="athlete")
        perm = await permission_named(uow_factory, "events.create")

        await rbac.grant_permission(admin, {
            "user_id": str(member.id),
            "permission_id": str(perm.id),
            "expires_at": (utc_now() - timedelta(hours=1)).isoformat(),
        })

        assert await holds(uow_factory, member, "events.create") is False

    async def test_revoke(self, rbac, admin, user_factory, uow_factory):
        member = await user_factory.create(role="athlete")
        perm = await permission_named(uow_factory, "events.create")
        grant = (await rbac.grant_permission(admin, {
            "user_id": str(member.id), "permission_id": str(perm.id),
        })).unwrap()
        assert await holds(uow_factory, member, "events.create") is True

        assert (await rbac.revoke_permission(admin, grant.id)).ok
        assert await holds(uow_factory, member, "events.create") is False
        assert (await rbac.revoke_permission(admin, grant.id)).kind == ErrorKind.NOT_FOUND

    async def test_duplicate_grant_conflicts(self, rbac, admin, user_factory, uow_factory):
        member = await user_factory.create(role="athlete")
        perm = await permission_named(uow_factory, "events.create")
        data = {"user_id": str(member.id), "permission_id": str(perm.id)}

        (await rbac.grant_permission(admin, data)).unwrap()
        assert (await rbac.grant_permission(admin, data)).kind == ErrorKind.CONFLICT

    async def test_half_scoped_grant_rejected(self, rbac, admin, user_factory, uow_factory):
        member = await user_factory.create(role="athlete")
        perm = await permission_named(uow_factory, "events.create")

        outcome = await rbac.grant_permission(admin, {
            "user_id": str(member.id), "permission_id": str(perm.id), "resource_id": "A",
        })
        assert outcome.kind == ErrorKind.VALIDATION_FAILED

    async def test_unknown_user(self, rbac, admin, uow_factory):
        perm = await permission_named(uow_factory, "events.create")
        outcome = await rbac.grant_permission(admin, {
            "user_id": str(uuid4()), "permission_id": str(perm.id),
        })
        assert outcome.kind == ErrorKind.NOT_FOUND

    async def test_requires_permissions_manage(self, rbac, coach, uow_factory):
        perm = await permission_named(uow_factory, "events.create")
        outcome = await rbac.grant_permission(coach, {
            "user_id": str(coach.id), "permission_id": str(perm.id),
        })
        assert outcome.kind == ErrorKind.FORBIDDEN

    async def test_list_grants(self, rbac, admin, coach, user_factory, uow_factory):
        perm = await permission_named(uow_factory, "users.view")
        await rbac.grant_permission(admin, {"user_id": str(coach.id), "permission_id": str(perm.id)})

        own = (await rbac.list_grants(coach, coach.id)).unwrap()
        assert [g.permission_id for g in own] == [perm.id]

        other = await user_factory.create(role="parent")
        assert (await rbac.list_grants(other, coach.id)).kind == ErrorKind.FORBIDDEN
