"""
Permission catalog.

The platform's permission names and the default permission set of each
system role. RBACService.seed_defaults() writes this catalog to the database;
PermissionResolver only ever looks at database rows.
"""

from dataclasses import dataclass

from clubaccess.models.rbac import WILDCARD
from clubaccess.models.user import UserRole


@dataclass(frozen=True)
class PermissionSpec:
    name: str
    description: str


PERMISSIONS: tuple[PermissionSpec, ...] = (
    PermissionSpec("dashboard.view", "View the dashboard"),
    PermissionSpec("users.view", "View users"),
    PermissionSpec("users.create", "Create users"),
    PermissionSpec("users.edit", "Edit existing users"),
    PermissionSpec("users.delete", "Delete users"),
    PermissionSpec("athletes.view", "View athletes"),
    PermissionSpec("athletes.create", "Add athletes"),
    PermissionSpec("athletes.edit", "Edit athlete data"),
    PermissionSpec("athletes.delete", "Delete athletes"),
    PermissionSpec("results.view", "View results"),
    PermissionSpec("results.create", "Add results"),
    PermissionSpec("results.edit", "Edit results"),
    PermissionSpec("results.delete", "Delete results"),
    PermissionSpec("events.view", "View events"),
    PermissionSpec("events.create", "Create events"),
    PermissionSpec("events.edit", "Edit events"),
    PermissionSpec("events.delete", "Delete events"),
    PermissionSpec("messages.view", "View messages"),
    PermissionSpec("messages.create", "Send messages"),
    PermissionSpec("messages.delete", "Delete messages"),
    PermissionSpec("access_requests.view", "View access requests"),
    PermissionSpec("access_requests.approve", "Approve or reject access requests"),
    PermissionSpec("approval_requests.view", "View account approval requests"),
    PermissionSpec("approval_requests.approve", "Approve or reject accounts"),
    PermissionSpec("permissions.view", "View permissions"),
    PermissionSpec("permissions.manage", "Manage permissions and grants"),
    PermissionSpec("roles.view", "View roles"),
    PermissionSpec("roles.manage", "Manage roles"),
    PermissionSpec("age_categories.view", "View age categories"),
    PermissionSpec("age_categories.manage", "Manage age categories"),
    PermissionSpec("trials.view", "View athletic trials"),
    PermissionSpec("trials.manage", "Manage athletic trials"),
)

PERMISSION_NAMES: frozenset[str] = frozenset(p.name for p in PERMISSIONS)


ROLE_DEFAULTS: dict[str, tuple[str, ...]] = {
    UserRole.SUPERADMIN: (WILDCARD,),
    UserRole.COACH: (
        "dashboard.view",
        "athletes.view", "athletes.create", "athletes.edit",
        "results.view", "results.create", "results.edit",
        "events.view",
        "messages.view", "messages.create",
        "access_requests.view", "access_requests.approve",
        "approval_requests.view", "approval_requests.approve",
        "trials.view",
        "age_categories.view",
    ),
    UserRole.PARENT: (
        "dashboard.view",
        "athletes.view",
        "results.view",
        "events.view",
        "messages.view", "messages.create",
        "access_requests.view",
    ),
    UserRole.ATHLETE: (
        "dashboard.view",
        "results.view",
        "events.view",
        "messages.view",
    ),
}

ROLE_DISPLAY_NAMES: dict[str, str] = {
    UserRole.SUPERADMIN: "Administrator",
    UserRole.COACH: "Coach",
    UserRole.PARENT: "Parent",
    UserRole.ATHLETE: "Athlete",
}

