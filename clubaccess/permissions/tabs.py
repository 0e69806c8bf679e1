"""
Navigation tabs derived from an effective permission set.

Each tab is unlocked by exactly one gating permission. A few related
permission names are folded onto a gating permission through ALIASES.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from clubaccess.models.rbac import WILDCARD


@dataclass(frozen=True)
class Tab:
    id: str
    label: str
    permission: str
    category: str
    order: int


DASHBOARD = Tab("dashboard", "Dashboard", "dashboard.view", "core", 0)

# Declaration order breaks ties between equal order ranks.
TAB_CATALOG: tuple[Tab, ...] = (
    DASHBOARD,
    Tab("athletes", "Athletes", "athletes.view", "data", 10),
    Tab("events", "Events", "events.view", "data", 20),
    Tab("requests", "Requests", "access_requests.view", "data", 30),
    Tab("messages", "Messages", "messages.view", "data", 40),
    Tab("categories", "Categories", "age_categories.view", "management", 50),
    Tab("users", "Users", "users.view", "admin", 100),
    Tab("roles", "Roles", "roles.view", "admin", 110),
    Tab("permissions", "Permissions", "permissions.view", "admin", 120),
)

TABS_BY_PERMISSION: dict[str, Tab] = {tab.permission: tab for tab in TAB_CATALOG}

ALIASES: dict[str, str] = {
    "approval_requests.view": "access_requests.view",
    "approval_requests.approve": "access_requests.view",
    "requests.view.own": "access_requests.view",
    "trials.view": "events.view",
    "trials.manage": "events.view",
    "trials.create": "events.view",
    "trials.edit": "events.view",
    "trials.delete": "events.view",
}


def _sorted(tabs: Iterable[Tab]) -> list[Tab]:
    rank = {tab.id: i for i, tab in enumerate(TAB_CATALOG)}
    return sorted(tabs, key=lambda t: (t.order, rank[t.id]))


def project(effective_permissions: Iterable[str]) -> list[Tab]:
    """
    Tabs visible to an authenticated actor holding effective_permissions.

    The dashboard is always present. Unknown permission names are ignored.
    """
    permissions = set(effective_permissions)
    if WILDCARD in permissions:
        return _sorted(TAB_CATALOG)

    tabs: dict[str, Tab] = {DASHBOARD.id: DASHBOARD}
    for permission in permissions:
        tab = TABS_BY_PERMISSION.get(ALIASES.get(permission, permission))
        if tab is not None:
            tabs[tab.id] = tab
    return _sorted(tabs.values())


def permission_for_tab(tab_id: str) -> str | None:
    """Gating permission of a tab, if it exists."""
    for tab in TAB_CATALOG:
        if tab.id == tab_id:
            return tab.permission
    return None
