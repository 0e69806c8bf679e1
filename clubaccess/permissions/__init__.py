"""
Permission catalog, resolution and tab projection.
"""

from .catalog import PERMISSIONS, PERMISSION_NAMES, ROLE_DEFAULTS
from .resolver import resolve, effective_permissions, PermissionService
from .tabs import Tab, TAB_CATALOG, project

__all__ = [
    "PERMISSIONS",
    "PERMISSION_NAMES",
    "ROLE_DEFAULTS",
    "resolve",
    "effective_permissions",
    "PermissionService",
    "Tab",
    "TAB_CATALOG",
    "project",
]
