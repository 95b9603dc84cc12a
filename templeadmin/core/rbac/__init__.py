"""RBAC (Role-Based Access Control) module for the temple administration API.

This module defines the permission catalog, access levels, roles and the
authorization decision function.
"""

from .permissions import (
    AccessLevel,
    PermissionCatalog,
    PermissionDefinition,
    PermissionGrant,
    Role,
    PERMISSION_CATALOG,
)
from .checker import PermissionChecker, has_permission

__all__ = [
    "AccessLevel",
    "PermissionCatalog",
    "PermissionDefinition",
    "PermissionGrant",
    "Role",
    "PERMISSION_CATALOG",
    "PermissionChecker",
    "has_permission",
]
