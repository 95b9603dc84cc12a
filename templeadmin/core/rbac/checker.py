"""Permission checking for the temple administration API.

``has_permission`` is the single authorization decision: a pure function of
the caller's role, the caller's grants and the permission being asked for.
Route guards and UI-facing endpoints all go through it.
"""

from typing import Iterable, List, Optional, Union

from .permissions import (
    AccessLevel,
    PermissionCatalog,
    PermissionDefinition,
    PermissionGrant,
    Role,
    PERMISSION_CATALOG,
    level_rank,
)


def _role_value(role: Union[str, Role, None]) -> Optional[str]:
    if role is None:
        return None
    return str(getattr(role, "value", role))


def find_grant(
    grants: Optional[Iterable[PermissionGrant]],
    permission_id: str,
) -> Optional[PermissionGrant]:
    """Return the grant for ``permission_id``, or None. Absent grants mean none."""
    for grant in grants or ():
        if grant.permission_id == permission_id:
            return grant
    return None


def has_permission(
    role: Union[str, Role, None],
    grants: Optional[Iterable[PermissionGrant]],
    permission_id: str,
    required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
) -> bool:
    """
    Decide whether a caller may use a permission at a given level.

    Args:
        role: Caller's role
        grants: Caller's (permission id, access level) grants; None means no grants
        permission_id: Permission being checked
        required_level: Minimum access level, "view" by default

    Returns:
        True if allowed. Never raises for a missing grant.
    """
    if _role_value(role) == Role.SUPERADMIN.value:
        return True

    grant = find_grant(grants, permission_id)
    if grant is None:
        return False

    required_rank = level_rank(required_level)
    if required_rank == 0:
        # Unknown required level: fail closed
        return False

    return level_rank(grant.access_level) >= required_rank


class PermissionChecker:
    """Checks permissions for one user based on role and grants."""

    def __init__(
        self,
        role: Union[str, Role, None],
        grants: Optional[Iterable[PermissionGrant]] = None,
    ):
        self.role = _role_value(role)
        self.grants = tuple(grants or ())

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN.value

    def grant_for(self, permission_id: str) -> Optional[PermissionGrant]:
        return find_grant(self.grants, permission_id)

    def has_permission(
        self,
        permission_id: str,
        required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
    ) -> bool:
        return has_permission(self.role, self.grants, permission_id, required_level)

    def has_any_permission(
        self,
        permission_ids: List[str],
        required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
    ) -> bool:
        """Check if user has any of the given permissions."""
        return any(self.has_permission(p, required_level) for p in permission_ids)

    def has_all_permissions(
        self,
        permission_ids: List[str],
        required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
    ) -> bool:
        """Check if user has all of the given permissions."""
        return all(self.has_permission(p, required_level) for p in permission_ids)

    def accessible_permissions(
        self,
        catalog: PermissionCatalog = PERMISSION_CATALOG,
        required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
    ) -> list[PermissionDefinition]:
        """Catalog entries this user may use at ``required_level``."""
        return [
            definition for definition in catalog
            if self.has_permission(definition.id, required_level)
        ]

    def denial_reason(
        self,
        permission_id: str,
        required_level: Union[str, AccessLevel] = AccessLevel.VIEW,
    ) -> Optional[str]:
        """Why a check fails, or None when it passes."""
        if self.has_permission(permission_id, required_level):
            return None
        if self.grant_for(permission_id) is None:
            return "Permission not granted"
        return "Insufficient permission level"
