"""Permission catalog endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_current_user, get_db, load_grants, require_role
from templeadmin.core.rbac.checker import PermissionChecker
from templeadmin.core.rbac.permissions import PERMISSION_CATALOG, Role
from templeadmin.core.security import TokenClaims

router = APIRouter(prefix="/permissions", tags=["permissions"])


class PermissionResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    href: str
    roles: List[str]


class NavigationItem(PermissionResponse):
    access_level: str


@router.get("")
def list_permissions(
    current_user: TokenClaims = Depends(require_role(Role.ADMIN, Role.SUPERADMIN)),
):
    """The full permission catalog, in display order."""
    return {
        "success": True,
        "permissions": [PermissionResponse(**d.to_dict()) for d in PERMISSION_CATALOG],
    }


@router.get("/navigation", response_model=List[NavigationItem])
def navigation(
    current_user: TokenClaims = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Navigation entries the caller may open.

    An entry is shown when the caller's role is allowed by default and the
    caller holds at least view access to it. Superadmins see everything.
    """
    grants = [] if current_user.role == Role.SUPERADMIN.value else load_grants(db, current_user.id)
    checker = PermissionChecker(current_user.role, grants)

    items = []
    for definition in PERMISSION_CATALOG.for_role(current_user.role):
        if not checker.has_permission(definition.id):
            continue
        grant = checker.grant_for(definition.id)
        level = "full" if checker.is_superadmin else grant.access_level
        items.append(NavigationItem(**definition.to_dict(), access_level=level))
    return items
