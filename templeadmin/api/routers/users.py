"""User management and permission grant endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import (
    apply_changes,
    ensure_username_free,
    get_db,
    load_grants,
    require_permission,
    require_role,
    require_temple,
)
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.auth import (
    GrantSchema,
    GrantsUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel, Role
from templeadmin.core.rbac.roles import can_assign_role, can_delete_user, can_modify_user
from templeadmin.core.security import TokenClaims, get_password_hash
from templeadmin.db.models import ActivitySeverity, Temple, User, UserPermission
from templeadmin.db.seed import grant_all_permissions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


class GrantAllRequest(BaseModel):
    mobile: str


def _get_temple_user(db: Session, user_id: int, temple_id: int) -> User:
    user = db.query(User).filter(User.id == user_id, User.temple_id == temple_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _replace_grants(db: Session, user: User, grants: List[GrantSchema]) -> None:
    seen = set()
    for grant in grants:
        if grant.permission_id in seen:
            raise HTTPException(
                status_code=400,
                detail=f"Duplicate permission: {grant.permission_id}",
            )
        seen.add(grant.permission_id)

    db.query(UserPermission).filter(UserPermission.user_id == user.id).delete()
    for grant in grants:
        db.add(UserPermission(
            user_id=user.id,
            permission_id=grant.permission_id,
            access_level=grant.access_level.value,
        ))


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_in: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("user_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Create a user in the caller's temple, optionally with initial grants."""
    target_temple = user_in.temple_id or temple_id
    if target_temple != temple_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create users for your own temple.",
        )

    if not can_assign_role(current_user.role, user_in.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot create superadmin users.",
        )

    existing = db.query(User).filter(
        or_(User.mobile == user_in.mobile, User.username == user_in.username)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Mobile number or username already registered.",
        )

    if not db.get(Temple, target_temple):
        raise HTTPException(status_code=400, detail="Invalid temple ID.")

    user = User(
        mobile=user_in.mobile,
        username=user_in.username,
        password_hash=get_password_hash(user_in.password),
        email=user_in.email,
        full_name=user_in.full_name,
        temple_id=target_temple,
        role=user_in.role.value,
    )
    db.add(user)
    db.flush()

    if user_in.permissions:
        _replace_grants(db, user, user_in.permissions)

    AuditLogger(db, request, current_user).log(
        action="user_created",
        target_table="users",
        target_id=user.id,
        new_values={"mobile": user.mobile, "username": user.username, "role": user.role},
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s created by %s", user.id, current_user.id)
    return user


@router.get("/users", response_model=PaginatedResponse[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("user_management")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[Role] = None,
):
    """List users of the caller's temple."""
    query = db.query(User).filter(User.temple_id == temple_id)

    if search:
        query = query.filter(
            or_(
                User.username.ilike(f"%{search}%"),
                User.mobile.ilike(f"%{search}%"),
                User.full_name.ilike(f"%{search}%"),
            )
        )
    if role:
        query = query.filter(User.role == role.value)

    users, total = fetch_page(
        query.order_by(User.created_at.desc(), User.id.desc()), page, page_size
    )

    return PaginatedResponse[UserResponse].create(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_in: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("user_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Update a user of the caller's temple."""
    user = _get_temple_user(db, user_id, temple_id)

    if not can_modify_user(current_user.role, user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot modify superadmin users.",
        )
    if user_in.role is not None and not can_assign_role(current_user.role, user_in.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot assign the superadmin role.",
        )

    update_data = user_in.model_dump(exclude_unset=True)
    if update_data.get("username"):
        ensure_username_free(db, update_data["username"], user.id)
    old_values = {field: getattr(user, field) for field in update_data if field != "password"}

    password = update_data.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    if "role" in update_data and update_data["role"] is not None:
        update_data["role"] = update_data["role"].value

    apply_changes(user, update_data)

    AuditLogger(db, request, current_user).log(
        action="user_updated",
        target_table="users",
        target_id=user.id,
        old_values=old_values,
        new_values={**update_data, **({"password": "changed"} if password else {})},
    )
    db.commit()
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_role(Role.SUPERADMIN)),
    temple_id: int = Depends(require_temple),
):
    """Delete a user. Superadmins only, and superadmins cannot be deleted."""
    user = _get_temple_user(db, user_id, temple_id)

    if not can_delete_user(current_user.role, user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin users cannot be deleted.",
        )

    AuditLogger(db, request, current_user).log(
        action="user_deleted",
        target_table="users",
        target_id=user.id,
        old_values={"mobile": user.mobile, "username": user.username, "role": user.role},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(user)
    db.commit()


@router.get("/users/{user_id}/permissions", response_model=List[GrantSchema])
def get_user_permissions(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("user_management")),
    temple_id: int = Depends(require_temple),
):
    """Grants held by a user."""
    user = _get_temple_user(db, user_id, temple_id)
    return [GrantSchema.model_validate(g._asdict()) for g in load_grants(db, user.id)]


@router.put("/users/{user_id}/permissions", response_model=List[GrantSchema])
def set_user_permissions(
    user_id: int,
    grants_in: GrantsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("user_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Replace all grants of a user."""
    user = _get_temple_user(db, user_id, temple_id)

    if not can_modify_user(current_user.role, user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot modify superadmin users.",
        )

    old_values = {g.permission_id: g.access_level for g in load_grants(db, user.id)}
    _replace_grants(db, user, grants_in.permissions)

    AuditLogger(db, request, current_user).log(
        action="permissions_updated",
        target_table="user_permissions",
        target_id=user.id,
        old_values=old_values,
        new_values={g.permission_id: g.access_level.value for g in grants_in.permissions},
    )
    db.commit()
    return [GrantSchema.model_validate(g._asdict()) for g in load_grants(db, user.id)]


@router.post("/admin/grant-all-permissions")
def grant_all(
    body: GrantAllRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_role(Role.SUPERADMIN)),
    temple_id: int = Depends(require_temple),
):
    """Give a user of the caller's temple full access to every catalog permission."""
    user = db.query(User).filter(User.mobile == body.mobile, User.temple_id == temple_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    count = grant_all_permissions(db, user)
    AuditLogger(db, request, current_user).log(
        action="permissions_granted_all",
        target_table="user_permissions",
        target_id=user.id,
        details={"count": count},
    )
    db.commit()
    return {"success": True, "user_id": user.id, "granted": count}
