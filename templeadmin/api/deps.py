"""Request-scoped dependencies: database session, caller identity and route guards."""

import logging
from typing import Generator, Union

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from templeadmin.core.rbac.checker import PermissionChecker
from templeadmin.core.rbac.permissions import AccessLevel, PermissionGrant, Role
from templeadmin.core.security import MissingToken, TokenClaims
from templeadmin.db.models import User, UserPermission
from templeadmin.db.session import SessionLocal

logger = logging.getLogger(__name__)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_optional_user(request: Request) -> Union[TokenClaims, None]:
    """Claims attached by the auth middleware, or None for anonymous requests."""
    return getattr(request.state, "user", None)


def get_current_user(request: Request) -> TokenClaims:
    """Get the authenticated caller's claims."""
    user = get_optional_user(request)
    if user is None:
        raise HTTPException(
            status_code=MissingToken.status_code,
            detail=MissingToken.message,
        )
    return user


def load_grants(db: Session, user_id: int) -> list[PermissionGrant]:
    """Read a user's permission grants from the database."""
    rows = db.query(UserPermission).filter(UserPermission.user_id == user_id).all()
    return [PermissionGrant.from_record(row) for row in rows]


def require_temple(current_user: TokenClaims = Depends(get_current_user)) -> int:
    """Temple id of the caller. Every domain record is scoped to it."""
    if current_user.temple_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated or temple ID missing",
        )
    return current_user.temple_id


class PermissionDependency:
    """
    FastAPI dependency for permission checking.

    Superadmins pass without touching the database. Everyone else has their
    grants loaded and checked against ``permission_id`` at ``level``.

    Usage:
        @router.get("/members")
        async def list_members(
            current_user: TokenClaims = Depends(require_permission("member_view")),
        ):
            ...
    """

    def __init__(self, permission_id: str, level: Union[str, AccessLevel] = AccessLevel.VIEW):
        self.permission_id = permission_id
        self.level = AccessLevel.parse(level)

    def __call__(
        self,
        current_user: TokenClaims = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> TokenClaims:
        if current_user.role == Role.SUPERADMIN.value:
            return current_user

        checker = PermissionChecker(current_user.role, load_grants(db, current_user.id))
        reason = checker.denial_reason(self.permission_id, self.level)
        if reason is not None:
            logger.warning(
                "Denied %s:%s to user %s (%s)",
                self.permission_id, self.level.value, current_user.id, reason,
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=reason)
        return current_user


def require_permission(
    permission_id: str,
    level: Union[str, AccessLevel] = AccessLevel.VIEW,
) -> PermissionDependency:
    return PermissionDependency(permission_id, level)


def require_role(*roles: Union[str, Role]):
    """Allow only callers whose role is one of ``roles``."""
    allowed = {str(getattr(r, "value", r)) for r in roles}

    def _check(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _check


def apply_changes(row, changes: dict) -> None:
    """Copy a partial update onto ``row``.

    An explicit null for a NOT NULL column is a 400 rather than an
    IntegrityError at commit.
    """
    required = {column.key for column in row.__table__.columns if not column.nullable}
    for field, value in changes.items():
        if value is None and field in required:
            raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
    for field, value in changes.items():
        setattr(row, field, value)


def ensure_username_free(db: Session, username: str, user_id: int) -> None:
    """409 when another account already logs in as ``username``."""
    taken = db.query(User.id).filter(User.username == username, User.id != user_id).first()
    if taken:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already registered.",
        )
