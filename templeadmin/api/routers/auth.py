"""Login, logout and profile endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, ensure_username_free, get_current_user, get_db
from templeadmin.api.middleware.audit import AuditLogger, get_client_ip
from templeadmin.api.schemas.auth import (
    GrantSchema,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    UserResponse,
)
from templeadmin.core.security import (
    TokenClaims,
    create_access_token,
    end_session,
    get_password_hash,
    start_session,
    verify_password,
)
from templeadmin.db.models import ActivitySeverity, Temple, User, UserPermission

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Login with mobile or username and get an access token."""
    if not (credentials.mobile or credentials.username) or not credentials.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or mobile and password are required.",
        )

    query = db.query(User).filter(User.status == "active")
    if credentials.mobile and credentials.username:
        query = query.filter(
            or_(User.mobile == credentials.mobile, User.username == credentials.username)
        )
    elif credentials.mobile:
        query = query.filter(User.mobile == credentials.mobile)
    else:
        query = query.filter(User.username == credentials.username)
    user = query.first()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.info("Failed login for %s", credentials.mobile or credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials.",
        )

    user.last_login = datetime.utcnow()

    token, jti, expires_at = create_access_token(
        user.id,
        user.role,
        temple_id=user.temple_id,
        mobile=user.mobile,
        username=user.username,
    )
    start_session(
        db,
        user.id,
        jti,
        expires_at,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    grants = db.query(UserPermission).filter(UserPermission.user_id == user.id).all()
    temple = db.get(Temple, user.temple_id)
    logger.info("User %s logged in", user.id)

    return LoginResponse(
        token=token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user),
        temple_name=temple.name if temple else None,
        permissions=[GrantSchema.model_validate(g) for g in grants],
    )


@router.post("/logout")
def logout(
    request: Request,
    current_user: TokenClaims = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Stamp the logout time on the caller's session."""
    ended = end_session(current_user.jti, db)
    if ended:
        AuditLogger(db, request, current_user).log(
            action="logout",
            target_table="session_logs",
        )
        db.commit()
    return {"message": "Logged out successfully"}


@router.get("/profile", response_model=UserResponse)
def get_profile(
    current_user: TokenClaims = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get current user info."""
    user = db.get(User, current_user.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/profile", response_model=UserResponse)
def update_profile(
    profile: ProfileUpdate,
    request: Request,
    current_user: TokenClaims = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's own profile. Changing the password needs the current one."""
    user = db.get(User, current_user.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = profile.model_dump(exclude_unset=True)
    if update_data.get("username"):
        ensure_username_free(db, update_data["username"], user.id)
    current_password = update_data.pop("current_password", None)
    new_password = update_data.pop("new_password", None)

    if new_password:
        if not current_password or not verify_password(current_password, user.password_hash):
            AuditLogger(db, request, current_user).log(
                action="password_change_failed",
                target_table="users",
                target_id=user.id,
                severity=ActivitySeverity.CRITICAL,
            )
            db.commit()
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        user.password_hash = get_password_hash(new_password)

    apply_changes(user, update_data)

    AuditLogger(db, request, current_user).log(
        action="profile_updated",
        target_table="users",
        target_id=user.id,
        new_values={**update_data, **({"password": "changed"} if new_password else {})},
    )
    db.commit()
    db.refresh(user)
    return user
