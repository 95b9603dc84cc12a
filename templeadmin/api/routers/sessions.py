"""Login session log endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_db, require_permission, require_temple
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import SessionLog, User

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SessionLogResponse(BaseModel):
    id: int
    user_id: int
    username: Optional[str] = None
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime
    expires_at: datetime
    logged_out_at: Optional[datetime]
    duration_seconds: Optional[int]


@router.get("", response_model=PaginatedResponse[SessionLogResponse])
def list_sessions(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("session_logs")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    user_id: Optional[int] = None,
    active: Optional[bool] = None,
):
    """Logins of users in the caller's temple, newest first."""
    query = db.query(SessionLog, User.username).join(User, SessionLog.user_id == User.id).filter(
        User.temple_id == temple_id
    )
    if user_id:
        query = query.filter(SessionLog.user_id == user_id)
    if active is True:
        query = query.filter(
            SessionLog.logged_out_at.is_(None), SessionLog.expires_at > datetime.utcnow()
        )
    elif active is False:
        query = query.filter(SessionLog.logged_out_at.isnot(None))

    rows, total = fetch_page(
        query.order_by(SessionLog.created_at.desc(), SessionLog.id.desc()), page, page_size
    )

    items = [
        SessionLogResponse(
            id=session.id,
            user_id=session.user_id,
            username=username,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            created_at=session.created_at,
            expires_at=session.expires_at,
            logged_out_at=session.logged_out_at,
            duration_seconds=session.duration_seconds,
        )
        for session, username in rows
    ]
    return PaginatedResponse[SessionLogResponse].create(
        items=items, total=total, page=page, page_size=page_size
    )
