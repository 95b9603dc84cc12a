"""Activity log query endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_db, require_permission, require_temple
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivityLog

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


class ActivityLogResponse(BaseModel):
    id: int
    temple_id: Optional[int]
    actor_user_id: Optional[int]
    action: str
    target_table: Optional[str]
    target_id: Optional[int]
    severity: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    details: Optional[dict]
    old_values: Optional[dict]
    new_values: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=PaginatedResponse[ActivityLogResponse])
def list_activity_logs(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("activity_logs")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    actor_user_id: Optional[int] = None,
    action: Optional[str] = None,
    target_table: Optional[str] = None,
    severity: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    """List activity in the caller's temple, newest first."""
    query = db.query(ActivityLog).filter(ActivityLog.temple_id == temple_id)

    if actor_user_id:
        query = query.filter(ActivityLog.actor_user_id == actor_user_id)
    if action:
        query = query.filter(ActivityLog.action == action)
    if target_table:
        query = query.filter(ActivityLog.target_table == target_table)
    if severity:
        query = query.filter(ActivityLog.severity == severity)
    if start_date:
        query = query.filter(ActivityLog.created_at >= start_date)
    if end_date:
        query = query.filter(ActivityLog.created_at <= end_date)

    logs, total = fetch_page(
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()), page, page_size
    )

    return PaginatedResponse[ActivityLogResponse].create(
        items=[ActivityLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size,
    )
