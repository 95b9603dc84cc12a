"""Temple event endpoints, plus the public feed for the mobile app."""

import datetime as dt
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivitySeverity, Event

router = APIRouter(prefix="/events", tags=["events"])

MOBILE_EVENT_LIMIT = 50
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# Schemas
class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    location: str = Field(..., min_length=1, max_length=255)

class EventCreate(EventBase):
    pass

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, min_length=1, max_length=255)

class EventResponse(EventBase):
    id: int
    temple_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MobileEvent(BaseModel):
    id: int
    temple_id: int
    title: str
    date: dt.date
    time: str
    location: str
    description: Optional[str]

    class Config:
        from_attributes = True


def _get_event(db: Session, event_id: int, temple_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id, Event.temple_id == temple_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


# Endpoints
@router.get("/mobile/events", response_model=List[MobileEvent])
def mobile_events(
    db: Session = Depends(get_db),
    temple_id: Optional[int] = None,
):
    """Upcoming events from today onward, soonest first. No token required."""
    query = db.query(Event).filter(Event.date >= date.today())
    if temple_id:
        query = query.filter(Event.temple_id == temple_id)
    return query.order_by(Event.date.asc(), Event.time.asc()).limit(MOBILE_EVENT_LIMIT).all()


@router.get("", response_model=PaginatedResponse[EventResponse])
def list_events(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("events")),
    temple_id: int = Depends(require_temple),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
):
    """List events of the caller's temple, latest first."""
    query = db.query(Event).filter(Event.temple_id == temple_id)
    if date_from:
        query = query.filter(Event.date >= date_from)
    if date_to:
        query = query.filter(Event.date <= date_to)
    if search:
        query = query.filter(
            or_(Event.title.ilike(f"%{search}%"), Event.description.ilike(f"%{search}%"))
        )

    events, total = fetch_page(
        query.order_by(Event.date.desc(), Event.time.desc(), Event.id.desc()), page, page_size
    )

    return PaginatedResponse[EventResponse].create(
        items=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("events")),
    temple_id: int = Depends(require_temple),
):
    return _get_event(db, event_id, temple_id)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    data: EventCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("events", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Publish an event."""
    event = Event(temple_id=temple_id, created_by=current_user.id, **data.model_dump())
    db.add(event)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="event_created",
        target_table="events",
        target_id=event.id,
        new_values=data.model_dump(mode="json", include={"title", "date", "time", "location"}),
    )
    db.commit()
    db.refresh(event)
    return event


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    data: EventUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("events", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    event = _get_event(db, event_id, temple_id)

    update_data = data.model_dump(exclude_unset=True)
    apply_changes(event, update_data)

    AuditLogger(db, request, current_user).log(
        action="event_updated",
        target_table="events",
        target_id=event.id,
        new_values=data.model_dump(mode="json", exclude_unset=True),
    )
    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("events", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    event = _get_event(db, event_id, temple_id)

    AuditLogger(db, request, current_user).log(
        action="event_deleted",
        target_table="events",
        target_id=event.id,
        old_values={"title": event.title, "date": event.date.isoformat()},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(event)
    db.commit()
