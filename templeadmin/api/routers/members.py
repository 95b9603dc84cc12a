"""Member registration endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import Member

router = APIRouter(prefix="/members", tags=["members"])


# Schemas
class MemberBase(BaseModel):
    reference_number: Optional[str] = None
    date: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    father_name: Optional[str] = None
    wife_name: Optional[str] = None
    education: Optional[str] = None
    occupation: Optional[str] = None
    address: Optional[str] = None
    village: Optional[str] = None
    postal_code: Optional[str] = None
    birth_date: Optional[str] = None
    mobile_number: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    aadhaar_number: Optional[str] = Field(None, pattern=r"^\d{12}$")
    clan: Optional[str] = None
    group: Optional[str] = None
    male_heirs: int = Field(0, ge=0)
    female_heirs: int = Field(0, ge=0)

class MemberCreate(MemberBase):
    pass

class MemberUpdate(BaseModel):
    reference_number: Optional[str] = None
    date: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    father_name: Optional[str] = None
    wife_name: Optional[str] = None
    education: Optional[str] = None
    occupation: Optional[str] = None
    address: Optional[str] = None
    village: Optional[str] = None
    postal_code: Optional[str] = None
    birth_date: Optional[str] = None
    mobile_number: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    aadhaar_number: Optional[str] = Field(None, pattern=r"^\d{12}$")
    clan: Optional[str] = None
    group: Optional[str] = None
    male_heirs: Optional[int] = Field(None, ge=0)
    female_heirs: Optional[int] = Field(None, ge=0)

class MemberResponse(MemberBase):
    id: int
    temple_id: int
    email: Optional[str] = None
    is_blocked: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BlockRequest(BaseModel):
    blocked: bool = True


def _get_member(db: Session, member_id: int, temple_id: int) -> Member:
    member = db.query(Member).filter(
        Member.id == member_id, Member.temple_id == temple_id
    ).first()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


# Endpoints
@router.get("", response_model=PaginatedResponse[MemberResponse])
def list_members(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("member_view")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    village: Optional[str] = None,
    blocked: Optional[bool] = None,
):
    """List members of the caller's temple."""
    query = db.query(Member).filter(Member.temple_id == temple_id)

    if search:
        query = query.filter(
            or_(
                Member.name.ilike(f"%{search}%"),
                Member.mobile_number.ilike(f"%{search}%"),
                Member.reference_number.ilike(f"%{search}%"),
                Member.father_name.ilike(f"%{search}%"),
            )
        )
    if village:
        query = query.filter(Member.village == village)
    if blocked is not None:
        query = query.filter(Member.is_blocked == blocked)

    members, total = fetch_page(
        query.order_by(Member.created_at.desc(), Member.id.desc()), page, page_size
    )

    return PaginatedResponse[MemberResponse].create(
        items=[MemberResponse.model_validate(m) for m in members],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{member_id}", response_model=MemberResponse)
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("member_view")),
    temple_id: int = Depends(require_temple),
):
    """Get a specific member by ID."""
    return _get_member(db, member_id, temple_id)


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
def create_member(
    member_data: MemberCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("member_entry", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    """Register a new member."""
    member = Member(
        temple_id=temple_id,
        created_by=current_user.id,
        **member_data.model_dump(),
    )
    db.add(member)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="member_created",
        target_table="members",
        target_id=member.id,
        new_values={"name": member.name, "reference_number": member.reference_number},
    )
    db.commit()
    db.refresh(member)
    return member


@router.put("/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: int,
    member_data: MemberUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("member_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Update a member."""
    member = _get_member(db, member_id, temple_id)

    update_data = member_data.model_dump(exclude_unset=True)
    old_values = {field: getattr(member, field) for field in update_data}
    apply_changes(member, update_data)

    AuditLogger(db, request, current_user).log(
        action="member_updated",
        target_table="members",
        target_id=member.id,
        old_values=old_values,
        new_values=update_data,
    )
    db.commit()
    db.refresh(member)
    return member


@router.put("/{member_id}/block", response_model=MemberResponse)
def block_member(
    member_id: int,
    body: BlockRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("member_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Block or unblock a member."""
    member = _get_member(db, member_id, temple_id)
    member.is_blocked = body.blocked

    AuditLogger(db, request, current_user).log(
        action="member_blocked" if body.blocked else "member_unblocked",
        target_table="members",
        target_id=member.id,
    )
    db.commit()
    db.refresh(member)
    return member
