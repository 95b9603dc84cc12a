"""Property registration endpoints."""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivitySeverity, Property

router = APIRouter(prefix="/properties", tags=["properties"])

TaxStatus = Literal["pending", "partial", "paid"]


# Schemas
class PropertyBase(BaseModel):
    property_no: str = Field(..., min_length=1, max_length=50)
    survey_no: str = Field(..., min_length=1, max_length=50)
    ward_no: str = Field(..., min_length=1, max_length=50)
    street_name: str = Field(..., min_length=1)
    area: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^\d{6}$")
    owner_name: str = Field(..., min_length=1)
    owner_mobile: str = Field(..., pattern=r"^\d{10}$")
    owner_aadhaar: Optional[str] = Field(None, pattern=r"^\d{12}$")
    owner_address: Optional[str] = None
    tax_amount: Decimal = Field(..., ge=0)
    tax_year: int = Field(..., ge=1900, le=2200)
    tax_status: TaxStatus = "pending"
    last_paid_date: Optional[dt.date] = None

class PropertyCreate(PropertyBase):
    pending_amount: Optional[Decimal] = Field(None, ge=0)

class PropertyUpdate(BaseModel):
    property_no: Optional[str] = Field(None, min_length=1, max_length=50)
    survey_no: Optional[str] = Field(None, min_length=1, max_length=50)
    ward_no: Optional[str] = Field(None, min_length=1, max_length=50)
    street_name: Optional[str] = Field(None, min_length=1)
    area: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    owner_name: Optional[str] = Field(None, min_length=1)
    owner_mobile: Optional[str] = Field(None, pattern=r"^\d{10}$")
    owner_aadhaar: Optional[str] = Field(None, pattern=r"^\d{12}$")
    owner_address: Optional[str] = None
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    tax_year: Optional[int] = Field(None, ge=1900, le=2200)
    tax_status: Optional[TaxStatus] = None
    last_paid_date: Optional[dt.date] = None
    pending_amount: Optional[Decimal] = Field(None, ge=0)

class PropertyResponse(PropertyBase):
    id: int
    temple_id: int
    pending_amount: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def _get_property(db: Session, property_id: int, temple_id: int) -> Property:
    prop = db.query(Property).filter(
        Property.id == property_id, Property.temple_id == temple_id
    ).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


# Endpoints
@router.get("", response_model=PaginatedResponse[PropertyResponse])
def list_properties(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("property_registrations")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    tax_status: Optional[TaxStatus] = None,
    tax_year: Optional[int] = None,
):
    """List properties. Search matches property number, survey number and owner."""
    query = db.query(Property).filter(Property.temple_id == temple_id)

    if search:
        query = query.filter(
            or_(
                Property.property_no.ilike(f"%{search}%"),
                Property.survey_no.ilike(f"%{search}%"),
                Property.owner_name.ilike(f"%{search}%"),
                Property.owner_mobile.ilike(f"%{search}%"),
            )
        )
    if tax_status:
        query = query.filter(Property.tax_status == tax_status)
    if tax_year:
        query = query.filter(Property.tax_year == tax_year)

    rows, total = fetch_page(
        query.order_by(Property.created_at.desc(), Property.id.desc()), page, page_size
    )

    return PaginatedResponse[PropertyResponse].create(
        items=[PropertyResponse.model_validate(p) for p in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{property_id}", response_model=PropertyResponse)
def get_property(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("property_registrations")),
    temple_id: int = Depends(require_temple),
):
    return _get_property(db, property_id, temple_id)


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
def create_property(
    data: PropertyCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("property_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Register a property. Pending amount defaults to the full tax unless paid."""
    values = data.model_dump()
    if values["pending_amount"] is None:
        values["pending_amount"] = Decimal("0") if data.tax_status == "paid" else data.tax_amount

    prop = Property(temple_id=temple_id, created_by=current_user.id, **values)
    db.add(prop)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="property_created",
        target_table="properties",
        target_id=prop.id,
        new_values=data.model_dump(mode="json", include={"property_no", "owner_name", "tax_amount"}),
    )
    db.commit()
    db.refresh(prop)
    return prop


@router.put("/{property_id}", response_model=PropertyResponse)
def update_property(
    property_id: int,
    data: PropertyUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("property_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    prop = _get_property(db, property_id, temple_id)

    update_data = data.model_dump(exclude_unset=True)
    apply_changes(prop, update_data)

    AuditLogger(db, request, current_user).log(
        action="property_updated",
        target_table="properties",
        target_id=prop.id,
        new_values=data.model_dump(mode="json", exclude_unset=True),
    )
    db.commit()
    db.refresh(prop)
    return prop


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(
    property_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("property_registrations", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    prop = _get_property(db, property_id, temple_id)

    AuditLogger(db, request, current_user).log(
        action="property_deleted",
        target_table="properties",
        target_id=prop.id,
        old_values={"property_no": prop.property_no, "owner_name": prop.owner_name},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(prop)
    db.commit()
