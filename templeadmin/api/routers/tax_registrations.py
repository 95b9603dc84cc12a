"""Tax registration endpoints, including PDF export."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivitySeverity, TaxRegistration
from templeadmin.services.pdf_export import render_tax_registration, render_tax_registrations

router = APIRouter(prefix="/tax-registrations", tags=["tax-registrations"])

EXPORT_LIMIT = 1000


# Schemas
class TaxRegistrationBase(BaseModel):
    reference_number: Optional[str] = Field(None, max_length=50)
    date: Optional[str] = None
    subdivision: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    alternative_name: Optional[str] = None
    father_name: Optional[str] = None
    address: Optional[str] = None
    village: Optional[str] = None
    mobile_number: Optional[str] = Field(None, max_length=20)
    aadhaar_number: Optional[str] = Field(None, max_length=20)
    male_heirs: int = Field(0, ge=0)
    female_heirs: int = Field(0, ge=0)
    year: int = Field(default_factory=lambda: datetime.utcnow().year, ge=1900, le=2200)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    amount_paid: Decimal = Field(Decimal("0"), ge=0)

class TaxRegistrationCreate(TaxRegistrationBase):
    outstanding_amount: Optional[Decimal] = Field(None, ge=0)

class TaxRegistrationUpdate(BaseModel):
    reference_number: Optional[str] = Field(None, max_length=50)
    date: Optional[str] = None
    subdivision: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    alternative_name: Optional[str] = None
    father_name: Optional[str] = None
    address: Optional[str] = None
    village: Optional[str] = None
    mobile_number: Optional[str] = Field(None, max_length=20)
    aadhaar_number: Optional[str] = Field(None, max_length=20)
    male_heirs: Optional[int] = Field(None, ge=0)
    female_heirs: Optional[int] = Field(None, ge=0)
    year: Optional[int] = Field(None, ge=1900, le=2200)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    outstanding_amount: Optional[Decimal] = Field(None, ge=0)

class TaxRegistrationResponse(TaxRegistrationBase):
    id: int
    temple_id: int
    outstanding_amount: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def compute_outstanding(tax_amount, amount_paid) -> Decimal:
    """Tax still owed, never negative."""
    return max(Decimal("0"), Decimal(str(tax_amount or 0)) - Decimal(str(amount_paid or 0)))


def _filtered(db: Session, temple_id: int, search: Optional[str], year: Optional[int]):
    query = db.query(TaxRegistration).filter(TaxRegistration.temple_id == temple_id)
    if search:
        query = query.filter(
            or_(
                TaxRegistration.name.ilike(f"%{search}%"),
                TaxRegistration.mobile_number.ilike(f"%{search}%"),
                TaxRegistration.aadhaar_number.ilike(f"%{search}%"),
                TaxRegistration.reference_number.ilike(f"%{search}%"),
            )
        )
    if year:
        query = query.filter(TaxRegistration.year == year)
    return query


def _get_registration(db: Session, registration_id: int, temple_id: int) -> TaxRegistration:
    registration = db.query(TaxRegistration).filter(
        TaxRegistration.id == registration_id,
        TaxRegistration.temple_id == temple_id,
    ).first()
    if not registration:
        raise HTTPException(status_code=404, detail="Tax registration not found")
    return registration


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )


# Endpoints
@router.get("", response_model=PaginatedResponse[TaxRegistrationResponse])
def list_tax_registrations(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    year: Optional[int] = None,
):
    """List tax registrations, newest first. Search matches name, mobile, aadhaar and reference."""
    query = _filtered(db, temple_id, search, year)

    rows, total = fetch_page(
        query.order_by(TaxRegistration.created_at.desc(), TaxRegistration.id.desc()), page, page_size
    )

    return PaginatedResponse[TaxRegistrationResponse].create(
        items=[TaxRegistrationResponse.model_validate(r) for r in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/export/pdf")
def export_tax_registrations_pdf(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
    search: Optional[str] = None,
    year: Optional[int] = None,
):
    """All matching registrations, one per page."""
    rows = _filtered(db, temple_id, search, year).order_by(
        TaxRegistration.created_at.desc(), TaxRegistration.id.desc()
    ).limit(EXPORT_LIMIT).all()
    if not rows:
        raise HTTPException(status_code=404, detail="No records to export.")
    return _pdf_response(render_tax_registrations(rows, temple_id), "tax-registrations.pdf")


@router.get("/{registration_id}", response_model=TaxRegistrationResponse)
def get_tax_registration(
    registration_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
):
    return _get_registration(db, registration_id, temple_id)


@router.get("/{registration_id}/pdf")
def export_tax_registration_pdf(
    registration_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
):
    """Single registration as a one-page PDF."""
    registration = _get_registration(db, registration_id, temple_id)
    return _pdf_response(
        render_tax_registration(registration, temple_id),
        f"tax-registration-{registration.id}.pdf",
    )


@router.post("", response_model=TaxRegistrationResponse, status_code=status.HTTP_201_CREATED)
def create_tax_registration(
    data: TaxRegistrationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Create a tax registration."""
    values = data.model_dump()
    if values["outstanding_amount"] is None:
        values["outstanding_amount"] = compute_outstanding(data.tax_amount, data.amount_paid)

    registration = TaxRegistration(temple_id=temple_id, **values)
    db.add(registration)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="tax_registration_created",
        target_table="tax_registrations",
        target_id=registration.id,
        new_values=data.model_dump(mode="json", include={"name", "year", "tax_amount", "amount_paid"}),
    )
    db.commit()
    db.refresh(registration)
    return registration


@router.put("/{registration_id}", response_model=TaxRegistrationResponse)
def update_tax_registration(
    registration_id: int,
    data: TaxRegistrationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Update a tax registration. Outstanding is recomputed unless given."""
    registration = _get_registration(db, registration_id, temple_id)

    update_data = data.model_dump(exclude_unset=True)
    apply_changes(registration, update_data)

    amounts_changed = "tax_amount" in update_data or "amount_paid" in update_data
    if amounts_changed and update_data.get("outstanding_amount") is None:
        registration.outstanding_amount = compute_outstanding(
            registration.tax_amount, registration.amount_paid
        )

    AuditLogger(db, request, current_user).log(
        action="tax_registration_updated",
        target_table="tax_registrations",
        target_id=registration.id,
        new_values=data.model_dump(mode="json", exclude_unset=True),
    )
    db.commit()
    db.refresh(registration)
    return registration


@router.delete("/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tax_registration(
    registration_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    """Delete a tax registration."""
    registration = _get_registration(db, registration_id, temple_id)

    AuditLogger(db, request, current_user).log(
        action="tax_registration_deleted",
        target_table="tax_registrations",
        target_id=registration.id,
        old_values={"name": registration.name, "year": registration.year},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(registration)
    db.commit()
