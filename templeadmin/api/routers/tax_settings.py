"""Yearly tax rates and the dues a family owes across years."""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivitySeverity, TaxRegistration, TaxSetting

router = APIRouter(prefix="/tax-settings", tags=["tax-settings"])
calculations_router = APIRouter(prefix="/tax-calculations", tags=["tax-settings"])

ZERO = Decimal("0")


class TaxSettingIn(BaseModel):
    year: int = Field(..., ge=1900, le=2200)
    tax_amount: Decimal = Field(..., gt=0)
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True
    include_previous_years: bool = False


class TaxSettingResponse(TaxSettingIn):
    id: int
    temple_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BulkToggle(BaseModel):
    include_previous_years: bool


class YearDue(BaseModel):
    year: int
    tax_amount: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    status: str


class TaxDues(BaseModel):
    cumulative_outstanding: Decimal
    current_year_tax: Decimal
    total_due: Decimal
    years: List[YearDue]
    has_existing_registration: bool


def cumulative_dues(settings: Iterable, registrations: Iterable, current_year: int) -> TaxDues:
    """What a family owes up to and including ``current_year``.

    Past years they registered for count with whatever is still unpaid. Past
    years they skipped are charged in full only when the setting asks for it
    and they have not registered for the current year yet. Later years are
    ignored.
    """
    paid = {r.year: r for r in registrations}
    registered_this_year = current_year in paid
    cumulative = ZERO
    current_tax = ZERO
    years = []

    for setting in sorted(settings, key=lambda s: s.year):
        if setting.year > current_year:
            continue
        registration = paid.get(setting.year)
        if registration is not None:
            tax = Decimal(registration.tax_amount or 0)
            amount_paid = Decimal(registration.amount_paid or 0)
            outstanding = max(ZERO, tax - amount_paid)
            label = "current_registered" if setting.year == current_year else "registered"
        elif setting.year == current_year:
            tax, amount_paid, outstanding = Decimal(setting.tax_amount), ZERO, Decimal(setting.tax_amount)
            label = "current_new"
        elif setting.include_previous_years and not registered_this_year:
            tax, amount_paid, outstanding = Decimal(setting.tax_amount), ZERO, Decimal(setting.tax_amount)
            label = "new_registration_previous_year"
        else:
            continue

        if setting.year == current_year:
            current_tax = Decimal(setting.tax_amount)
        else:
            cumulative += outstanding
        years.append(YearDue(
            year=setting.year, tax_amount=tax, amount_paid=amount_paid,
            outstanding=outstanding, status=label,
        ))

    return TaxDues(
        cumulative_outstanding=cumulative,
        current_year_tax=current_tax,
        total_due=cumulative + current_tax,
        years=years,
        has_existing_registration=bool(paid),
    )


@router.get("", response_model=List[TaxSettingResponse])
def list_tax_settings(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
):
    """All years, newest first."""
    return db.query(TaxSetting).filter(
        TaxSetting.temple_id == temple_id
    ).order_by(TaxSetting.year.desc()).all()


@router.get("/year/{year}", response_model=Optional[TaxSettingResponse])
def get_tax_setting_for_year(
    year: int = Path(..., ge=1900, le=2200),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
):
    """The active setting for ``year``, or null."""
    return db.query(TaxSetting).filter(
        TaxSetting.temple_id == temple_id,
        TaxSetting.year == year,
        TaxSetting.is_active.is_(True),
    ).first()


@router.post("", response_model=TaxSettingResponse)
def save_tax_setting(
    data: TaxSettingIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Create the setting for a year, or replace the existing one (201 vs 200)."""
    setting = db.query(TaxSetting).filter(
        TaxSetting.temple_id == temple_id, TaxSetting.year == data.year
    ).first()
    created = setting is None
    if created:
        setting = TaxSetting(temple_id=temple_id, year=data.year)
        db.add(setting)
    for field, value in data.model_dump(exclude={"year"}).items():
        setattr(setting, field, value)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="tax_setting_created" if created else "tax_setting_updated",
        target_table="tax_settings",
        target_id=setting.id,
        new_values=data.model_dump(mode="json"),
    )
    db.commit()
    db.refresh(setting)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return setting


@router.post("/bulk-toggle")
def toggle_previous_years(
    data: BulkToggle,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Switch ``include_previous_years`` for every year at once."""
    updated = db.query(TaxSetting).filter(TaxSetting.temple_id == temple_id).update(
        {TaxSetting.include_previous_years: data.include_previous_years, TaxSetting.updated_at: datetime.utcnow()},
        synchronize_session=False,
    )
    AuditLogger(db, request, current_user).log(
        action="tax_settings_toggled",
        target_table="tax_settings",
        details={"include_previous_years": data.include_previous_years, "count": updated},
    )
    db.commit()
    return {"success": True, "updated": updated}


@router.delete("/{setting_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tax_setting(
    setting_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    setting = db.query(TaxSetting).filter(
        TaxSetting.id == setting_id, TaxSetting.temple_id == temple_id
    ).first()
    if not setting:
        raise HTTPException(status_code=404, detail="Tax setting not found")

    AuditLogger(db, request, current_user).log(
        action="tax_setting_deleted",
        target_table="tax_settings",
        target_id=setting.id,
        old_values={"year": setting.year, "tax_amount": str(setting.tax_amount)},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(setting)
    db.commit()


@calculations_router.get("/cumulative/{mobile}", response_model=TaxDues)
def get_cumulative_dues(
    mobile: str,
    current_year: Optional[int] = Query(None, ge=1900, le=2200),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("tax_registrations")),
    temple_id: int = Depends(require_temple),
):
    """Dues for the family registered under ``mobile``, across the active years."""
    settings = db.query(TaxSetting).filter(
        TaxSetting.temple_id == temple_id, TaxSetting.is_active.is_(True)
    ).all()
    registrations = db.query(TaxRegistration).filter(
        TaxRegistration.temple_id == temple_id, TaxRegistration.mobile_number == mobile
    ).all()
    return cumulative_dues(settings, registrations, current_year or date.today().year)
