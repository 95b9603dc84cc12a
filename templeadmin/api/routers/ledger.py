"""Ledger endpoints: entries, balance, profit and loss, balance sheet."""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.api.schemas.common import PaginatedResponse, fetch_page
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import ActivitySeverity, LedgerEntry

router = APIRouter(prefix="/ledger", tags=["ledger"])

EntryType = Literal["credit", "debit"]
ZERO = Decimal("0")


# Schemas
class LedgerEntryBase(BaseModel):
    date: date
    name: str = Field(..., min_length=1, max_length=255)
    under: Optional[str] = Field(None, max_length=100)
    type: EntryType
    amount: Decimal = Field(..., ge=0)
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    note: Optional[str] = None

class LedgerEntryCreate(LedgerEntryBase):
    pass

class LedgerEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    under: Optional[str] = Field(None, max_length=100)
    type: Optional[EntryType] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    note: Optional[str] = None

class LedgerEntryResponse(LedgerEntryBase):
    id: int
    temple_id: int
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PeriodTotals(BaseModel):
    period: str
    total_income: Decimal
    total_expenses: Decimal
    net_profit_loss: Decimal


class CategoryTotal(BaseModel):
    under: str
    amount: Decimal


class BalanceSheet(BaseModel):
    income: List[CategoryTotal]
    expenditure: List[CategoryTotal]
    total_income: Decimal
    total_expenditure: Decimal
    net: Decimal


UNCATEGORIZED = "Uncategorized"


def _filtered(
    db: Session,
    temple_id: int,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    entry_type: Optional[str] = None,
    under: Optional[str] = None,
    year: Optional[int] = None,
):
    query = db.query(LedgerEntry).filter(LedgerEntry.temple_id == temple_id)
    if year:
        query = query.filter(
            LedgerEntry.date >= date(year, 1, 1), LedgerEntry.date <= date(year, 12, 31)
        )
    if start_date:
        query = query.filter(LedgerEntry.date >= start_date)
    if end_date:
        query = query.filter(LedgerEntry.date <= end_date)
    if entry_type:
        query = query.filter(LedgerEntry.type == entry_type)
    if under:
        query = query.filter(LedgerEntry.under == under)
    return query


def _get_entry(db: Session, entry_id: int, temple_id: int) -> LedgerEntry:
    entry = db.query(LedgerEntry).filter(
        LedgerEntry.id == entry_id, LedgerEntry.temple_id == temple_id
    ).first()
    if not entry:
        raise HTTPException(status_code=404, detail="Ledger entry not found")
    return entry


def current_balance(db: Session, temple_id: int) -> Decimal:
    """Sum of credits minus sum of debits."""
    credits, debits = db.query(
        func.coalesce(func.sum(case((LedgerEntry.type == "credit", LedgerEntry.amount), else_=0)), 0),
        func.coalesce(func.sum(case((LedgerEntry.type == "debit", LedgerEntry.amount), else_=0)), 0),
    ).filter(LedgerEntry.temple_id == temple_id).one()
    return Decimal(str(credits)) - Decimal(str(debits))


def profit_and_loss_rows(entries, group_by: str = "month") -> List[PeriodTotals]:
    """Income, expenses and net per period, newest period first."""
    totals = {}
    for entry in entries:
        period = entry.date.isoformat() if group_by == "day" else entry.date.strftime("%Y-%m")
        income, expenses = totals.get(period, (ZERO, ZERO))
        amount = Decimal(str(entry.amount))
        if entry.type == "credit":
            income += amount
        else:
            expenses += amount
        totals[period] = (income, expenses)

    return [
        PeriodTotals(
            period=period,
            total_income=income,
            total_expenses=expenses,
            net_profit_loss=income - expenses,
        )
        for period, (income, expenses) in sorted(totals.items(), reverse=True)
    ]


def balance_sheet_for(entries) -> BalanceSheet:
    """Totals per category, split into income (credit) and expenditure (debit)."""
    income, expenditure = {}, {}
    for entry in entries:
        bucket = income if entry.type == "credit" else expenditure
        key = entry.under or UNCATEGORIZED
        bucket[key] = bucket.get(key, ZERO) + Decimal(str(entry.amount))

    total_income = sum(income.values(), ZERO)
    total_expenditure = sum(expenditure.values(), ZERO)
    return BalanceSheet(
        income=[CategoryTotal(under=k, amount=v) for k, v in sorted(income.items())],
        expenditure=[CategoryTotal(under=k, amount=v) for k, v in sorted(expenditure.items())],
        total_income=total_income,
        total_expenditure=total_expenditure,
        net=total_income - total_expenditure,
    )


# Endpoints
@router.get("/entries", response_model=PaginatedResponse[LedgerEntryResponse])
def list_entries(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management")),
    temple_id: int = Depends(require_temple),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    type: Optional[EntryType] = None,
    under: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List ledger entries, newest first."""
    query = _filtered(
        db, temple_id, start_date=start_date, end_date=end_date, entry_type=type, under=under
    )
    entries, total = fetch_page(
        query.order_by(LedgerEntry.date.desc(), LedgerEntry.id.desc()), page, page_size
    )

    return PaginatedResponse[LedgerEntryResponse].create(
        items=[LedgerEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/balance")
def get_balance(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management")),
    temple_id: int = Depends(require_temple),
):
    return {"balance": current_balance(db, temple_id)}


@router.get("/profit-and-loss", response_model=List[PeriodTotals])
def profit_and_loss(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management")),
    temple_id: int = Depends(require_temple),
    year: Optional[int] = Query(None, ge=1900, le=2200),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    type: Optional[EntryType] = None,
    under: Optional[str] = None,
    group_by: Literal["month", "day"] = "month",
):
    """Profit and loss grouped by month (YYYY-MM) or by day."""
    entries = _filtered(
        db, temple_id,
        start_date=start_date, end_date=end_date, entry_type=type, under=under, year=year,
    ).all()
    return profit_and_loss_rows(entries, group_by)


@router.get("/categories")
def list_categories(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management")),
    temple_id: int = Depends(require_temple),
):
    """Distinct categories in use."""
    rows = db.query(LedgerEntry.under).filter(
        LedgerEntry.temple_id == temple_id, LedgerEntry.under.isnot(None)
    ).distinct().order_by(LedgerEntry.under).all()
    return {"data": [row[0] for row in rows]}


@router.get("/balance-sheet", response_model=BalanceSheet)
def balance_sheet(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("balance_sheet")),
    temple_id: int = Depends(require_temple),
    year: Optional[int] = Query(None, ge=1900, le=2200),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    entries = _filtered(
        db, temple_id, start_date=start_date, end_date=end_date, year=year
    ).all()
    return balance_sheet_for(entries)


@router.get("/entries/{entry_id}", response_model=LedgerEntryResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management")),
    temple_id: int = Depends(require_temple),
):
    return _get_entry(db, entry_id, temple_id)


@router.post("/entries", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    data: LedgerEntryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Record a credit or debit."""
    entry = LedgerEntry(temple_id=temple_id, **data.model_dump())
    db.add(entry)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="ledger_entry_created",
        target_table="ledger_entries",
        target_id=entry.id,
        new_values=data.model_dump(mode="json", include={"date", "name", "under", "type", "amount"}),
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.put("/entries/{entry_id}", response_model=LedgerEntryResponse)
def update_entry(
    entry_id: int,
    data: LedgerEntryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    entry = _get_entry(db, entry_id, temple_id)

    update_data = data.model_dump(exclude_unset=True)
    apply_changes(entry, update_data)

    AuditLogger(db, request, current_user).log(
        action="ledger_entry_updated",
        target_table="ledger_entries",
        target_id=entry.id,
        new_values=data.model_dump(mode="json", exclude_unset=True),
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("ledger_management", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    entry = _get_entry(db, entry_id, temple_id)

    AuditLogger(db, request, current_user).log(
        action="ledger_entry_deleted",
        target_table="ledger_entries",
        target_id=entry.id,
        old_values={"name": entry.name, "type": entry.type, "amount": str(entry.amount)},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(entry)
    db.commit()
