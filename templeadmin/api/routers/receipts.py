"""Receipt register endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import Receipt

router = APIRouter(prefix="/receipts", tags=["receipts"])


class ReceiptCreate(BaseModel):
    register_no: str = Field(..., min_length=1, max_length=50)
    date: date
    type: str = Field(..., min_length=1, max_length=50)
    from_person: Optional[str] = None
    to_person: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    remarks: Optional[str] = None

class ReceiptResponse(ReceiptCreate):
    id: int
    temple_id: int
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_receipt(
    data: ReceiptCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("receipts", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Record a receipt."""
    receipt = Receipt(temple_id=temple_id, created_by=current_user.id, **data.model_dump())
    db.add(receipt)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="receipt_created",
        target_table="receipts",
        target_id=receipt.id,
        new_values=data.model_dump(mode="json"),
    )
    db.commit()
    db.refresh(receipt)
    return receipt


@router.get("", response_model=List[ReceiptResponse])
def list_receipts(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("receipts")),
    temple_id: int = Depends(require_temple),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    type: Optional[str] = None,
):
    """Receipts in a date range, newest first."""
    query = db.query(Receipt).filter(Receipt.temple_id == temple_id)
    if date_from:
        query = query.filter(Receipt.date >= date_from)
    if date_to:
        query = query.filter(Receipt.date <= date_to)
    if type:
        query = query.filter(Receipt.type == type)
    return query.order_by(Receipt.date.desc(), Receipt.id.desc()).all()
