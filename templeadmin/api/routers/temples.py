"""Temple directory, readable without a token."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from templeadmin.api.deps import get_db
from templeadmin.db.models import Temple

router = APIRouter(prefix="/temples", tags=["temples"])


class TempleResponse(BaseModel):
    id: int
    name: str
    address: str
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    website: Optional[str]
    status: str

    class Config:
        from_attributes = True


@router.get("", response_model=List[TempleResponse])
def list_temples(db: Session = Depends(get_db)):
    """List active temples (used by the login screen)."""
    return db.query(Temple).filter(Temple.status == "active").order_by(Temple.name).all()
