"""Master data: the groups, clans, occupations, villages and educations a temple offers."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from templeadmin.api.deps import apply_changes, get_db, require_permission, require_temple
from templeadmin.api.middleware.audit import AuditLogger
from templeadmin.core.rbac.permissions import AccessLevel
from templeadmin.core.security import TokenClaims
from templeadmin.db.models import (
    ActivitySeverity,
    MasterClan,
    MasterEducation,
    MasterGroup,
    MasterOccupation,
    MasterVillage,
    Member,
)

router = APIRouter(prefix="/master-data", tags=["master-data"])


class MasterKind(str, Enum):
    GROUPS = "groups"
    CLANS = "clans"
    OCCUPATIONS = "occupations"
    VILLAGES = "villages"
    EDUCATIONS = "educations"


# kind -> (table, member column holding the chosen name)
MASTER_TABLES = {
    MasterKind.GROUPS: (MasterGroup, Member.group),
    MasterKind.CLANS: (MasterClan, Member.clan),
    MasterKind.OCCUPATIONS: (MasterOccupation, Member.occupation),
    MasterKind.VILLAGES: (MasterVillage, Member.village),
    MasterKind.EDUCATIONS: (MasterEducation, Member.education),
}


class MasterEntryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)


class MasterEntryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)


class MasterEntryResponse(MasterEntryCreate):
    id: int
    temple_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def _get_entry(db: Session, kind: MasterKind, entry_id: int, temple_id: int):
    model, _ = MASTER_TABLES[kind]
    entry = db.query(model).filter(model.id == entry_id, model.temple_id == temple_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


def _ensure_name_free(db: Session, kind: MasterKind, temple_id: int, name: str, entry_id: int = 0):
    model, _ = MASTER_TABLES[kind]
    clash = db.query(model.id).filter(
        model.temple_id == temple_id,
        func.lower(model.name) == name.lower(),
        model.id != entry_id,
    ).first()
    if clash:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{name} already exists in {kind.value}",
        )


@router.get("/{kind}", response_model=List[MasterEntryResponse])
def list_entries(
    kind: MasterKind,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("master_data")),
    temple_id: int = Depends(require_temple),
):
    model, _ = MASTER_TABLES[kind]
    return db.query(model).filter(model.temple_id == temple_id).order_by(model.name).all()


@router.post("/{kind}", response_model=MasterEntryResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    kind: MasterKind,
    data: MasterEntryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("master_data", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    model, _ = MASTER_TABLES[kind]
    name = data.name.strip()
    _ensure_name_free(db, kind, temple_id, name)

    entry = model(temple_id=temple_id, name=name, description=data.description)
    db.add(entry)
    db.flush()

    AuditLogger(db, request, current_user).log(
        action="master_entry_created",
        target_table=model.__tablename__,
        target_id=entry.id,
        new_values={"name": name},
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.put("/{kind}/{entry_id}", response_model=MasterEntryResponse)
def update_entry(
    kind: MasterKind,
    entry_id: int,
    data: MasterEntryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("master_data", AccessLevel.EDIT)),
    temple_id: int = Depends(require_temple),
):
    """Rename or describe an entry. Members keep the name they were registered with."""
    entry = _get_entry(db, kind, entry_id, temple_id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name"):
        update_data["name"] = update_data["name"].strip()
        _ensure_name_free(db, kind, temple_id, update_data["name"], entry.id)
    old_values = {field: getattr(entry, field) for field in update_data}
    apply_changes(entry, update_data)

    AuditLogger(db, request, current_user).log(
        action="master_entry_updated",
        target_table=entry.__tablename__,
        target_id=entry.id,
        old_values=old_values,
        new_values=update_data,
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{kind}/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    kind: MasterKind,
    entry_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission("master_data", AccessLevel.FULL)),
    temple_id: int = Depends(require_temple),
):
    """Delete an entry no registered member refers to."""
    entry = _get_entry(db, kind, entry_id, temple_id)
    _, member_column = MASTER_TABLES[kind]

    in_use = db.query(Member.id).filter(
        Member.temple_id == temple_id, member_column == entry.name
    ).first()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete {entry.name}: it is used by registered members",
        )

    AuditLogger(db, request, current_user).log(
        action="master_entry_deleted",
        target_table=entry.__tablename__,
        target_id=entry.id,
        old_values={"name": entry.name},
        severity=ActivitySeverity.WARNING,
    )
    db.delete(entry)
    db.commit()
