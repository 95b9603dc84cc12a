"""Per-temple lookup lists offered when registering members."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr

from templeadmin.db.base import Base


class MasterEntry:
    """Columns shared by every master list."""

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @declared_attr
    def temple_id(cls):
        return Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class MasterGroup(MasterEntry, Base):
    __tablename__ = "master_groups"


class MasterClan(MasterEntry, Base):
    __tablename__ = "master_clans"


class MasterOccupation(MasterEntry, Base):
    __tablename__ = "master_occupations"


class MasterVillage(MasterEntry, Base):
    __tablename__ = "master_villages"


class MasterEducation(MasterEntry, Base):
    __tablename__ = "master_educations"
