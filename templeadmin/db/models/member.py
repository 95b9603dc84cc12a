from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean

from templeadmin.db.base import Base


class Member(Base):
    """A registered temple member (family head)."""
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)

    reference_number = Column(String(50))
    date = Column(String(20))
    name = Column(String(255), nullable=False)
    father_name = Column(String(255))
    wife_name = Column(String(255))
    education = Column(String(100))
    occupation = Column(String(100))
    address = Column(String(500))
    village = Column(String(100))
    postal_code = Column(String(20))
    birth_date = Column(String(20))
    mobile_number = Column(String(20), index=True)
    email = Column(String(255))
    aadhaar_number = Column(String(20))
    clan = Column(String(100))
    group = Column("group_name", String(100))
    male_heirs = Column(Integer, default=0)
    female_heirs = Column(Integer, default=0)

    is_blocked = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Member {self.name}>"
