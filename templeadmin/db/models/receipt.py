from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Numeric, Text

from templeadmin.db.base import Base


class Receipt(Base):
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)
    register_no = Column(String(50), nullable=False)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(50), nullable=False)
    from_person = Column(String(255))
    to_person = Column(String(255))
    amount = Column(Numeric(12, 2), nullable=False)
    remarks = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
