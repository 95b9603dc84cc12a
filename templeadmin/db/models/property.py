from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Numeric, Text

from templeadmin.db.base import Base


class Property(Base):
    """Property registered against the temple for tax."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)
    property_no = Column(String(50), nullable=False)
    survey_no = Column(String(50), nullable=False)
    ward_no = Column(String(50), nullable=False)
    street_name = Column(String(255), nullable=False)
    area = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    pincode = Column(String(20), nullable=False)
    owner_name = Column(String(255), nullable=False)
    owner_mobile = Column(String(20), nullable=False)
    owner_aadhaar = Column(String(20))
    owner_address = Column(Text)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    tax_year = Column(Integer, nullable=False)
    tax_status = Column(String(20), default="pending")  # pending, paid, partial
    last_paid_date = Column(Date)
    pending_amount = Column(Numeric(10, 2), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
