from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric

from templeadmin.db.base import Base


class TaxRegistration(Base):
    """Yearly temple tax assessed on a family."""
    __tablename__ = "tax_registrations"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)

    reference_number = Column(String(50), index=True)
    date = Column(String(20))
    subdivision = Column(String(100))
    name = Column(String(255), nullable=False)
    alternative_name = Column(String(255))
    father_name = Column(String(255))
    address = Column(String(500))
    village = Column(String(100))
    mobile_number = Column(String(20))
    aadhaar_number = Column(String(20))
    male_heirs = Column(Integer, default=0)
    female_heirs = Column(Integer, default=0)

    year = Column(Integer, nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(10, 2), nullable=False, default=0)
    outstanding_amount = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<TaxRegistration {self.reference_number} {self.name} ({self.year})>"
