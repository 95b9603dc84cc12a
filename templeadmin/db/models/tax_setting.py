from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Numeric, UniqueConstraint

from templeadmin.db.base import Base


class TaxSetting(Base):
    """The tax a temple levies for one year."""
    __tablename__ = "tax_settings"
    __table_args__ = (
        UniqueConstraint("temple_id", "year", name="uq_tax_setting_year"),
    )

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True)
    # Charge families registering late for the years they missed
    include_previous_years = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
