from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Numeric, Text

from templeadmin.db.base import Base


class LedgerEntry(Base):
    """A single credit or debit in the temple books."""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    under = Column(String(100), nullable=True, index=True)  # category
    type = Column(String(10), nullable=False)  # credit, debit
    amount = Column(Numeric(12, 2), nullable=False)

    address = Column(String(500))
    city = Column(String(100))
    phone = Column(String(20))
    mobile = Column(String(20))
    email = Column(String(255))
    note = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.type} {self.amount} {self.name}>"
