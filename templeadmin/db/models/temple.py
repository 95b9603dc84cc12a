from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric
from sqlalchemy.orm import relationship

from templeadmin.db.base import Base


class Temple(Base):
    __tablename__ = "temples"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    address = Column(String(200), nullable=False, default="")
    city = Column(String(50))
    state = Column(String(50))
    country = Column(String(50), default="India")
    postal_code = Column(String(20))
    phone = Column(String(20))
    email = Column(String(100))
    website = Column(String(100))
    description = Column(Text)
    latitude = Column(Numeric(9, 6))
    longitude = Column(Numeric(9, 6))
    status = Column(String(20), default="active")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="temple")

    def __repr__(self) -> str:
        return f"<Temple {self.name}>"
