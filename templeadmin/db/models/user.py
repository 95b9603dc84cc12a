from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from templeadmin.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    mobile = Column(String(20), unique=True, nullable=False, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255))
    full_name = Column(String(255))
    website_link = Column(String(255))
    trust_information = Column(String(500))
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")  # member, admin, superadmin
    status = Column(String(20), nullable=False, default="active")  # active, inactive, suspended
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    temple = relationship("Temple", back_populates="users")
    permissions = relationship("UserPermission", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("SessionLog", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
