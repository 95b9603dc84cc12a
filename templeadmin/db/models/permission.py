from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from templeadmin.db.base import Base


class UserPermission(Base):
    """A per-user grant of one catalog permission at an access level."""
    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(String(100), nullable=False)
    access_level = Column(String(10), nullable=False, default="view")  # view, edit, full
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="permissions")

    def __repr__(self) -> str:
        return f"<UserPermission {self.permission_id}:{self.access_level} user={self.user_id}>"
