"""Activity log model.

Rows are append-only; the API exposes no update or delete for them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Text

from templeadmin.db.base import Base


class ActivitySeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"  # deletes
    ERROR = "error"
    CRITICAL = "critical"  # failed logins, refused password changes


class ActivityLog(Base):
    """Who did what to which record, scoped to a temple."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    temple_id = Column(Integer, ForeignKey("temples.id"), nullable=True, index=True)

    # Actor information
    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    # Action details
    action = Column(String(100), nullable=False, index=True)  # e.g. member_created
    target_table = Column(String(100), nullable=True, index=True)
    target_id = Column(Integer, nullable=True)

    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    details = Column(JSON, nullable=True)

    severity = Column(String(20), nullable=False, default="info")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} on {self.target_table} by user {self.actor_user_id}>"

    @classmethod
    def create_entry(
        cls,
        temple_id: Optional[int],
        action: str,
        target_table: Optional[str] = None,
        *,
        actor_user_id: Optional[int] = None,
        target_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        severity: ActivitySeverity = ActivitySeverity.INFO,
    ) -> "ActivityLog":
        """Build an unsaved entry. ``actor_user_id`` is None for system actions such as seeding."""
        return cls(
            temple_id=temple_id,
            action=action,
            target_table=target_table,
            actor_user_id=actor_user_id,
            target_id=target_id,
            old_values=old_values,
            new_values=new_values,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            severity=severity.value if isinstance(severity, ActivitySeverity) else severity,
        )
