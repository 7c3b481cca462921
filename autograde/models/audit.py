"""Audit log model."""

from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, JSON

from ..database import Base


class AuditLog(Base):
    """Append-only record of a grading action."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(36), index=True)
    old_value = Column(JSON)
    new_value = Column(JSON)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', resource_id={self.resource_id})>"
