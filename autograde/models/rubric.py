"""Rubric model."""


from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Boolean, Integer, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from ..database import Base


class Rubric(Base):
    """Named set of scoring criteria.

    ``criteria`` maps a criterion key to ``{"max_points": int, "description": str}``.
    """
    __tablename__ = "rubrics"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text)
    rubric_type = Column(String(50))  # essay, coding, quiz, lab, other
    criteria = Column(JSON, nullable=False, default=dict)
    total_points = Column(Integer, nullable=False, default=100)
    is_template = Column(Boolean, default=False)
    created_by = Column(String(36), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    assignments = relationship("Assignment", back_populates="rubric")

    def __repr__(self):
        return f"<Rubric(id={self.id}, name='{self.name}')>"
