"""Grade model."""

from datetime import datetime, UTC

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Float, JSON
from sqlalchemy.orm import relationship
import uuid

from ..database import Base


class Grade(Base):
    """Grade for one submission.

    ``submission_id`` is unique: a second insert for the same submission fails
    at the database, which is what closes the double-grading race.
    """
    __tablename__ = "grades"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(
        String(36),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    score = Column(Float, nullable=False)
    feedback = Column(Text)
    rubric_scores = Column(JSON, default=dict)
    ai_response = Column(JSON)  # Raw AI response for debugging
    confidence = Column(Float, default=1.0)
    graded_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)
    graded_by = Column(String(36), ForeignKey("users.id"), nullable=True)  # NULL = AI, set = human override

    # Relationships
    submission = relationship("Submission", back_populates="grade")

    def __repr__(self):
        return f"<Grade(id={self.id}, submission_id={self.submission_id}, score={self.score})>"

    @property
    def is_ai_generated(self) -> bool:
        return self.graded_by is None
