"""Submission model."""

from datetime import datetime, UTC

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Boolean, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from .enums import SubmissionStatus

# Content stored by the upload path when a document's text was never extracted
PLACEHOLDER_PREFIXES = ("[PDF File:", "[Document:")


class Submission(Base):
    """Submission model."""
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("student_id", "assignment_id", "version", name="uq_submission_version"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text)
    pdf_url = Column(Text)
    version = Column(Integer, nullable=False, default=1)
    status = Column(SQLEnum(SubmissionStatus), nullable=False, default=SubmissionStatus.submitted, index=True)
    is_late = Column(Boolean, default=False)
    submitted_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)

    # Relationships
    student = relationship("User", back_populates="submissions")
    assignment = relationship("Assignment", back_populates="submissions")
    grade = relationship("Grade", back_populates="submission", uselist=False)
    answers = relationship("Answer", back_populates="submission", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Submission(id={self.id}, status={self.status.value}, version={self.version})>"

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    @property
    def has_placeholder_content(self) -> bool:
        """Content is an upload placeholder rather than the student's text."""
        return bool(self.content) and self.content.startswith(PLACEHOLDER_PREFIXES)

    @property
    def needs_extraction(self) -> bool:
        """Text must be pulled from the attached PDF before grading."""
        return (not self.has_content or self.has_placeholder_content) and bool(self.pdf_url)
