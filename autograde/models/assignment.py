"""Assignment model."""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from ..database import Base
from .enums import AssignmentStatus, AssignmentType


class Assignment(Base):
    """Assignment model."""
    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text)
    course_code = Column(String(20))
    instructor_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    rubric_id = Column(String(36), ForeignKey("rubrics.id"))
    assignment_type = Column(SQLEnum(AssignmentType), default=AssignmentType.standard, nullable=False)
    status = Column(SQLEnum(AssignmentStatus), default=AssignmentStatus.draft, nullable=False)
    due_date = Column(DateTime(timezone=True))
    max_resubmissions = Column(Integer, default=2)
    total_points = Column(Integer, default=100)

    # Reference material, hidden from students
    reference_answer = Column(Text)
    reference_pdf_url = Column(Text)
    reference_text_extracted = Column(Text)
    question_pdf_url = Column(Text)
    question_text_extracted = Column(Text)

    # Quiz settings
    time_limit_minutes = Column(Integer)
    shuffle_questions = Column(Boolean, default=False)
    show_correct_answers = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    rubric = relationship("Rubric", back_populates="assignments")
    instructor = relationship("User", back_populates="assignments")
    submissions = relationship("Submission", back_populates="assignment")
    questions = relationship(
        "Question",
        back_populates="assignment",
        order_by="Question.question_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}')>"

    @property
    def resolved_reference_answer(self) -> str:
        """Extracted PDF reference text, else the plain reference answer, else empty."""
        return self.reference_text_extracted or self.reference_answer or ""

    @property
    def is_quiz(self) -> bool:
        return self.assignment_type == AssignmentType.quiz
