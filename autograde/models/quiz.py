"""Quiz question and answer models."""

from datetime import datetime, UTC

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Boolean, Float, JSON, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from .enums import QuestionType


class Question(Base):
    """A single question of a quiz-type assignment.

    ``options`` holds ``[{"id": "a", "text": "...", "is_correct": bool}, ...]``
    for choice questions; ``correct_answers`` lists acceptable literal answers
    for short answers.
    """
    __tablename__ = "assignment_questions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "question_order", name="uq_question_order"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    question_order = Column(Integer, nullable=False, default=1)
    question_type = Column(SQLEnum(QuestionType), nullable=False)
    question_text = Column(Text, nullable=False)
    question_image_url = Column(Text)
    options = Column(JSON)
    correct_answers = Column(JSON)
    reference_answer = Column(Text)
    points = Column(Integer, nullable=False, default=10)
    explanation = Column(Text)
    allow_partial_credit = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    # Relationships
    assignment = relationship("Assignment", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type.value}, order={self.question_order})>"

    def to_definition(self):
        """Convert to the typed question definition the quiz grader accepts."""
        from ..grading.schemas import question_adapter

        return question_adapter.validate_python({
            "id": self.id,
            "question_type": self.question_type.value,
            "question_text": self.question_text,
            "points": self.points,
            "options": self.options or [],
            "correct_answers": self.correct_answers or [],
            "reference_answer": self.reference_answer,
            "explanation": self.explanation,
        })

    def student_options(self):
        """Options without the correctness flag, safe to show before grading."""
        return [{"id": o.get("id"), "text": o.get("text")} for o in (self.options or [])]


class Answer(Base):
    """A student's answer to one quiz question."""
    __tablename__ = "submission_answers"
    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_answer_per_question"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("assignment_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    answer_text = Column(Text)
    selected_options = Column(JSON)
    is_correct = Column(Boolean)
    points_earned = Column(Float, default=0)
    ai_feedback = Column(Text)
    time_spent_seconds = Column(Integer)
    answered_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    graded_at = Column(DateTime(timezone=True))

    # Relationships
    submission = relationship("Submission", back_populates="answers")
    question = relationship("Question")

    def __repr__(self):
        return f"<Answer(submission_id={self.submission_id}, question_id={self.question_id})>"
