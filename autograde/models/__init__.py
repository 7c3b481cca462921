"""SQLAlchemy models for the grading backend."""

from .enums import UserRole, AssignmentType, AssignmentStatus, QuestionType, SubmissionStatus
from .user import User
from .rubric import Rubric
from .assignment import Assignment
from .submission import Submission
from .grade import Grade
from .quiz import Question, Answer
from .audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Rubric",
    "Assignment",
    "AssignmentType",
    "AssignmentStatus",
    "Submission",
    "SubmissionStatus",
    "Grade",
    "Question",
    "QuestionType",
    "Answer",
    "AuditLog",
]
