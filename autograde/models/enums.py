"""Shared enums for models and grading."""
import enum


class UserRole(enum.Enum):
    admin = "admin"
    instructor = "instructor"
    student = "student"
    ta = "ta"


class AssignmentType(enum.Enum):
    standard = "standard"
    quiz = "quiz"


class AssignmentStatus(enum.Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class QuestionType(str, enum.Enum):
    multiple_choice = "multiple_choice"
    true_false = "true_false"
    short_answer = "short_answer"
    essay = "essay"


class SubmissionStatus(enum.Enum):
    """Submission lifecycle.

    Transitions only move forward, except ``failed -> grading`` for a
    re-attempt. Writing the current status again is always allowed.
    """
    draft = "draft"
    pending = "pending"
    submitted = "submitted"
    grading = "grading"
    graded = "graded"
    failed = "failed"

    def can_transition_to(self, target: "SubmissionStatus") -> bool:
        return target == self or target in _TRANSITIONS[self]

    @classmethod
    def sources_for(cls, target: "SubmissionStatus") -> list:
        """Statuses from which ``target`` may be written."""
        return [status for status in cls if status.can_transition_to(target)]

    @classmethod
    def gradable(cls) -> list:
        """Statuses picked up by batch grading."""
        return [cls.pending, cls.submitted]


_TRANSITIONS = {
    SubmissionStatus.draft: {SubmissionStatus.pending, SubmissionStatus.submitted},
    SubmissionStatus.pending: {SubmissionStatus.submitted, SubmissionStatus.grading, SubmissionStatus.failed},
    SubmissionStatus.submitted: {SubmissionStatus.grading, SubmissionStatus.failed},
    SubmissionStatus.grading: {SubmissionStatus.graded, SubmissionStatus.failed},
    SubmissionStatus.failed: {SubmissionStatus.grading},
    SubmissionStatus.graded: set(),
}
