"""Test cases for SQLAlchemy models."""

import pytest
from sqlalchemy.exc import IntegrityError

from autograde.grading.schemas import MultipleChoiceQuestion, ShortAnswerQuestion
from autograde.models import (
    User, UserRole,
    Assignment, AssignmentType,
    Rubric,
    Submission, SubmissionStatus,
    Grade,
    Question, QuestionType, Answer,
)


class TestUserModel:
    """Test cases for User model."""

    @pytest.mark.asyncio
    async def test_user_unique_email(self, session_factory):
        """Test that user email must be unique."""
        async with session_factory() as session:
            session.add(User(email="duplicate@test.com", name="User One", role=UserRole.student))
            await session.commit()

            session.add(User(email="duplicate@test.com", name="User Two", role=UserRole.student))
            with pytest.raises(IntegrityError):
                await session.commit()

    def test_user_role_properties(self):
        """Test user role property methods."""
        assert User(role=UserRole.instructor).is_instructor is True
        assert User(role=UserRole.admin).is_instructor is True
        assert User(role=UserRole.student).is_student is True
        assert User(role=UserRole.student).is_instructor is False


class TestRubricModel:
    """Test cases for Rubric model."""

    @pytest.mark.asyncio
    async def test_rubric_criteria_persisted(self, session_factory, sample_rubric):
        async with session_factory() as session:
            rubric = await session.get(Rubric, sample_rubric.id)

        assert set(rubric.criteria) == {"accuracy", "explanation"}
        assert rubric.criteria["accuracy"]["max_points"] == 70
        assert rubric.total_points == 100
        assert repr(rubric) == f"<Rubric(id={rubric.id}, name='{rubric.name}')>"


class TestAssignmentModel:
    """Test cases for Assignment model."""

    def test_resolved_reference_prefers_extracted_text(self):
        assignment = Assignment(reference_answer="typed", reference_text_extracted="from pdf")
        assert assignment.resolved_reference_answer == "from pdf"

        assignment.reference_text_extracted = None
        assert assignment.resolved_reference_answer == "typed"

        assignment.reference_answer = None
        assert assignment.resolved_reference_answer == ""

    def test_is_quiz(self):
        assert Assignment(assignment_type=AssignmentType.quiz).is_quiz is True
        assert Assignment(assignment_type=AssignmentType.standard).is_quiz is False


class TestSubmissionModel:
    """Test cases for Submission model."""

    @pytest.mark.asyncio
    async def test_submission_defaults(self, sample_submission):
        assert sample_submission.version == 1
        assert sample_submission.status == SubmissionStatus.submitted
        assert sample_submission.submitted_at is not None

    @pytest.mark.parametrize("content,pdf_url,needs_extraction", [
        ("typed answer", None, False),
        ("", "/api/v1/files/a.pdf", True),
        (None, "/api/v1/files/a.pdf", True),
        ("   ", "/api/v1/files/a.pdf", True),
        ("[PDF File: a.pdf]", "/api/v1/files/a.pdf", True),
        ("typed answer", "/api/v1/files/a.pdf", False),
        (None, None, False),
    ])
    def test_needs_extraction(self, content, pdf_url, needs_extraction):
        submission = Submission(content=content, pdf_url=pdf_url)
        assert submission.needs_extraction is needs_extraction

    def test_placeholder_content(self):
        assert Submission(content="[Document: essay.docx]").has_placeholder_content is True
        assert Submission(content="My essay").has_placeholder_content is False
        assert Submission(content=None).has_placeholder_content is False

    @pytest.mark.asyncio
    async def test_version_unique_per_student_and_assignment(self, session_factory, sample_submission):
        async with session_factory() as session:
            session.add(Submission(
                student_id=sample_submission.student_id,
                assignment_id=sample_submission.assignment_id,
                version=1,
            ))
            with pytest.raises(IntegrityError):
                await session.commit()


class TestSubmissionStatus:
    """Test cases for the submission status machine."""

    @pytest.mark.parametrize("current,target,allowed", [
        (SubmissionStatus.submitted, SubmissionStatus.grading, True),
        (SubmissionStatus.pending, SubmissionStatus.grading, True),
        (SubmissionStatus.grading, SubmissionStatus.graded, True),
        (SubmissionStatus.grading, SubmissionStatus.failed, True),
        (SubmissionStatus.failed, SubmissionStatus.grading, True),
        (SubmissionStatus.graded, SubmissionStatus.grading, False),
        (SubmissionStatus.graded, SubmissionStatus.failed, False),
        (SubmissionStatus.draft, SubmissionStatus.grading, False),
        (SubmissionStatus.submitted, SubmissionStatus.graded, False),
        (SubmissionStatus.graded, SubmissionStatus.graded, True),
    ])
    def test_can_transition_to(self, current, target, allowed):
        assert current.can_transition_to(target) is allowed

    def test_sources_for_grading(self):
        sources = SubmissionStatus.sources_for(SubmissionStatus.grading)
        assert set(sources) == {
            SubmissionStatus.pending,
            SubmissionStatus.submitted,
            SubmissionStatus.grading,
            SubmissionStatus.failed,
        }


class TestGradeModel:
    """Test cases for Grade model."""

    @pytest.mark.asyncio
    async def test_one_grade_per_submission(self, session_factory, sample_submission):
        async with session_factory() as session:
            session.add(Grade(submission_id=sample_submission.id, score=80))
            await session.commit()

            session.add(Grade(submission_id=sample_submission.id, score=90))
            with pytest.raises(IntegrityError):
                await session.commit()

    def test_is_ai_generated(self):
        assert Grade(score=1).is_ai_generated is True
        assert Grade(score=1, graded_by="instructor-id").is_ai_generated is False


class TestQuizModels:
    """Test cases for Question and Answer models."""

    @pytest.mark.asyncio
    async def test_question_order_unique_per_assignment(self, session_factory, sample_assignment):
        async with session_factory() as session:
            for text in ("Q1", "Q2"):
                session.add(Question(
                    assignment_id=sample_assignment.id,
                    question_order=1,
                    question_type=QuestionType.essay,
                    question_text=text,
                ))
            with pytest.raises(IntegrityError):
                await session.commit()

    @pytest.mark.asyncio
    async def test_one_answer_per_question(self, session_factory, sample_submission):
        async with session_factory() as session:
            question = Question(
                assignment_id=sample_submission.assignment_id,
                question_order=1,
                question_type=QuestionType.short_answer,
                question_text="Capital of France?",
            )
            session.add(question)
            await session.commit()

            session.add(Answer(submission_id=sample_submission.id, question_id=question.id, answer_text="Paris"))
            session.add(Answer(submission_id=sample_submission.id, question_id=question.id, answer_text="Lyon"))
            with pytest.raises(IntegrityError):
                await session.commit()

    def test_to_definition_multiple_choice(self):
        question = Question(
            id="q1",
            question_type=QuestionType.multiple_choice,
            question_text="2 + 2?",
            points=5,
            options=[{"id": "a", "text": "3"}, {"id": "b", "text": "4", "is_correct": True}],
        )
        definition = question.to_definition()

        assert isinstance(definition, MultipleChoiceQuestion)
        assert definition.points == 5
        assert definition.options[1].is_correct is True

    def test_to_definition_short_answer(self):
        question = Question(
            id="q2",
            question_type=QuestionType.short_answer,
            question_text="Capital of France?",
            points=10,
            correct_answers=["Paris"],
            reference_answer="Paris is the capital.",
        )
        definition = question.to_definition()

        assert isinstance(definition, ShortAnswerQuestion)
        assert definition.correct_answers == ["Paris"]
        assert definition.reference_answer == "Paris is the capital."

    def test_student_options_hide_correctness(self):
        question = Question(options=[{"id": "a", "text": "Yes", "is_correct": True}])
        assert question.student_options() == [{"id": "a", "text": "Yes"}]
