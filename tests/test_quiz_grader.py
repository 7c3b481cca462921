"""Tests for quiz answer grading."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from autograde.errors import ProviderUnavailableError
from autograde.grading.quiz import (
    CORRECT_FEEDBACK,
    MANUAL_REVIEW_FEEDBACK,
    NO_MATCH_FEEDBACK,
    QuizAnswerGrader,
)
from autograde.grading.schemas import (
    AnswerSubmission,
    EssayQuestion,
    EssayResult,
    MultipleChoiceQuestion,
    QuestionOption,
    ShortAnswerQuestion,
    ShortAnswerResult,
    TrueFalseQuestion,
    question_adapter,
)


@pytest.fixture
def mock_ai_client():
    client = MagicMock()
    client.grade_short_answer = AsyncMock()
    client.grade_essay = AsyncMock()
    return client


@pytest.fixture
def grader(mock_ai_client):
    return QuizAnswerGrader(mock_ai_client)


@pytest.fixture
def capital_question():
    return MultipleChoiceQuestion(
        id="q-mc",
        question_text="Capital of France?",
        points=5,
        options=[
            QuestionOption(id="a", text="Lyon"),
            QuestionOption(id="b", text="Paris", is_correct=True),
        ],
    )


class TestMultipleChoice:

    @pytest.mark.asyncio
    async def test_correct_option(self, grader, capital_question):
        result = await grader.grade_answer(capital_question, AnswerSubmission(answer_text="b"))

        assert result.is_correct is True
        assert result.points_earned == 5
        assert result.feedback == CORRECT_FEEDBACK

    @pytest.mark.asyncio
    async def test_selected_options_used_when_no_text(self, grader, capital_question):
        result = await grader.grade_answer(capital_question, AnswerSubmission(selected_options=["b"]))
        assert result.is_correct is True

    @pytest.mark.asyncio
    async def test_wrong_option_names_correct_text(self, grader, capital_question):
        result = await grader.grade_answer(capital_question, AnswerSubmission(answer_text="a"))

        assert result.is_correct is False
        assert result.points_earned == 0
        assert result.feedback == "Incorrect. The correct answer was: Paris"

    @pytest.mark.asyncio
    async def test_no_correct_option_configured(self, grader):
        question = MultipleChoiceQuestion(options=[QuestionOption(id="a", text="Lyon")])

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="a"))

        assert result.is_correct is False
        assert result.feedback == "Incorrect. The correct answer was: N/A"


class TestTrueFalse:

    @pytest.fixture
    def question(self):
        return TrueFalseQuestion(
            points=2,
            options=[
                QuestionOption(id="true", text="True", is_correct=True),
                QuestionOption(id="false", text="False"),
            ],
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["true", "TRUE", " True "])
    async def test_case_insensitive(self, grader, question, answer):
        result = await grader.grade_answer(question, AnswerSubmission(answer_text=answer))

        assert result.is_correct is True
        assert result.points_earned == 2

    @pytest.mark.asyncio
    async def test_wrong_answer(self, grader, question):
        result = await grader.grade_answer(question, AnswerSubmission(answer_text="false"))

        assert result.is_correct is False
        assert result.feedback == "Incorrect. The answer was: True"


class TestShortAnswer:

    @pytest.mark.asyncio
    async def test_exact_match_skips_ai(self, grader, mock_ai_client):
        question = ShortAnswerQuestion(
            question_text="Capital of France?",
            points=10,
            correct_answers=["Paris"],
            reference_answer="Paris is the capital of France.",
        )

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="  paris "))

        assert result.is_correct is True
        assert result.points_earned == 10
        assert result.feedback == CORRECT_FEEDBACK
        mock_ai_client.grade_short_answer.assert_not_called()

    @pytest.mark.asyncio
    async def test_semantic_match_through_ai(self, grader, mock_ai_client):
        mock_ai_client.grade_short_answer.return_value = ShortAnswerResult(
            score=8.5, percentage=85, is_correct=True, feedback="Equivalent meaning."
        )
        question = ShortAnswerQuestion(
            id="q-sa",
            question_text="What do plants produce?",
            points=10,
            correct_answers=["oxygen"],
            reference_answer="Plants release oxygen during photosynthesis.",
        )

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="O2 gas"))

        assert result.is_correct is True
        assert result.points_earned == 8.5
        assert result.feedback == "Equivalent meaning."
        mock_ai_client.grade_short_answer.assert_awaited_once_with(
            "O2 gas",
            "Plants release oxygen during photosynthesis.",
            "What do plants produce?",
            10,
        )

    @pytest.mark.asyncio
    async def test_no_reference_no_match(self, grader, mock_ai_client):
        question = ShortAnswerQuestion(correct_answers=["Paris"], points=10)

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="Lyon"))

        assert result.is_correct is False
        assert result.points_earned == 0
        assert result.feedback == NO_MATCH_FEEDBACK
        mock_ai_client.grade_short_answer.assert_not_called()

    @pytest.mark.asyncio
    async def test_ai_failure_flags_manual_review(self, grader, mock_ai_client):
        mock_ai_client.grade_short_answer.side_effect = ProviderUnavailableError("down")
        question = ShortAnswerQuestion(correct_answers=["Paris"], reference_answer="Paris", points=10)

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="The French capital"))

        assert result.is_correct is False
        assert result.points_earned == 0
        assert result.feedback == MANUAL_REVIEW_FEEDBACK


class TestEssay:

    @pytest.mark.asyncio
    async def test_essay_graded_by_ai(self, grader, mock_ai_client):
        mock_ai_client.grade_essay.return_value = EssayResult(
            score=15, percentage=75, is_correct=True, feedback="Solid essay."
        )
        question = EssayQuestion(question_text="Discuss photosynthesis.", points=20)

        result = await grader.grade_answer(question, AnswerSubmission(answer_text="Plants convert light..."))

        assert result.is_correct is True
        assert result.points_earned == 15
        mock_ai_client.grade_essay.assert_awaited_once_with(
            "Plants convert light...", "Discuss photosynthesis.", "", 20
        )

    @pytest.mark.asyncio
    async def test_empty_essay(self, grader, mock_ai_client):
        result = await grader.grade_answer(EssayQuestion(points=20), AnswerSubmission(answer_text="   "))

        assert result.points_earned == 0
        assert result.feedback == "No answer provided."
        mock_ai_client.grade_essay.assert_not_called()

    @pytest.mark.asyncio
    async def test_ai_failure_flags_manual_review(self, grader, mock_ai_client):
        mock_ai_client.grade_essay.side_effect = RuntimeError("boom")

        result = await grader.grade_answer(EssayQuestion(points=20), AnswerSubmission(answer_text="An essay"))

        assert result.is_correct is False
        assert result.feedback == MANUAL_REVIEW_FEEDBACK


class TestQuestionDefinitions:

    def test_discriminated_union(self):
        question = question_adapter.validate_python({
            "question_type": "true_false",
            "options": [{"id": "true", "is_correct": True}],
        })
        assert isinstance(question, TrueFalseQuestion)

    def test_unknown_question_type_rejected(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            question_adapter.validate_python({"question_type": "matching"})

    def test_negative_points_rejected(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            EssayQuestion(points=-1)
