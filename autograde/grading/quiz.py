"""
Quiz answer grading.

Deterministic checks first, AI fallback only where a literal comparison
cannot decide. AI failures are converted into a zero-point result flagged for
instructor review instead of propagating.
"""

import logging
from typing import Optional, assert_never

from .ai_client import AIGradingClient, NO_ANSWER_FEEDBACK
from .schemas import (
    AnswerSubmission,
    EssayQuestion,
    MultipleChoiceQuestion,
    Question,
    QuestionOption,
    QuizAnswerResult,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)

logger = logging.getLogger(__name__)

CORRECT_FEEDBACK = "Correct!"
NO_MATCH_FEEDBACK = "Answer does not match expected response."
MANUAL_REVIEW_FEEDBACK = "Unable to grade automatically. Instructor will review."


def _correct_option(options) -> Optional[QuestionOption]:
    return next((o for o in options if o.is_correct), None)


def _first_selection(answer: AnswerSubmission) -> Optional[str]:
    if answer.answer_text:
        return answer.answer_text
    return answer.selected_options[0] if answer.selected_options else None


class QuizAnswerGrader:
    """Grades one quiz answer against its question definition."""

    def __init__(self, ai_client: AIGradingClient):
        self.ai_client = ai_client

    async def grade_answer(self, question: Question, answer: AnswerSubmission) -> QuizAnswerResult:
        match question:
            case MultipleChoiceQuestion():
                return self._grade_multiple_choice(question, answer)
            case TrueFalseQuestion():
                return self._grade_true_false(question, answer)
            case ShortAnswerQuestion():
                return await self._grade_short_answer(question, answer)
            case EssayQuestion():
                return await self._grade_essay(question, answer)
            case _:
                assert_never(question)

    def _grade_multiple_choice(self, question: MultipleChoiceQuestion, answer: AnswerSubmission) -> QuizAnswerResult:
        correct = _correct_option(question.options)
        is_correct = correct is not None and _first_selection(answer) == correct.id
        if is_correct:
            return QuizAnswerResult(is_correct=True, points_earned=question.points, feedback=CORRECT_FEEDBACK)
        return QuizAnswerResult(
            is_correct=False,
            points_earned=0,
            feedback=f"Incorrect. The correct answer was: {correct.text if correct and correct.text else 'N/A'}",
        )

    def _grade_true_false(self, question: TrueFalseQuestion, answer: AnswerSubmission) -> QuizAnswerResult:
        correct = _correct_option(question.options)
        selected = (_first_selection(answer) or "").strip().lower()
        is_correct = correct is not None and selected == correct.id.lower()
        if is_correct:
            return QuizAnswerResult(is_correct=True, points_earned=question.points, feedback=CORRECT_FEEDBACK)
        expected = (correct.text or correct.id) if correct else "N/A"
        return QuizAnswerResult(is_correct=False, points_earned=0, feedback=f"Incorrect. The answer was: {expected}")

    async def _grade_short_answer(self, question: ShortAnswerQuestion, answer: AnswerSubmission) -> QuizAnswerResult:
        student_answer = (answer.answer_text or "").strip().lower()

        if any(accepted.strip().lower() == student_answer for accepted in question.correct_answers):
            return QuizAnswerResult(is_correct=True, points_earned=question.points, feedback=CORRECT_FEEDBACK)

        if not question.reference_answer:
            return QuizAnswerResult(is_correct=False, points_earned=0, feedback=NO_MATCH_FEEDBACK)

        try:
            result = await self.ai_client.grade_short_answer(
                answer.answer_text or "",
                question.reference_answer,
                question.question_text,
                question.points,
            )
        except Exception as e:
            logger.error(f"AI grading failed for short answer {question.id}: {e}", exc_info=True)
            return QuizAnswerResult(is_correct=False, points_earned=0, feedback=MANUAL_REVIEW_FEEDBACK)

        return QuizAnswerResult(is_correct=result.is_correct, points_earned=result.score, feedback=result.feedback)

    async def _grade_essay(self, question: EssayQuestion, answer: AnswerSubmission) -> QuizAnswerResult:
        if not answer.answer_text or not answer.answer_text.strip():
            return QuizAnswerResult(is_correct=False, points_earned=0, feedback=NO_ANSWER_FEEDBACK)

        try:
            result = await self.ai_client.grade_essay(
                answer.answer_text,
                question.question_text,
                question.reference_answer or "",
                question.points,
            )
        except Exception as e:
            logger.error(f"AI grading failed for essay {question.id}: {e}", exc_info=True)
            return QuizAnswerResult(is_correct=False, points_earned=0, feedback=MANUAL_REVIEW_FEEDBACK)

        return QuizAnswerResult(is_correct=result.is_correct, points_earned=result.score, feedback=result.feedback)
