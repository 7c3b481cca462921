"""
AI grading client.

Wraps an OpenAI-compatible chat-completions endpoint. Every call requests JSON
output (except free-text criterion feedback), runs at a low temperature, is
bounded in output length and goes through :func:`with_retry`. Provider SDK
exceptions are translated into :mod:`autograde.errors` at this boundary.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai

from ..config import AIClientConfig
from ..errors import (
    EmptyInputError,
    ProviderAuthError,
    ProviderBadRequestError,
    ProviderError,
    ProviderUnavailableError,
)
from . import prompts
from .retry import with_retry
from .schemas import (
    BatchItemResult,
    EssayResult,
    GradingResult,
    ShortAnswerResult,
    parse_essay_response,
    parse_grading_response,
    parse_short_answer_response,
)

logger = logging.getLogger(__name__)

# (temperature, max_tokens) per call kind
GRADING_PARAMS = (0.3, 2000)
SHORT_ANSWER_PARAMS = (0.1, 200)
ESSAY_PARAMS = (0.2, 1000)
CRITERION_FEEDBACK_PARAMS = (0.5, 200)

NO_ANSWER_FEEDBACK = "No answer provided."


def default_percentage(score: float, total_points: float) -> int:
    if total_points <= 0:
        return 0
    return round(score / total_points * 100)


def points_from_percentage(percentage: float, points: float) -> float:
    return round(percentage / 100 * points, 2)


class AIGradingClient:
    """Grades free text, short answers and essays with a language model."""

    def __init__(self, config: Optional[AIClientConfig] = None, client=None):
        """
        Args:
            config: model names, thresholds, retry and batch pacing settings
            client: a ready ``openai.AsyncOpenAI``-compatible client; built
                lazily from ``config`` when omitted
        """
        self.config = config or AIClientConfig()
        self._openai_client = client

    @property
    def openai_client(self):
        """Lazy-load the OpenAI client."""
        if self._openai_client is None:
            client_kwargs = {"timeout": self.config.timeout, "max_retries": 0}
            if self.config.api_base:
                client_kwargs["base_url"] = self.config.api_base
            if self.config.api_key:
                client_kwargs["api_key"] = self.config.api_key
            elif self.config.api_base:
                # Local OpenAI-compatible servers accept any key
                client_kwargs["api_key"] = "not-needed"
            self._openai_client = openai.AsyncOpenAI(**client_kwargs)
        return self._openai_client

    async def close(self):
        if self._openai_client is not None and hasattr(self._openai_client, "close"):
            await self._openai_client.close()

    async def _complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        json_mode: bool = True,
    ) -> Optional[str]:
        """One chat completion; returns the first choice's text."""
        request: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.openai_client.chat.completions.create(**request)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderAuthError(f"AI provider rejected credentials: {e}", http_status=e.status_code)
        except openai.BadRequestError as e:
            raise ProviderBadRequestError(f"AI provider rejected request: {e}", http_status=e.status_code)
        except openai.RateLimitError as e:
            raise ProviderUnavailableError(f"AI provider rate limit: {e}", http_status=e.status_code)
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise ProviderUnavailableError(f"AI provider unreachable: {e}")
        except openai.APIStatusError as e:
            raise ProviderError(f"AI provider error {e.status_code}: {e}", http_status=e.status_code)

        if not response.choices:
            return None
        return response.choices[0].message.content

    async def grade_submission(
        self,
        student_answer: str,
        rubric: Any = None,
        assignment_description: Any = None,
        reference_answer: Any = "",
        total_points: float = 100,
    ) -> GradingResult:
        """Grade one submission against a rubric.

        Raises:
            EmptyInputError: ``student_answer`` is blank
            MalformedResponseError: the model's output is not valid JSON or
                ``overall_score`` is missing, non-numeric or out of bounds
                (after retries)
            ProviderError: the provider call failed (after retries where the
                failure is transient)
        """
        if not student_answer or not student_answer.strip():
            raise EmptyInputError("Student answer cannot be empty")

        messages = prompts.grading_messages(
            student_answer, rubric, assignment_description, reference_answer, total_points
        )
        temperature, max_tokens = GRADING_PARAMS

        async def attempt() -> GradingResult:
            content = await self._complete(self.config.grading_model, messages, temperature, max_tokens)
            parsed = parse_grading_response(content, total_points)
            percentage = parsed.percentage
            if percentage is None:
                percentage = default_percentage(parsed.overall_score, total_points)
            return GradingResult(
                score=parsed.overall_score,
                percentage=percentage,
                rubric_scores=parsed.rubric_scores,
                feedback=parsed.overall_feedback,
                strengths=parsed.strengths,
                areas_for_improvement=parsed.areas_for_improvement,
                suggestions=parsed.suggestions,
                raw_response=json.loads(content),
            )

        return await with_retry(attempt, self.config.max_attempts)

    async def grade_short_answer(
        self,
        student_answer: Optional[str],
        reference_answer: str,
        question: str,
        points: float = 10,
    ) -> ShortAnswerResult:
        """Semantic match of a short answer against a reference, on the quick model."""
        if not student_answer or not student_answer.strip():
            return ShortAnswerResult(score=0, percentage=0, is_correct=False, feedback=NO_ANSWER_FEEDBACK)

        threshold = self.config.short_answer_correct_threshold
        messages = prompts.short_answer_messages(student_answer, reference_answer, question, threshold)
        temperature, max_tokens = SHORT_ANSWER_PARAMS

        async def attempt() -> ShortAnswerResult:
            content = await self._complete(self.config.quick_model, messages, temperature, max_tokens)
            parsed = parse_short_answer_response(content)
            is_correct = parsed.score >= threshold
            return ShortAnswerResult(
                score=points_from_percentage(parsed.score, points),
                percentage=parsed.score,
                is_correct=is_correct,
                feedback=parsed.feedback or ("Correct!" if is_correct else "Incorrect."),
            )

        return await with_retry(attempt, self.config.max_attempts)

    async def grade_essay(
        self,
        student_answer: Optional[str],
        question: str,
        reference_answer: Optional[str] = "",
        points: float = 10,
    ) -> EssayResult:
        """Score an essay on four weighted dimensions."""
        if not student_answer or not student_answer.strip():
            return EssayResult(
                score=0, percentage=0, is_correct=False, feedback=NO_ANSWER_FEEDBACK, criteria_scores={}
            )

        messages = prompts.essay_messages(student_answer, question, reference_answer, points)
        temperature, max_tokens = ESSAY_PARAMS

        async def attempt() -> EssayResult:
            content = await self._complete(self.config.grading_model, messages, temperature, max_tokens)
            parsed = parse_essay_response(content)

            feedback = parsed.overall_feedback
            if parsed.strengths:
                feedback += f"\n\n✓ Strengths: {'; '.join(parsed.strengths)}"
            if parsed.improvements:
                feedback += f"\n\n→ Areas for improvement: {'; '.join(parsed.improvements)}"

            return EssayResult(
                score=points_from_percentage(parsed.score_percentage, points),
                percentage=parsed.score_percentage,
                is_correct=parsed.score_percentage >= self.config.essay_correct_threshold,
                feedback=feedback.strip(),
                criteria_scores=parsed.criteria_scores,
            )

        return await with_retry(attempt, self.config.max_attempts)

    async def batch_grade(
        self,
        submissions: Sequence[Any],
        rubric: Any = None,
        assignment_description: Any = None,
        reference_answer: Any = "",
        total_points: float = 100,
    ) -> List[BatchItemResult]:
        """Grade many submissions in fixed-size concurrent groups.

        ``submissions`` are objects with ``id`` and ``content`` attributes.
        Returns one entry per input, in input order; a failing submission
        yields an entry with ``error`` set and never affects its group-mates.
        """
        group_size = self.config.batch_group_size
        results: List[BatchItemResult] = []

        async def grade_one(submission) -> BatchItemResult:
            try:
                result = await self.grade_submission(
                    submission.content, rubric, assignment_description, reference_answer, total_points
                )
                return BatchItemResult(submission_id=submission.id, result=result)
            except Exception as e:
                logger.warning(f"Batch grading failed for submission {submission.id}: {e}")
                return BatchItemResult(submission_id=submission.id, error=str(e), error_type=type(e).__name__)

        for start in range(0, len(submissions), group_size):
            group = submissions[start:start + group_size]
            results.extend(await asyncio.gather(*(grade_one(s) for s in group)))

            if start + group_size < len(submissions):
                await asyncio.sleep(self.config.batch_group_delay)

        return results

    async def generate_criterion_feedback(
        self,
        criterion: str,
        student_work: str,
        score: float,
        max_points: float,
    ) -> str:
        """Two or three sentences of feedback for one rubric criterion."""
        messages = prompts.criterion_feedback_messages(criterion, student_work, score, max_points)
        temperature, max_tokens = CRITERION_FEEDBACK_PARAMS

        async def attempt() -> str:
            content = await self._complete(
                self.config.quick_model, messages, temperature, max_tokens, json_mode=False
            )
            return (content or "").strip()

        return await with_retry(attempt, self.config.max_attempts)
