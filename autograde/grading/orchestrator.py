"""
Grading orchestration.

Drives a submission through ``submitted -> grading -> graded | failed``:

1. load the submission with its assignment and rubric;
2. resolve its text, extracting from the attached PDF when needed and
   storing the result on the submission;
3. refuse to grade twice;
4. persist the ``grading`` status before calling the model;
5. insert the Grade and mark the submission ``graded`` in one transaction.

Any failure in steps 4-5 marks the submission ``failed`` (best effort) and
re-raises. Batch grading runs the same steps for every pending submission of
an assignment and reports counts instead of raising per item.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from processor.adapters import ContentProcessingError

from ..audit import AuditEvent, AuditLogger
from ..errors import AlreadyGradedError, ContentExtractionError, InvalidStatusTransitionError
from ..models import Assignment, Rubric, Submission, SubmissionStatus
from ..store import GradingStore
from .ai_client import AIGradingClient
from .quiz import QuizAnswerGrader
from .schemas import (
    AnswerSubmission,
    AssignmentContext,
    AssignmentStats,
    BatchStatus,
    BatchSubmission,
    BatchSummary,
    GradeOutcome,
    GradeRecord,
    GradingResult,
    Question,
    QuizAnswerOutcome,
    QuizAnswerResult,
    QuizGradingOutcome,
)

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = (
    "Unable to extract text from the submitted PDF. The PDF may be image-based or corrupted."
)
PLACEHOLDER_MESSAGE = (
    "Unable to grade: PDF/document text was not extracted. Please ask the student to resubmit "
    "with a text-readable PDF or type their answer directly."
)


def build_context(assignment: Assignment, rubric: Optional[Rubric]) -> AssignmentContext:
    """Assemble the grading context; recomputed on every call so edits apply at once."""
    return AssignmentContext(
        assignment_id=assignment.id,
        description=assignment.description or "",
        reference_answer=assignment.resolved_reference_answer,
        total_points=assignment.total_points or 100,
        rubric_criteria=(rubric.criteria if rubric and rubric.criteria else {}),
    )


class GradingOrchestrator:
    """Grades submissions and quiz answers and persists the outcome."""

    def __init__(
        self,
        store: GradingStore,
        ai_client: AIGradingClient,
        extractor,
        audit: Optional[AuditLogger] = None,
        quiz_grader: Optional[QuizAnswerGrader] = None,
    ):
        self.store = store
        self.ai_client = ai_client
        self.extractor = extractor
        self.audit = audit
        self.quiz_grader = quiz_grader or QuizAnswerGrader(ai_client)

    # -- single submission ---------------------------------------------------

    async def grade_submission_by_id(self, submission_id: str) -> GradeOutcome:
        """Grade one submission with the AI client and persist the Grade.

        Raises:
            NotFoundError: unknown submission
            ContentExtractionError: the attached document has no usable text
            AlreadyGradedError: the submission already has a grade
            GradingError: the AI call failed (the submission is left ``failed``)
        """
        submission, assignment, rubric = await self.store.get_submission_with_context(submission_id)

        content = await self._resolve_content(submission)

        if submission.grade is not None:
            raise AlreadyGradedError(submission_id)

        await self._start_grading(submission_id)

        context = build_context(assignment, rubric)
        try:
            result = await self.ai_client.grade_submission(
                content,
                context.rubric_criteria,
                context.description,
                context.reference_answer,
                context.total_points,
            )
            grade = await self.store.run_transaction(
                lambda session: self._persist_grade(session, submission_id, result)
            )
        except AlreadyGradedError:
            # Lost a race against a concurrent grader; the winner's status stands
            logger.info(f"Submission {submission_id} was graded concurrently")
            raise
        except Exception as e:
            logger.error(f"Grading failed for submission {submission_id}: {e}", exc_info=True)
            await self._mark_failed(submission_id)
            self._record("grade.failed", submission_id, {"error": str(e), "error_type": type(e).__name__})
            raise

        logger.info(f"Graded submission {submission_id}: {result.score}/{context.total_points}")
        self._record("grade.create", submission_id, {"score": result.score, "percentage": result.percentage})
        return GradeOutcome(grade=GradeRecord.model_validate(grade), details=result)

    # -- batch -----------------------------------------------------------------

    async def batch_grade_assignment(self, assignment_id: str, include_failed: bool = False) -> BatchSummary:
        """Grade every pending submission of an assignment.

        Individual failures are counted, never raised; only a failure to load
        the assignment or its submissions aborts the batch.
        """
        assignment = await self.store.get_assignment_with_rubric(assignment_id)
        submissions = await self.store.get_pending_submissions(assignment_id, include_failed=include_failed)

        if not submissions:
            logger.info(f"No pending submissions to grade for assignment {assignment_id}")
            return BatchSummary()

        context = build_context(assignment, assignment.rubric)
        failed = 0

        ready: List[BatchSubmission] = []
        for submission in submissions:
            try:
                content = await self._resolve_content(submission)
            except Exception as e:
                logger.warning(f"Skipping submission {submission.id} in batch: {e}")
                if not isinstance(e, ContentExtractionError):
                    await self._mark_failed(submission.id)
                failed += 1
                continue
            ready.append(BatchSubmission(id=submission.id, content=content))

        moved = set(await self.store.mark_submissions([s.id for s in ready], SubmissionStatus.grading))
        skipped = len(ready) - len(moved)
        if skipped:
            # Claimed by another grader since they were selected
            logger.info(f"Skipping {skipped} submission(s) of assignment {assignment_id} already being graded")
            ready = [s for s in ready if s.id in moved]

        results = await self.ai_client.batch_grade(
            ready,
            context.rubric_criteria,
            context.description,
            context.reference_answer,
            context.total_points,
        )

        graded = 0
        for item in results:
            if not item.ok:
                failed += 1
                await self._mark_failed(item.submission_id)
                continue
            try:
                await self.store.run_transaction(
                    lambda session: self._persist_grade(session, item.submission_id, item.result)
                )
                graded += 1
            except Exception as e:
                failed += 1
                logger.error(f"Failed to store grade for submission {item.submission_id}: {e}")
                await self._mark_failed(item.submission_id)

        summary = BatchSummary(total=len(submissions), graded=graded, failed=failed, skipped=skipped)
        logger.info(
            f"Batch grading for assignment {assignment_id} finished: "
            f"{summary.graded}/{summary.total} graded, {summary.failed} failed"
        )
        self._record("grade.batch", assignment_id, summary.model_dump(), resource_type="assignment")
        return summary

    # -- quizzes ---------------------------------------------------------------

    async def grade_answer(self, question: Question, answer: AnswerSubmission) -> QuizAnswerResult:
        return await self.quiz_grader.grade_answer(question, answer)

    async def grade_quiz_submission(
        self,
        submission_id: str,
        answers: Iterable[AnswerSubmission],
    ) -> QuizGradingOutcome:
        """Grade every answer of a quiz submission and record the Grade.

        Answers to questions outside the submission's assignment are ignored.
        Answer rows, the Grade and the ``graded`` status are written together.
        """
        submission, assignment, _ = await self.store.get_submission_with_context(submission_id)
        if submission.grade is not None:
            raise AlreadyGradedError(submission_id)

        questions = {q.id: q for q in await self.store.get_questions(assignment.id)}

        await self._start_grading(submission_id)

        try:
            graded_answers = []
            total_points = 0.0
            earned_points = 0.0
            for answer in answers:
                question = questions.get(answer.question_id)
                if question is None:
                    continue
                result = await self.quiz_grader.grade_answer(question.to_definition(), answer)
                total_points += question.points
                earned_points += result.points_earned
                graded_answers.append((answer, result))

            feedback = f"Quiz completed. Score: {earned_points:g}/{total_points:g} points"

            async def persist(session):
                for answer, result in graded_answers:
                    await self.store.upsert_answer(
                        session,
                        submission_id,
                        answer.question_id,
                        answer_text=answer.answer_text,
                        selected_options=answer.selected_options or None,
                        is_correct=result.is_correct,
                        points_earned=result.points_earned,
                        ai_feedback=result.feedback,
                        time_spent_seconds=answer.time_spent_seconds,
                    )
                grade = await self.store.insert_grade(
                    session,
                    submission_id=submission_id,
                    score=earned_points,
                    feedback=feedback,
                    rubric_scores={},
                )
                await self.store.update_submission_status(submission_id, SubmissionStatus.graded, session=session)
                return grade

            grade = await self.store.run_transaction(persist)
        except AlreadyGradedError:
            logger.info(f"Quiz submission {submission_id} was graded concurrently")
            raise
        except Exception as e:
            logger.error(f"Quiz grading failed for submission {submission_id}: {e}", exc_info=True)
            await self._mark_failed(submission_id)
            self._record("grade.failed", submission_id, {"error": str(e), "error_type": type(e).__name__})
            raise

        percentage = round(earned_points / total_points * 100) if total_points > 0 else 0
        logger.info(f"Graded quiz submission {submission_id}: {earned_points:g}/{total_points:g}")
        self._record("grade.quiz", submission_id, {"score": earned_points, "total_points": total_points})
        return QuizGradingOutcome(
            submission_id=submission_id,
            total_points=total_points,
            earned_points=earned_points,
            percentage=percentage,
            results=[
                QuizAnswerOutcome(question_id=answer.question_id, **result.model_dump())
                for answer, result in graded_answers
            ],
            grade=GradeRecord.model_validate(grade),
        )

    # -- reporting -------------------------------------------------------------

    async def get_batch_status(self, assignment_id: str) -> BatchStatus:
        """Submission counts per status and the share already finished."""
        await self.store.get_assignment_with_rubric(assignment_id)
        counts = {status.value: 0 for status in SubmissionStatus}
        counts.update(await self.store.get_status_counts(assignment_id))

        total = sum(counts.values())
        done = counts[SubmissionStatus.graded.value] + counts[SubmissionStatus.failed.value]
        return BatchStatus(
            assignment_id=assignment_id,
            total=total,
            counts=counts,
            progress_percent=round(done / total * 100) if total else 0,
        )

    async def get_assignment_stats(self, assignment_id: str) -> AssignmentStats:
        await self.store.get_assignment_with_rubric(assignment_id)
        stats = await self.store.get_assignment_stats(assignment_id)
        return AssignmentStats(assignment_id=assignment_id, **stats)

    # -- helpers ---------------------------------------------------------------

    async def _resolve_content(self, submission: Submission) -> str:
        """Submission text, extracting it from the attached PDF if needed."""
        if submission.needs_extraction:
            try:
                document = await self.extractor.read_document(submission.pdf_url)
                text = await self.extractor.extract_text(document, filename=Path(submission.pdf_url).name)
            except (ContentProcessingError, OSError) as e:
                logger.error(f"Failed to extract text from PDF of submission {submission.id}: {e}")
                await self._mark_failed(submission.id)
                raise ContentExtractionError(EXTRACTION_FAILED_MESSAGE) from e

            await self.store.update_submission_content(submission.id, text)
            submission.content = text
            logger.info(f"Extracted text from PDF of submission {submission.id}")
            return text

        if submission.has_placeholder_content:
            await self._mark_failed(submission.id)
            raise ContentExtractionError(PLACEHOLDER_MESSAGE)

        return submission.content or ""

    async def _start_grading(self, submission_id: str) -> None:
        try:
            await self.store.update_submission_status(submission_id, SubmissionStatus.grading)
        except InvalidStatusTransitionError as e:
            if e.current == SubmissionStatus.graded.value:
                raise AlreadyGradedError(submission_id) from e
            raise

    async def _persist_grade(self, session, submission_id: str, result: GradingResult):
        grade = await self.store.insert_grade(
            session,
            submission_id=submission_id,
            score=result.score,
            feedback=result.feedback,
            rubric_scores={key: score.model_dump() for key, score in result.rubric_scores.items()},
            ai_response=result.raw_response,
            confidence=1.0,
        )
        await self.store.update_submission_status(submission_id, SubmissionStatus.graded, session=session)
        return grade

    async def _mark_failed(self, submission_id: str) -> None:
        """Best-effort ``failed`` status write; never raises."""
        try:
            await self.store.update_submission_status(submission_id, SubmissionStatus.failed)
        except Exception as e:
            logger.warning(f"Could not mark submission {submission_id} as failed: {e}")

    def _record(self, action: str, resource_id: str, new_value: dict, resource_type: str = "submission") -> None:
        if self.audit is None:
            return
        self.audit.record(
            AuditEvent(action=action, resource_type=resource_type, resource_id=resource_id, new_value=new_value)
        )
