"""
Persistence for the grading core.

All queries run on short-lived sessions from an ``async_sessionmaker``. Writes
that must be atomic go through :meth:`GradingStore.run_transaction`, which
hands one transactional session to the callback and commits or rolls back as
a unit.
"""

import logging
import statistics
from datetime import datetime, UTC
from typing import Any, Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from .errors import AlreadyGradedError, InvalidStatusTransitionError, NotFoundError
from .models import Answer, Assignment, Grade, Question, Rubric, Submission, SubmissionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubmissionContext(NamedTuple):
    submission: Submission
    assignment: Assignment
    rubric: Optional[Rubric]


class GradingStore:
    """Queries and writes used by the orchestrator."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def run_transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``fn(session)`` in one transaction; commit on return, roll back on error."""
        async with self.session_factory() as session:
            async with session.begin():
                return await fn(session)

    # -- reads -------------------------------------------------------------

    async def get_submission_with_context(self, submission_id: str) -> SubmissionContext:
        """Load a submission joined with its assignment and rubric.

        Raises:
            NotFoundError: no submission has this id
        """
        stmt = (
            select(Submission)
            .options(
                selectinload(Submission.assignment).selectinload(Assignment.rubric),
                selectinload(Submission.grade),
            )
            .where(Submission.id == submission_id)
        )
        async with self.session_factory() as session:
            submission = (await session.execute(stmt)).scalar_one_or_none()

        if submission is None:
            raise NotFoundError("submission", submission_id)
        return SubmissionContext(submission, submission.assignment, submission.assignment.rubric)

    async def get_assignment_with_rubric(self, assignment_id: str) -> Assignment:
        stmt = select(Assignment).options(selectinload(Assignment.rubric)).where(Assignment.id == assignment_id)
        async with self.session_factory() as session:
            assignment = (await session.execute(stmt)).scalar_one_or_none()

        if assignment is None:
            raise NotFoundError("assignment", assignment_id)
        return assignment

    async def get_pending_submissions(self, assignment_id: str, include_failed: bool = False) -> List[Submission]:
        """Ungraded submissions awaiting grading, oldest first."""
        statuses = SubmissionStatus.gradable()
        if include_failed:
            statuses.append(SubmissionStatus.failed)

        stmt = (
            select(Submission)
            .where(
                Submission.assignment_id == assignment_id,
                Submission.status.in_(statuses),
                ~Submission.grade.has(),
            )
            .order_by(Submission.submitted_at.asc())
        )
        async with self.session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_questions(self, assignment_id: str) -> List[Question]:
        stmt = select(Question).where(Question.assignment_id == assignment_id).order_by(Question.question_order)
        async with self.session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_status_counts(self, assignment_id: str) -> Dict[str, int]:
        """Number of submissions per status value."""
        stmt = (
            select(Submission.status, func.count(Submission.id))
            .where(Submission.assignment_id == assignment_id)
            .group_by(Submission.status)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return {status.value: count for status, count in rows}

    async def get_assignment_stats(self, assignment_id: str) -> Dict[str, Any]:
        """Submission counts and score statistics for one assignment."""
        counts = await self.get_status_counts(assignment_id)

        stmt = (
            select(Grade.score)
            .join(Submission, Grade.submission_id == Submission.id)
            .where(Submission.assignment_id == assignment_id)
        )
        async with self.session_factory() as session:
            scores = [row[0] for row in (await session.execute(stmt)).all()]

        return {
            "total_submissions": sum(counts.values()),
            "graded": len(scores),
            "pending": counts.get(SubmissionStatus.pending.value, 0),
            "failed": counts.get(SubmissionStatus.failed.value, 0),
            "average_score": statistics.fmean(scores) if scores else None,
            "min_score": min(scores) if scores else None,
            "max_score": max(scores) if scores else None,
            "std_deviation": statistics.stdev(scores) if len(scores) > 1 else None,
        }

    # -- writes ------------------------------------------------------------

    async def update_submission_content(self, submission_id: str, content: str) -> None:
        async def write(session: AsyncSession):
            await session.execute(
                update(Submission)
                .where(Submission.id == submission_id)
                .values(content=content)
                .execution_options(synchronize_session=False)
            )

        await self.run_transaction(write)

    async def update_submission_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Move a submission to ``status`` if the state machine allows it.

        The check and the write are one conditional UPDATE, so concurrent
        writers cannot both pass the check. Without ``session`` the update
        commits on its own.

        Raises:
            NotFoundError: no submission has this id
            InvalidStatusTransitionError: the current status cannot move to ``status``
        """
        if session is None:
            return await self.run_transaction(
                lambda s: self.update_submission_status(submission_id, status, session=s)
            )

        stmt = (
            update(Submission)
            .where(
                Submission.id == submission_id,
                Submission.status.in_(SubmissionStatus.sources_for(status)),
            )
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount:
            return

        current = (
            await session.execute(select(Submission.status).where(Submission.id == submission_id))
        ).scalar_one_or_none()
        if current is None:
            raise NotFoundError("submission", submission_id)
        raise InvalidStatusTransitionError(submission_id, current.value, status.value)

    async def mark_submissions(self, submission_ids: Iterable[str], status: SubmissionStatus) -> List[str]:
        """Move every listed submission that is allowed to ``status``; returns the ids that moved.

        Submissions already at ``status`` are not claimed again.
        """
        ids = list(submission_ids)
        if not ids:
            return []

        async def write(session: AsyncSession) -> List[str]:
            result = await session.execute(
                update(Submission)
                .where(
                    Submission.id.in_(ids),
                    Submission.status.in_(SubmissionStatus.sources_for(status)),
                    Submission.status != status,
                )
                .values(status=status)
                .returning(Submission.id)
                .execution_options(synchronize_session=False)
            )
            return list(result.scalars().all())

        return await self.run_transaction(write)

    async def insert_grade(self, session: AsyncSession, **fields) -> Grade:
        """Add a Grade inside ``session``'s transaction.

        Raises:
            AlreadyGradedError: a grade for this submission already exists
        """
        grade = Grade(**fields)
        session.add(grade)
        try:
            await session.flush()
        except IntegrityError as e:
            raise AlreadyGradedError(fields.get("submission_id")) from e
        return grade

    async def upsert_answer(
        self,
        session: AsyncSession,
        submission_id: str,
        question_id: str,
        **fields,
    ) -> Answer:
        """Insert or update the one Answer for (submission, question)."""
        stmt = select(Answer).where(Answer.submission_id == submission_id, Answer.question_id == question_id)
        answer = (await session.execute(stmt)).scalar_one_or_none()
        if answer is None:
            answer = Answer(submission_id=submission_id, question_id=question_id)
            session.add(answer)

        for key, value in fields.items():
            setattr(answer, key, value)
        answer.graded_at = datetime.now(UTC)
        await session.flush()
        return answer

