"""Grading router: single, batch and quiz grading endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..errors import GradingError
from ..grading.jobs import BatchJob, BatchJobRegistry
from ..grading.orchestrator import GradingOrchestrator
from ..grading.schemas import (
    AnswerSubmission,
    AssignmentStats,
    BatchStatus,
    GradeOutcome,
    Question,
    QuizAnswerResult,
    QuizGradingOutcome,
)

router = APIRouter(prefix="/api/v1", tags=["Grading"])


class BatchGradeRequest(BaseModel):
    assignment_id: str
    include_failed: bool = False


class QuizSubmissionRequest(BaseModel):
    answers: List[AnswerSubmission] = Field(default_factory=list)


class GradeAnswerRequest(BaseModel):
    question: Question
    answer: AnswerSubmission


def get_orchestrator(request: Request) -> GradingOrchestrator:
    """Dependency returning the orchestrator built at startup."""
    return request.app.state.orchestrator


def get_job_registry(request: Request) -> BatchJobRegistry:
    return request.app.state.jobs


def _http_error(e: GradingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/submissions/{submission_id}/grade", response_model=GradeOutcome)
async def grade_submission(
    submission_id: str,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator)
):
    """Grade one submission with AI and store the grade."""
    try:
        return await orchestrator.grade_submission_by_id(submission_id)
    except GradingError as e:
        raise _http_error(e)


@router.post("/batch/grade", response_model=BatchJob, status_code=status.HTTP_202_ACCEPTED)
async def start_batch_grading(
    body: BatchGradeRequest,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator),
    jobs: BatchJobRegistry = Depends(get_job_registry)
):
    """Start grading all pending submissions of an assignment in the background."""
    try:
        # Unknown assignments fail here instead of inside the job
        await orchestrator.store.get_assignment_with_rubric(body.assignment_id)
    except GradingError as e:
        raise _http_error(e)
    return jobs.submit(body.assignment_id, include_failed=body.include_failed)


@router.get("/batch/jobs/{job_id}", response_model=BatchJob)
async def get_batch_job(job_id: str, jobs: BatchJobRegistry = Depends(get_job_registry)):
    """State of a batch grading job."""
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Batch job {job_id} not found"
        )
    return job


@router.get("/batch/status/{assignment_id}", response_model=BatchStatus)
async def get_batch_status(
    assignment_id: str,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator)
):
    """Submission counts per status for an assignment."""
    try:
        return await orchestrator.get_batch_status(assignment_id)
    except GradingError as e:
        raise _http_error(e)


@router.get("/assignments/{assignment_id}/stats", response_model=AssignmentStats)
async def get_assignment_stats(
    assignment_id: str,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator)
):
    try:
        return await orchestrator.get_assignment_stats(assignment_id)
    except GradingError as e:
        raise _http_error(e)


@router.post("/quizzes/submissions/{submission_id}/grade", response_model=QuizGradingOutcome)
async def grade_quiz_submission(
    submission_id: str,
    body: QuizSubmissionRequest,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator)
):
    """Grade every answer of a quiz submission."""
    try:
        return await orchestrator.grade_quiz_submission(submission_id, body.answers)
    except GradingError as e:
        raise _http_error(e)


@router.post("/quizzes/grade-answer", response_model=QuizAnswerResult)
async def grade_answer(
    body: GradeAnswerRequest,
    orchestrator: GradingOrchestrator = Depends(get_orchestrator)
):
    """Grade a single answer against an inline question definition."""
    return await orchestrator.grade_answer(body.question, body.answer)
