"""
In-process batch grading jobs.

A batch is started as an ``asyncio`` task and identified by a job id, so the
HTTP layer can answer immediately and poll later. Jobs live in memory only and
do not survive a restart.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from .orchestrator import GradingOrchestrator
from .schemas import BatchSummary

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"


class BatchJob(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    assignment_id: str
    include_failed: bool = False
    status: JobStatus = JobStatus.queued
    result: Optional[BatchSummary] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: Optional[datetime] = None


class BatchJobRegistry:
    """Starts batch grading tasks and keeps their state for polling.

    Finished jobs are forgotten ``ttl_seconds`` after they finish.
    """

    def __init__(self, orchestrator: GradingOrchestrator, ttl_seconds: float = 3600):
        self.orchestrator = orchestrator
        self.ttl = timedelta(seconds=ttl_seconds)
        self._jobs: Dict[str, BatchJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self, assignment_id: str, include_failed: bool = False) -> BatchJob:
        """Start grading ``assignment_id`` in the background and return its job."""
        self._evict_expired()
        job = BatchJob(assignment_id=assignment_id, include_failed=include_failed)
        self._jobs[job.id] = job

        task = asyncio.get_running_loop().create_task(self._run(job))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))

        logger.info(f"Queued batch job {job.id} for assignment {assignment_id}")
        return job

    def get(self, job_id: str) -> Optional[BatchJob]:
        self._evict_expired()
        return self._jobs.get(job_id)

    def _evict_expired(self) -> None:
        cutoff = datetime.now(UTC) - self.ttl
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.finished_at is not None and job.finished_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} finished batch job(s)")

    async def wait(self, job_id: str) -> Optional[BatchJob]:
        """Wait for a job's task to finish, then return the job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._jobs.get(job_id)

    async def _run(self, job: BatchJob) -> None:
        job.status = JobStatus.running
        try:
            job.result = await self.orchestrator.batch_grade_assignment(
                job.assignment_id, include_failed=job.include_failed
            )
            job.status = JobStatus.completed
        except Exception as e:
            logger.error(f"Batch job {job.id} for assignment {job.assignment_id} failed: {e}", exc_info=True)
            job.status = JobStatus.failed
            job.error = str(e)
        finally:
            job.finished_at = datetime.now(UTC)

    async def shutdown(self) -> None:
        """Let running batches finish before the process exits."""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} batch job(s) to finish")
            await asyncio.gather(*tasks, return_exceptions=True)
