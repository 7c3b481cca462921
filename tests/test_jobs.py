"""Tests for in-process batch grading jobs."""

import asyncio
from datetime import datetime, timedelta, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest

from autograde.errors import NotFoundError
from autograde.grading.jobs import BatchJobRegistry, JobStatus
from autograde.grading.schemas import BatchSummary


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    orchestrator.batch_grade_assignment = AsyncMock(return_value=BatchSummary(total=3, graded=2, failed=1))
    return orchestrator


class TestBatchJobRegistry:

    @pytest.mark.asyncio
    async def test_job_completes_with_summary(self, orchestrator):
        jobs = BatchJobRegistry(orchestrator)

        job = jobs.submit("assignment-1", include_failed=True)
        assert job.status == JobStatus.queued
        assert jobs.get(job.id) is job

        finished = await jobs.wait(job.id)

        assert finished.status == JobStatus.completed
        assert finished.result.graded == 2
        assert finished.finished_at is not None
        orchestrator.batch_grade_assignment.assert_awaited_once_with("assignment-1", include_failed=True)

    @pytest.mark.asyncio
    async def test_job_failure_recorded(self, orchestrator):
        orchestrator.batch_grade_assignment.side_effect = NotFoundError("assignment", "missing")
        jobs = BatchJobRegistry(orchestrator)

        job = await jobs.wait(jobs.submit("missing").id)

        assert job.status == JobStatus.failed
        assert job.error == "Assignment missing not found"
        assert job.result is None

    @pytest.mark.asyncio
    async def test_job_running_while_batch_in_progress(self, orchestrator):
        release = asyncio.Event()

        async def slow_batch(assignment_id, include_failed=False):
            await release.wait()
            return BatchSummary()

        orchestrator.batch_grade_assignment.side_effect = slow_batch
        jobs = BatchJobRegistry(orchestrator)

        job = jobs.submit("assignment-1")
        await asyncio.sleep(0)
        assert job.status == JobStatus.running

        release.set()
        await jobs.shutdown()
        assert job.status == JobStatus.completed

    def test_unknown_job(self, orchestrator):
        assert BatchJobRegistry(orchestrator).get("nope") is None

    @pytest.mark.asyncio
    async def test_wait_on_finished_job(self, orchestrator):
        jobs = BatchJobRegistry(orchestrator)
        job = jobs.submit("assignment-1")
        await jobs.wait(job.id)

        assert (await jobs.wait(job.id)).status == JobStatus.completed

    @pytest.mark.asyncio
    async def test_finished_jobs_expire(self, orchestrator):
        jobs = BatchJobRegistry(orchestrator, ttl_seconds=60)
        old = await jobs.wait(jobs.submit("assignment-1").id)
        recent = await jobs.wait(jobs.submit("assignment-2").id)

        old.finished_at = datetime.now(UTC) - timedelta(minutes=5)

        assert jobs.get(old.id) is None
        assert jobs.get(recent.id) is recent

    @pytest.mark.asyncio
    async def test_running_jobs_never_expire(self, orchestrator):
        release = asyncio.Event()

        async def slow_batch(assignment_id, include_failed=False):
            await release.wait()
            return BatchSummary()

        orchestrator.batch_grade_assignment.side_effect = slow_batch
        jobs = BatchJobRegistry(orchestrator, ttl_seconds=0)

        job = jobs.submit("assignment-1")
        await asyncio.sleep(0)
        assert jobs.get(job.id) is job

        release.set()
        await jobs.shutdown()
