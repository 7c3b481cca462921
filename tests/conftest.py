"""Test configuration and fixtures."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from autograde.config import AIClientConfig
from autograde.database import create_engine_from_url, create_session_factory, create_tables
from autograde.grading.ai_client import AIGradingClient
from autograde.store import GradingStore


# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SAMPLE_ANSWER = "The mitochondria is the powerhouse of the cell."
SAMPLE_CRITERIA = {
    "accuracy": {"max_points": 70, "description": "Scientific accuracy"},
    "explanation": {"max_points": 30, "description": "Quality of explanation"},
}

GRADING_PAYLOAD = {
    "overall_score": 85,
    "rubric_scores": {
        "accuracy": {"score": 60, "max_points": 70, "feedback": "Mostly accurate."},
        "explanation": {"score": 25, "max_points": 30, "feedback": "Clear."},
    },
    "strengths": ["Correct terminology"],
    "areas_for_improvement": ["Mention ATP"],
    "overall_feedback": "Good answer.",
    "suggestions": ["Add an example"],
}


async def stored_grade(session_factory, submission_id):
    """The Grade row for a submission, read in a fresh session."""
    from sqlalchemy import select
    from autograde.models import Grade
    async with session_factory() as session:
        return (await session.execute(select(Grade).where(Grade.submission_id == submission_id))).scalar_one_or_none()


async def stored_answers(session_factory, submission_id):
    from sqlalchemy import select
    from autograde.models import Answer
    async with session_factory() as session:
        return list((await session.execute(select(Answer).where(Answer.submission_id == submission_id))).scalars())


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_engine_from_url(TEST_DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return GradingStore(session_factory)


@pytest.fixture
def add(session_factory):
    """Persist ORM objects in their own committed session."""
    async def _add(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0] if len(objects) == 1 else objects
    return _add


@pytest_asyncio.fixture
async def sample_instructor(add):
    """Create a sample instructor for testing."""
    from autograde.models import User, UserRole
    return await add(User(email="instructor@example.com", name="Test Instructor", role=UserRole.instructor))


@pytest_asyncio.fixture
async def sample_student(add):
    """Create a sample student for testing."""
    from autograde.models import User, UserRole
    return await add(User(email="student@example.com", name="Test Student", role=UserRole.student))


@pytest_asyncio.fixture
async def sample_rubric(add, sample_instructor):
    """Create a sample rubric for testing."""
    from autograde.models import Rubric
    return await add(Rubric(
        name="Cell Biology Rubric",
        description="Rubric for short biology answers",
        rubric_type="essay",
        criteria=SAMPLE_CRITERIA,
        total_points=100,
        created_by=sample_instructor.id,
    ))


@pytest_asyncio.fixture
async def sample_assignment(add, sample_instructor, sample_rubric):
    """Create a sample assignment for testing."""
    from autograde.models import Assignment, AssignmentStatus
    return await add(Assignment(
        title="Cell Organelles",
        description="Explain the role of the mitochondria.",
        course_code="BIO101",
        instructor_id=sample_instructor.id,
        rubric_id=sample_rubric.id,
        status=AssignmentStatus.active,
        total_points=100,
        reference_answer="Mitochondria produce ATP through cellular respiration.",
    ))


@pytest_asyncio.fixture
async def sample_submission(add, sample_student, sample_assignment):
    """Create a sample submitted answer for testing."""
    from autograde.models import Submission, SubmissionStatus
    return await add(Submission(
        student_id=sample_student.id,
        assignment_id=sample_assignment.id,
        content=SAMPLE_ANSWER,
        status=SubmissionStatus.submitted,
    ))


@pytest.fixture
def make_completion():
    """Build a chat-completion response shaped like the OpenAI SDK's."""
    def _make(payload):
        content = payload if isinstance(payload, str) else json.dumps(payload)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    return _make


@pytest.fixture
def openai_client():
    """Mock AsyncOpenAI client; set ``chat.completions.create`` behaviour per test."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def ai_config():
    return AIClientConfig(api_key="test-key", max_attempts=1, batch_group_delay=0)


@pytest.fixture
def ai_client(ai_config, openai_client):
    return AIGradingClient(ai_config, client=openai_client)
