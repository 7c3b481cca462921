"""Grading core: AI client, quiz grader, orchestrator and batch jobs."""

from .ai_client import AIGradingClient
from .jobs import BatchJob, BatchJobRegistry
from .orchestrator import GradingOrchestrator
from .quiz import QuizAnswerGrader

__all__ = [
    "AIGradingClient",
    "BatchJob",
    "BatchJobRegistry",
    "GradingOrchestrator",
    "QuizAnswerGrader",
]
