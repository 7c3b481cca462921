"""
Pydantic models for the grading core.

Three groups live here:

- provider response schemas: ``overall_score`` is checked strictly and the
  rest fall back to empty values (``parse_*`` helpers raise
  ``MalformedResponseError``);
- results returned by the AI client, the quiz grader and the orchestrator;
- quiz question definitions, a closed union discriminated on ``question_type``.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..errors import MalformedResponseError


# ---------------------------------------------------------------------------
# Provider responses
# ---------------------------------------------------------------------------

def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


class _ModelOutput(BaseModel):
    """Base for model output: explicit nulls fall back to the field default."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data):
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


def _string_list(v):
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, list):
        return [str(item) for item in v if item is not None]
    return v


class CriterionScore(_ModelOutput):
    """Per-criterion score; the prompt asks for `score`, grades store `points`."""

    points: float = Field(default=0, validation_alias=AliasChoices("points", "score"))
    max_points: Optional[float] = None
    feedback: str = ""

    @model_validator(mode="before")
    @classmethod
    def bare_number_as_points(cls, data):
        if _is_number(data):
            return {"points": data}
        return data


class SubmissionGradingResponse(_ModelOutput):
    """JSON shape the full grading prompt asks the model to return.

    ``total_points`` must be passed as validation context; scores outside
    ``[0, total_points]`` are rejected. Only ``overall_score`` is strict; the
    other fields fall back to empty values.
    """

    overall_score: float
    percentage: Optional[float] = None
    rubric_scores: Dict[str, CriterionScore] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    overall_feedback: str = ""

    @field_validator("rubric_scores", mode="before")
    @classmethod
    def keep_usable_criteria(cls, v):
        if not isinstance(v, dict):
            return {}
        return {key: entry for key, entry in v.items() if isinstance(entry, dict) or _is_number(entry)}

    @field_validator("strengths", "areas_for_improvement", "suggestions", mode="before")
    @classmethod
    def as_string_list(cls, v):
        return _string_list(v)

    @field_validator("percentage", mode="before")
    @classmethod
    def ignore_non_numeric_percentage(cls, v):
        return v if _is_number(v) else None

    @field_validator("overall_score", mode="before")
    @classmethod
    def reject_non_numeric(cls, v):
        # bool is an int subclass; "85" must not be coerced either
        if not _is_number(v):
            raise ValueError("overall_score must be a number")
        return float(v)

    @field_validator("overall_score")
    @classmethod
    def within_point_budget(cls, v: float, info: ValidationInfo) -> float:
        total = (info.context or {}).get("total_points")
        if v < 0 or (total is not None and v > total):
            raise ValueError(f"overall_score {v} outside [0, {total}]")
        return v


class ShortAnswerResponse(_ModelOutput):
    score: float = 0
    is_correct: Optional[bool] = None
    feedback: str = ""

    @field_validator("score")
    @classmethod
    def clamp(cls, v: float) -> float:
        return max(0.0, min(100.0, v))


class EssayResponse(_ModelOutput):
    score_percentage: float = 0
    criteria_scores: Dict[str, Any] = Field(default_factory=dict)
    overall_feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def as_string_list(cls, v):
        return _string_list(v)

    @field_validator("score_percentage")
    @classmethod
    def clamp(cls, v: float) -> float:
        return max(0.0, min(100.0, v))


def _parse(model, content: Optional[str], context: Optional[dict] = None):
    if not content:
        raise MalformedResponseError("AI provider returned an empty response")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"AI response is not valid JSON: {e}", payload=content)
    try:
        return model.model_validate(data, context=context)
    except ValidationError as e:
        raise MalformedResponseError(f"AI response failed validation: {e}", payload=content)


def parse_grading_response(content: Optional[str], total_points: float) -> SubmissionGradingResponse:
    return _parse(SubmissionGradingResponse, content, {"total_points": total_points})


def parse_short_answer_response(content: Optional[str]) -> ShortAnswerResponse:
    return _parse(ShortAnswerResponse, content)


def parse_essay_response(content: Optional[str]) -> EssayResponse:
    return _parse(EssayResponse, content)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class GradingResult(BaseModel):
    score: float
    percentage: float
    rubric_scores: Dict[str, CriterionScore] = Field(default_factory=dict)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    raw_response: Dict[str, Any] = Field(default_factory=dict)


class ShortAnswerResult(BaseModel):
    score: float
    percentage: float
    is_correct: bool
    feedback: str


class EssayResult(ShortAnswerResult):
    criteria_scores: Dict[str, Any] = Field(default_factory=dict)


class BatchSubmission(BaseModel):
    """Submission text handed to batch grading."""

    id: str
    content: str = ""


class BatchItemResult(BaseModel):
    """One entry of a batch: either ``result`` or ``error`` is set."""

    submission_id: str
    result: Optional[GradingResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class QuizAnswerResult(BaseModel):
    is_correct: bool
    points_earned: float
    feedback: str


class AssignmentContext(BaseModel):
    """Read-only bundle assembled for one grading call."""

    assignment_id: str
    description: str = ""
    reference_answer: str = ""
    total_points: float = 100
    rubric_criteria: Dict[str, Any] = Field(default_factory=dict)


class GradeRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    submission_id: str
    score: float
    feedback: Optional[str] = None
    rubric_scores: Optional[Dict[str, Any]] = None
    confidence: Optional[float] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None


class GradeOutcome(BaseModel):
    grade: GradeRecord
    details: GradingResult


class BatchSummary(BaseModel):
    total: int = 0
    graded: int = 0
    failed: int = 0
    skipped: int = 0


class BatchStatus(BaseModel):
    assignment_id: str
    total: int = 0
    counts: Dict[str, int] = Field(default_factory=dict)
    progress_percent: int = 0


class AssignmentStats(BaseModel):
    assignment_id: str
    total_submissions: int = 0
    graded: int = 0
    pending: int = 0
    failed: int = 0
    average_score: Optional[float] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    std_deviation: Optional[float] = None


# ---------------------------------------------------------------------------
# Quiz questions and answers
# ---------------------------------------------------------------------------

class QuestionOption(BaseModel):
    id: str
    text: str = ""
    is_correct: bool = False


class _QuestionBase(BaseModel):
    id: Optional[str] = None
    question_text: str = ""
    points: float = Field(default=10, ge=0)
    explanation: Optional[str] = None


class MultipleChoiceQuestion(_QuestionBase):
    question_type: Literal["multiple_choice"] = "multiple_choice"
    options: List[QuestionOption] = Field(default_factory=list)


class TrueFalseQuestion(_QuestionBase):
    question_type: Literal["true_false"] = "true_false"
    options: List[QuestionOption] = Field(default_factory=list)


class ShortAnswerQuestion(_QuestionBase):
    question_type: Literal["short_answer"] = "short_answer"
    correct_answers: List[str] = Field(default_factory=list)
    reference_answer: Optional[str] = None


class EssayQuestion(_QuestionBase):
    question_type: Literal["essay"] = "essay"
    reference_answer: Optional[str] = None


Question = Annotated[
    Union[MultipleChoiceQuestion, TrueFalseQuestion, ShortAnswerQuestion, EssayQuestion],
    Field(discriminator="question_type"),
]

question_adapter = TypeAdapter(Question)


class AnswerSubmission(BaseModel):
    question_id: Optional[str] = None
    answer_text: Optional[str] = None
    selected_options: List[str] = Field(default_factory=list)
    time_spent_seconds: Optional[int] = None


class QuizAnswerOutcome(QuizAnswerResult):
    question_id: str


class QuizGradingOutcome(BaseModel):
    submission_id: str
    total_points: float
    earned_points: float
    percentage: float
    results: List[QuizAnswerOutcome] = Field(default_factory=list)
    grade: Optional[GradeRecord] = None
