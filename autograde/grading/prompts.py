"""
Prompt construction for the AI grading client.

Inputs are sanitized before they reach a prompt: empty values, non-strings and
raw document bytes (text starting with the PDF magic marker) are replaced by
explicit placeholders.
"""

import json
from typing import Any, Dict, List, Optional

PDF_MAGIC = "%PDF"

NO_RUBRIC = "No rubric criteria provided"
NO_DESCRIPTION = "No description provided"

# Essay dimensions and their share of the question's points
ESSAY_RUBRIC_WEIGHTS = {
    "content_accuracy": 40,
    "completeness": 25,
    "clarity_organization": 20,
    "critical_thinking": 15,
}

CRITERION_EXCERPT_LENGTH = 500


def _clean_text(value: Any, placeholder: str) -> str:
    if not isinstance(value, str):
        return placeholder
    if value.startswith(PDF_MAGIC) or not value.strip():
        return placeholder
    return value.strip()


def sanitize_rubric(rubric: Any) -> str:
    """Render rubric criteria for a prompt.

    Mappings are serialized as indented JSON; strings are kept unless empty
    or binary.
    """
    if isinstance(rubric, dict):
        if not rubric:
            return NO_RUBRIC
        return json.dumps(rubric, indent=2)
    return _clean_text(rubric, NO_RUBRIC)


def sanitize_description(description: Any) -> str:
    return _clean_text(description, NO_DESCRIPTION)


def sanitize_reference(reference: Any) -> str:
    """Reference text, or an empty string when there is nothing usable."""
    return _clean_text(reference, "")


def grading_system_prompt(total_points: float, has_reference: bool) -> str:
    reference_rule = (
        "\n6. Use the reference answer as a guide for expected content and quality level"
        if has_reference else ""
    )
    return f"""You are an expert educational grading assistant. Your task is to grade student submissions fairly, consistently, and constructively.

Guidelines:
1. Evaluate the submission against the provided rubric criteria
2. Provide specific, actionable feedback for improvement
3. Be encouraging while maintaining high standards
4. Score each rubric criterion individually
5. Provide an overall score and summary feedback{reference_rule}

Response Format (JSON):
{{
  "overall_score": <number 0-{_fmt(total_points)}>,
  "percentage": <number 0-100>,
  "rubric_scores": {{
    "<criterion_name>": {{
      "score": <number>,
      "max_points": <number>,
      "feedback": "<specific feedback for this criterion>"
    }}
  }},
  "strengths": ["<strength 1>", "<strength 2>"],
  "areas_for_improvement": ["<area 1>", "<area 2>"],
  "overall_feedback": "<comprehensive summary feedback>",
  "suggestions": ["<actionable suggestion 1>", "<actionable suggestion 2>"]
}}"""


def grading_user_prompt(
    student_answer: str,
    rubric_text: str,
    description_text: str,
    reference_text: str,
    total_points: float,
) -> str:
    reference_section = f"\n## Reference/Model Answer\n{reference_text}\n" if reference_text else ""
    return f"""Please grade the following student submission.

## Assignment Description
{description_text}

## Grading Rubric
{rubric_text}
{reference_section}
## Total Points Available
{_fmt(total_points)}

## Student Submission
{student_answer}

Please evaluate this submission and provide detailed feedback in the specified JSON format."""


def grading_messages(
    student_answer: str,
    rubric: Any,
    description: Any,
    reference: Any,
    total_points: float,
) -> List[Dict[str, str]]:
    """System and user messages for full rubric grading."""
    reference_text = sanitize_reference(reference)
    return [
        {"role": "system", "content": grading_system_prompt(total_points, bool(reference_text))},
        {
            "role": "user",
            "content": grading_user_prompt(
                student_answer,
                sanitize_rubric(rubric),
                sanitize_description(description),
                reference_text,
                total_points,
            ),
        },
    ]


def short_answer_messages(
    student_answer: str,
    reference_answer: str,
    question: str,
    correct_threshold: float,
) -> List[Dict[str, str]]:
    threshold = _fmt(correct_threshold)
    prompt = f"""You are grading a short answer quiz question. Evaluate if the student's answer conveys the same meaning as the reference answer, even if worded differently.

Question: {question}

Reference Answer: {reference_answer}

Student's Answer: {student_answer}

Evaluate the student's answer and respond in JSON format:
{{
  "score": <number 0-100 representing percentage correctness>,
  "is_correct": <true if score >= {threshold}, false otherwise>,
  "feedback": "<brief 1-2 sentence feedback>"
}}

Scoring guidelines:
- 100: Perfect or essentially equivalent answer
- 80-99: Correct with minor differences or missing small details
- 50-79: Partially correct, understands the concept but missing key elements
- 20-49: Shows some understanding but largely incorrect
- 0-19: Incorrect or irrelevant answer

Be lenient with wording differences - focus on whether the student understands the concept."""
    return [{"role": "user", "content": prompt}]


def essay_messages(
    student_answer: str,
    question: str,
    reference_answer: Optional[str],
    points: float,
) -> List[Dict[str, str]]:
    w = ESSAY_RUBRIC_WEIGHTS
    reference_text = sanitize_reference(reference_answer)
    guidance = (
        "Use the reference answer as a guide for expected content and key points that should be covered."
        if reference_text
        else "Evaluate based on general correctness and quality of the response."
    )
    system = f"""You are an expert educational grading assistant specializing in evaluating essay responses.

Your task is to grade the student's essay answer based on these criteria:
1. **Content & Accuracy ({w['content_accuracy']}%)**: Does the answer correctly address the question? Are the facts/concepts accurate?
2. **Completeness ({w['completeness']}%)**: Does the answer cover all key aspects of the question?
3. **Clarity & Organization ({w['clarity_organization']}%)**: Is the answer well-structured, clear, and easy to follow?
4. **Critical Thinking ({w['critical_thinking']}%)**: Does the answer show depth of understanding, analysis, or original insight?

{guidance}

Be fair but thorough. Provide constructive feedback that helps the student improve.

Respond in JSON format:
{{
  "score_percentage": <number 0-100>,
  "criteria_scores": {{
    "content_accuracy": {{"score": <0-{w['content_accuracy']}>, "feedback": "<specific feedback>"}},
    "completeness": {{"score": <0-{w['completeness']}>, "feedback": "<specific feedback>"}},
    "clarity_organization": {{"score": <0-{w['clarity_organization']}>, "feedback": "<specific feedback>"}},
    "critical_thinking": {{"score": <0-{w['critical_thinking']}>, "feedback": "<specific feedback>"}}
  }},
  "overall_feedback": "<comprehensive 2-3 sentence summary of performance>",
  "strengths": ["<strength 1>", "<strength 2>"],
  "improvements": ["<suggestion 1>", "<suggestion 2>"]
}}"""

    reference_section = (
        f"## Reference Answer / Key Points Expected\n{reference_text}\n\n" if reference_text else ""
    )
    user = f"""## Essay Question
{question}

{reference_section}## Student's Answer
{student_answer}

## Maximum Points: {_fmt(points)}

Please evaluate this essay response and provide detailed scoring and feedback."""
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def criterion_feedback_messages(criterion: str, student_work: str, score: float, max_points: float) -> List[Dict[str, str]]:
    excerpt = (student_work or "")[:CRITERION_EXCERPT_LENGTH]
    prompt = f"""As an educational grading assistant, provide specific, constructive feedback for a student who received {_fmt(score)}/{_fmt(max_points)} points on the following criterion:

Criterion: {criterion}

Student's work excerpt: {excerpt}

Provide 2-3 sentences of actionable feedback that:
1. Acknowledges what they did well (if applicable)
2. Explains specifically what could be improved
3. Gives a concrete suggestion for improvement"""
    return [{"role": "user", "content": prompt}]


def _fmt(number: float) -> str:
    """Render 100.0 as '100' and 12.5 as '12.5'."""
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)
