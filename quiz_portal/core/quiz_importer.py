"""Validation and ingestion of question-set JSON written by administrators.

Expected payload: a JSON array of question objects::

    [
      {
        "question": "What is $2 + 2$?",
        "options": ["3", "4", "5", "22"],
        "correctAnswer": 1,
        "explanation": "Two plus two is four.",
        "timeAllocation": 60
      }
    ]

``timeAllocation`` is optional and defaults to 60 seconds. Error messages
number questions from 1 so they match what the administrator sees.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import math
from typing import Any

from quiz_portal.constants.quiz_constants import OPTIONS_PER_QUESTION
from quiz_portal.core.errors import QuizValidationError
from quiz_portal.core.models import Question, Quiz
from quiz_portal.utils.formatting import iso_timestamp
from quiz_portal.utils.ids import new_quiz_id


@dataclass(slots=True)
class ValidationSummary:
    """What the admin form shows after a successful validation."""

    question_count: int
    time_limit_seconds: int

    @property
    def total_minutes(self) -> int:
        return math.ceil(self.time_limit_seconds / 60)


def parse_questions_json(text: str) -> list[Question]:
    """Parse and validate a question-set JSON document."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise QuizValidationError(f"Invalid JSON: {exc}") from exc
    return validate_questions(payload)


def validate_questions(payload: Any) -> list[Question]:
    """Validate an already-decoded payload and return the questions it describes."""
    if not isinstance(payload, list) or not payload:
        raise QuizValidationError("Questions must be a non-empty array")
    return [_validate_entry(entry, number) for number, entry in enumerate(payload, start=1)]


def summarize(questions: list[Question]) -> ValidationSummary:
    return ValidationSummary(
        question_count=len(questions),
        time_limit_seconds=compute_time_limit(questions),
    )


def compute_time_limit(questions: list[Question]) -> int:
    return sum(question.allocated_seconds for question in questions)


def build_quiz(date: str, subject: str, questions: list[Question]) -> Quiz:
    """Create a new quiz record from validated questions."""
    date = (date or "").strip()
    subject = (subject or "").strip()
    if not date:
        raise QuizValidationError("Quiz date is required")
    if not subject:
        raise QuizValidationError("Subject is required")
    if not questions:
        raise QuizValidationError("Questions must be a non-empty array")
    return Quiz(
        quiz_id=new_quiz_id(),
        date=date,
        subject=subject,
        questions=list(questions),
        total_questions=len(questions),
        time_limit=compute_time_limit(questions),
        created_at=iso_timestamp(),
    )


def _validate_entry(entry: Any, number: int) -> Question:
    if not isinstance(entry, dict):
        raise QuizValidationError(f"Question {number} must be an object")
    if not entry.get("question") or not entry.get("options") or not entry.get("explanation"):
        raise QuizValidationError(f"Question {number} missing required fields")

    options = entry["options"]
    if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
        raise QuizValidationError(f"Question {number} must have {OPTIONS_PER_QUESTION} options")

    correct_answer = _as_whole_number(entry.get("correctAnswer"))
    if correct_answer is None or not 0 <= correct_answer < OPTIONS_PER_QUESTION:
        raise QuizValidationError(f"Question {number} invalid correctAnswer")

    allocation = entry.get("timeAllocation")
    time_allocation: int | None = None
    if allocation is not None:
        time_allocation = _as_whole_number(allocation)
        if time_allocation is None or time_allocation < 0:
            raise QuizValidationError(
                f"Question {number} timeAllocation must be a whole number of seconds"
            )

    return Question(
        question=str(entry["question"]),
        options=[str(option) for option in options],
        correct_answer=correct_answer,
        explanation=str(entry["explanation"]),
        time_allocation=time_allocation,
    )


def _as_whole_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
