"""Exports of every quiz and attempt held in the local store."""

from __future__ import annotations

from typing import Any

from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.utils.formatting import iso_date, iso_timestamp


def build_export_document(repository: QuizRepository) -> dict[str, Any]:
    """Snapshot all quizzes and attempts as one JSON-ready document."""

    return {
        "quizzes": [quiz.to_dict() for quiz in repository.get_quizzes()],
        "attempts": [attempt.to_dict() for attempt in repository.get_attempts()],
        "exportedAt": iso_timestamp(),
    }


def default_export_filename() -> str:
    return f"quiz-data-{iso_date()}.json"

