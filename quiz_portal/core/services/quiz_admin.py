"""Administrator operations: authoring, record management and maintenance."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any

from quiz_portal.constants.about import QUESTION_TEMPLATE
from quiz_portal.core.errors import NetworkError, NotFoundError
from quiz_portal.core.models import Attempt, Quiz
from quiz_portal.core.quiz_exporter import build_export_document
from quiz_portal.core.quiz_importer import (
    ValidationSummary,
    build_quiz,
    parse_questions_json,
    summarize,
)
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.core.services.remote_client import RemoteSyncClient
from quiz_portal.core.services.sync_service import SyncReport, SyncService
from quiz_portal.utils.formatting import iso_date

logger = logging.getLogger(__name__)


class CreationStatus(str, Enum):
    SYNCED = "synced"
    LOCAL_ONLY = "local_only"


@dataclass(slots=True)
class CreationOutcome:
    quiz: Quiz
    status: CreationStatus
    message: str


@dataclass(slots=True)
class QuizRow:
    quiz: Quiz
    attempt_count: int


@dataclass(slots=True)
class AttemptRow:
    attempt: Attempt
    subject: str


@dataclass(slots=True)
class DashboardStats:
    total_quizzes: int
    total_attempts: int
    todays_quizzes: int
    total_questions: int


class QuizAdmin:
    """Validates question sets and manages the stored quiz and attempt records."""

    def __init__(
        self,
        repository: QuizRepository,
        remote_client: RemoteSyncClient | None,
        sync_service: SyncService | None = None,
    ) -> None:
        self._repository = repository
        self._remote = remote_client
        self._sync = sync_service

    # --- Authoring ---

    def validate_questions_json(self, questions_json: str) -> ValidationSummary:
        return summarize(parse_questions_json(questions_json))

    async def create_quiz(self, date: str, subject: str, questions_json: str) -> CreationOutcome:
        """Validate, save locally, then try to create the quiz remotely.

        Validation errors abort before anything is written. A remote failure
        only downgrades the outcome to ``local_only``.
        """
        questions = parse_questions_json(questions_json)
        quiz = build_quiz(date, subject, questions)
        self._repository.add_quiz(quiz)
        logger.info("Quiz %s (%s, %s) saved locally", quiz.quiz_id, quiz.subject, quiz.date)

        if self._remote is None or not self._remote.is_configured:
            return CreationOutcome(quiz, CreationStatus.LOCAL_ONLY, "Saved locally: remote backend not connected")
        try:
            await self._remote.create_quiz(quiz)
        except NetworkError as exc:
            logger.warning("Quiz %s saved locally but remote creation failed: %s", quiz.quiz_id, exc)
            return CreationOutcome(
                quiz,
                CreationStatus.LOCAL_ONLY,
                "Saved locally but failed to sync with the remote backend",
            )
        return CreationOutcome(quiz, CreationStatus.SYNCED, "Quiz created and synced")

    @staticmethod
    def question_template() -> str:
        return QUESTION_TEMPLATE

    # --- Listings ---

    def list_quizzes(self) -> list[QuizRow]:
        attempts = self._repository.get_attempts()
        return [
            QuizRow(quiz=quiz, attempt_count=sum(1 for a in attempts if a.quiz_id == quiz.quiz_id))
            for quiz in self._repository.get_quizzes()
        ]

    def list_attempts(self) -> list[AttemptRow]:
        subjects = {quiz.quiz_id: quiz.subject for quiz in self._repository.get_quizzes()}
        return [
            AttemptRow(attempt=attempt, subject=subjects.get(attempt.quiz_id, "Unknown"))
            for attempt in self._repository.get_attempts()
        ]

    def quiz_details(self, quiz_id: str) -> Quiz:
        quiz = self._repository.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} does not exist")
        return quiz

    def stats(self, today: str | None = None) -> DashboardStats:
        today = today or iso_date()
        quizzes = self._repository.get_quizzes()
        return DashboardStats(
            total_quizzes=len(quizzes),
            total_attempts=len(self._repository.get_attempts()),
            todays_quizzes=sum(1 for quiz in quizzes if quiz.date == today),
            total_questions=sum(quiz.total_questions for quiz in quizzes),
        )

    # --- Deletion ---

    def delete_quiz(self, quiz_id: str) -> None:
        if not self._repository.delete_quiz(quiz_id):
            raise NotFoundError(f"Quiz {quiz_id} does not exist")
        logger.info("Deleted quiz %s", quiz_id)

    def delete_attempt(self, attempt_id: str) -> None:
        if not self._repository.delete_attempt(attempt_id):
            raise NotFoundError(f"Attempt {attempt_id} does not exist")
        logger.info("Deleted attempt %s", attempt_id)

    def delete_all_quizzes(self) -> None:
        self._repository.delete_all_quizzes()
        logger.info("Deleted all quizzes")

    def delete_all_attempts(self) -> None:
        self._repository.delete_all_attempts()
        logger.info("Deleted all attempts")

    def clear_all_data(self) -> None:
        self._repository.clear_all()
        logger.warning("Cleared every record from the local store")

    # --- Maintenance ---

    def export_all_data(self) -> dict[str, Any]:
        return build_export_document(self._repository)

    def backup_data(self) -> str:
        return self._repository.backup()

    async def sync_with_remote(self) -> SyncReport:
        if self._sync is None:
            raise NetworkError("Remote backend not available")
        return await self._sync.sync_all()
