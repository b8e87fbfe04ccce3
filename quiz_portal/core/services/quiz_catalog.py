"""Quiz listing, per-user completion status and session start."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import math
import re

from quiz_portal.constants.quiz_constants import EMAIL_PATTERN, MIN_USER_NAME_LENGTH
from quiz_portal.core.errors import (
    DuplicateAttemptError,
    DuplicateAttemptWarning,
    NotFoundError,
    QuizValidationError,
)
from quiz_portal.core.models import Attempt, Quiz, UserSession
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.utils.formatting import format_display_date
from quiz_portal.utils.settings import DuplicateAttemptPolicy

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(EMAIL_PATTERN)


class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"


@dataclass(slots=True)
class DashboardEntry:
    """One quiz card on the dashboard."""

    quiz_id: str
    date: str
    display_date: str
    subject: str
    total_questions: int
    time_limit: int
    status: CompletionStatus
    attempt: Attempt | None

    @property
    def duration_minutes(self) -> int:
        return math.ceil(self.time_limit / 60)

    @property
    def score_label(self) -> str:
        if self.attempt is None:
            return ""
        return f"Score: {self.attempt.score}/{self.total_questions}"

    @property
    def action_label(self) -> str:
        return "Retake Quiz" if self.status is CompletionStatus.COMPLETED else "Start Quiz"


def validate_user_details(user_name: str, email: str) -> tuple[str, str]:
    """Return the trimmed name and email or raise :class:`QuizValidationError`."""
    user_name = (user_name or "").strip()
    email = (email or "").strip()
    if len(user_name) < MIN_USER_NAME_LENGTH:
        raise QuizValidationError(f"Name must be at least {MIN_USER_NAME_LENGTH} characters long")
    if not _EMAIL_RE.match(email):
        raise QuizValidationError("Please enter a valid email address")
    return user_name, email


class QuizCatalog:
    """Dashboard over the local quiz and attempt collections."""

    def __init__(
        self,
        repository: QuizRepository,
        duplicate_policy: DuplicateAttemptPolicy = DuplicateAttemptPolicy.CONFIRM,
    ) -> None:
        self._repository = repository
        self._duplicate_policy = duplicate_policy

    @property
    def duplicate_policy(self) -> DuplicateAttemptPolicy:
        return self._duplicate_policy

    def dashboard(
        self,
        email: str | None = None,
        subject: str | None = None,
        status: CompletionStatus | None = None,
    ) -> list[DashboardEntry]:
        """List quizzes annotated with the user's attempt, optionally filtered.

        Filters only hide entries; nothing is written.
        """
        if email is None:
            session = self._repository.get_session()
            email = session.email if session else None

        attempts = self._repository.get_attempts()
        entries: list[DashboardEntry] = []
        for quiz in self._repository.get_quizzes():
            attempt = _latest_attempt(attempts, quiz.quiz_id, email) if email else None
            entry = DashboardEntry(
                quiz_id=quiz.quiz_id,
                date=quiz.date,
                display_date=format_display_date(quiz.date),
                subject=quiz.subject,
                total_questions=quiz.total_questions,
                time_limit=quiz.time_limit,
                status=CompletionStatus.COMPLETED if attempt else CompletionStatus.PENDING,
                attempt=attempt,
            )
            if subject and entry.subject.casefold() != subject.casefold():
                continue
            if status is not None and entry.status is not status:
                continue
            entries.append(entry)
        return entries

    def subjects(self) -> list[str]:
        return sorted({quiz.subject for quiz in self._repository.get_quizzes()})

    def available_dates(self) -> list[str]:
        return sorted({quiz.date for quiz in self._repository.get_quizzes()})

    def find_quiz(self, date: str, subject: str) -> Quiz:
        for quiz in self._repository.get_quizzes():
            if quiz.date == date and quiz.subject == subject:
                return quiz
        raise NotFoundError("Quiz not found for selected date and subject")

    def start_quiz(
        self,
        quiz_id: str,
        user_name: str,
        email: str,
        confirm_retake: bool = False,
    ) -> UserSession:
        """Open a new user session on ``quiz_id``.

        Raises :class:`DuplicateAttemptWarning` when the user already has an
        attempt and has not confirmed the retake (policy ``confirm``), or
        :class:`DuplicateAttemptError` when retakes are rejected.
        """
        user_name, email = validate_user_details(user_name, email)
        quiz = self._repository.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} does not exist")

        existing = self._repository.find_attempt(quiz.quiz_id, email)
        if existing is not None:
            if self._duplicate_policy is DuplicateAttemptPolicy.REJECT:
                raise DuplicateAttemptError(existing)
            if self._duplicate_policy is DuplicateAttemptPolicy.CONFIRM and not confirm_retake:
                raise DuplicateAttemptWarning(existing)
            logger.info("%s is retaking quiz %s", email, quiz.quiz_id)

        session = UserSession(user_name=user_name, email=email, current_quiz_id=quiz.quiz_id)
        self._repository.save_session(session)
        return session

    def start_scheduled_quiz(
        self,
        date: str,
        subject: str,
        user_name: str,
        email: str,
        confirm_retake: bool = False,
    ) -> UserSession:
        quiz = self.find_quiz(date, subject)
        return self.start_quiz(quiz.quiz_id, user_name, email, confirm_retake=confirm_retake)

    def current_session(self) -> UserSession | None:
        return self._repository.get_session()

    def logout(self) -> None:
        self._repository.clear_session()
        self._repository.clear_results()


def _latest_attempt(attempts: list[Attempt], quiz_id: str, email: str) -> Attempt | None:
    matches = [attempt for attempt in attempts if attempt.quiz_id == quiz_id and attempt.email == email]
    return matches[-1] if matches else None
