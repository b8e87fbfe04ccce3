"""Typed access to the quiz, attempt, session and state records in a store."""

from __future__ import annotations

import logging
from typing import Any

from quiz_portal.constants import storage_keys
from quiz_portal.core.models import Attempt, Quiz, QuizResults, QuizState, UserSession
from quiz_portal.core.services.local_store import KeyValueStore
from quiz_portal.utils.formatting import iso_timestamp
from quiz_portal.utils.ids import epoch_millis

logger = logging.getLogger(__name__)


class QuizRepository:
    """Reads and writes portal records through a :class:`KeyValueStore`.

    Collections are read fresh from the store for every mutation so that an
    append never overwrites records written by someone else in between.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # --- Quizzes ---

    def has_quiz_collection(self) -> bool:
        return self._store.get_raw(storage_keys.QUIZZES_KEY) is not None

    def get_quizzes(self) -> list[Quiz]:
        return [Quiz.from_dict(item) for item in self._read_list(storage_keys.QUIZZES_KEY)]

    def save_quizzes(self, quizzes: list[Quiz]) -> None:
        self._store.set(storage_keys.QUIZZES_KEY, [quiz.to_dict() for quiz in quizzes])

    def get_quiz(self, quiz_id: str) -> Quiz | None:
        return next((quiz for quiz in self.get_quizzes() if quiz.quiz_id == quiz_id), None)

    def add_quiz(self, quiz: Quiz) -> None:
        quizzes = self.get_quizzes()
        quizzes.append(quiz)
        self.save_quizzes(quizzes)

    def delete_quiz(self, quiz_id: str) -> bool:
        quizzes = self.get_quizzes()
        remaining = [quiz for quiz in quizzes if quiz.quiz_id != quiz_id]
        if len(remaining) == len(quizzes):
            return False
        self.save_quizzes(remaining)
        return True

    def delete_all_quizzes(self) -> None:
        self.save_quizzes([])

    # --- Attempts ---

    def get_attempts(self) -> list[Attempt]:
        return [Attempt.from_dict(item) for item in self._read_list(storage_keys.ATTEMPTS_KEY)]

    def save_attempts(self, attempts: list[Attempt]) -> None:
        self._store.set(storage_keys.ATTEMPTS_KEY, [attempt.to_dict() for attempt in attempts])

    def append_attempt(self, attempt: Attempt) -> None:
        attempts = self.get_attempts()
        attempts.append(attempt)
        self.save_attempts(attempts)

    def find_attempt(self, quiz_id: str, email: str) -> Attempt | None:
        """Return the user's most recent attempt at ``quiz_id``, if any."""
        matches = [
            attempt
            for attempt in self.get_attempts()
            if attempt.quiz_id == quiz_id and attempt.email == email
        ]
        return matches[-1] if matches else None

    def delete_attempt(self, attempt_id: str) -> bool:
        attempts = self.get_attempts()
        remaining = [attempt for attempt in attempts if attempt.attempt_id != attempt_id]
        if len(remaining) == len(attempts):
            return False
        self.save_attempts(remaining)
        return True

    def delete_all_attempts(self) -> None:
        self.save_attempts([])

    # --- User session ---

    def get_session(self) -> UserSession | None:
        data = self._store.get(storage_keys.USER_SESSION_KEY)
        if not isinstance(data, dict):
            return None
        return UserSession.from_dict(data)

    def save_session(self, session: UserSession) -> None:
        self._store.set(storage_keys.USER_SESSION_KEY, session.to_dict())

    def clear_session(self) -> None:
        self._store.remove(storage_keys.USER_SESSION_KEY)

    # --- In-progress state ---

    def load_state(self, quiz_id: str) -> QuizState | None:
        data = self._store.get(storage_keys.quiz_state_key(quiz_id))
        if not isinstance(data, dict):
            return None
        return QuizState.from_dict(data)

    def save_state(self, state: QuizState) -> None:
        self._store.set(storage_keys.quiz_state_key(state.quiz_id), state.to_dict())

    def delete_state(self, quiz_id: str) -> None:
        self._store.remove(storage_keys.quiz_state_key(quiz_id))

    def save_current_quiz(self, quiz: Quiz) -> None:
        self._store.set(storage_keys.CURRENT_QUIZ_KEY, quiz.to_dict())

    # --- Results snapshot ---

    def save_results(self, results: QuizResults) -> None:
        self._store.set(storage_keys.CURRENT_RESULTS_KEY, results.to_dict())

    def load_results(self) -> QuizResults | None:
        data = self._store.get(storage_keys.CURRENT_RESULTS_KEY)
        if not isinstance(data, dict):
            return None
        return QuizResults.from_dict(data)

    def clear_results(self) -> None:
        self._store.remove(storage_keys.CURRENT_RESULTS_KEY)

    # --- Maintenance ---

    def backup(self) -> str:
        """Copy the raw quiz and attempt collections under a ``backup_<ms>`` key."""
        key = storage_keys.backup_key(epoch_millis())
        self._store.set(
            key,
            {
                "quizzes": self._store.get_raw(storage_keys.QUIZZES_KEY),
                "attempts": self._store.get_raw(storage_keys.ATTEMPTS_KEY),
                "timestamp": iso_timestamp(),
            },
        )
        logger.info("Created backup %s", key)
        return key

    def backup_keys(self) -> list[str]:
        return sorted(key for key in self._store.keys() if key.startswith(storage_keys.BACKUP_KEY_PREFIX))

    def clear_all(self) -> None:
        self._store.clear()

    def _read_list(self, key: str) -> list[dict[str, Any]]:
        data = self._store.get(key)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]
