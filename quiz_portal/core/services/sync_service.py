"""Remote-wins merge of local records with records pulled from the backend."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Hashable, Iterable, TypeVar

from quiz_portal.constants.quiz_constants import LEADERBOARD_ALL_QUIZZES
from quiz_portal.core.models import Attempt, Quiz
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.core.services.remote_client import RemoteSyncClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def merge_remote_first(
    remote: Iterable[T],
    local: Iterable[T],
    key: Callable[[T], Hashable],
) -> list[T]:
    """Merge two record sequences, keeping the remote record on key conflicts.

    Remote records are inserted first, then local records whose key is not
    present yet. Order is preserved within each source. A local record that
    shares a key with a remote one is dropped as a whole.
    """
    merged: dict[Hashable, T] = {}
    for record in remote:
        merged.setdefault(key(record), record)
    for record in local:
        merged.setdefault(key(record), record)
    return list(merged.values())


def quiz_key(quiz: Quiz) -> Hashable:
    return quiz.quiz_id


def attempt_key(attempt: Attempt) -> Hashable:
    return attempt.natural_key


@dataclass(slots=True)
class SyncReport:
    quizzes_pulled: int = 0
    quizzes_total: int = 0
    attempts_pulled: int = 0
    attempts_total: int = 0

    @property
    def pulled_anything(self) -> bool:
        return bool(self.quizzes_pulled or self.attempts_pulled)


class SyncService:
    """Pulls quizzes and attempts from the backend into the local store."""

    def __init__(self, repository: QuizRepository, client: RemoteSyncClient) -> None:
        self._repository = repository
        self._client = client

    async def sync_quizzes(self) -> int:
        """Merge remote quizzes into the local collection; return how many were pulled."""
        remote = [Quiz.from_dict(row) for row in await self._client.list_quizzes()]
        remote = [quiz for quiz in remote if quiz.quiz_id]
        if not remote:
            return 0
        # Re-read after the await so records written meanwhile are kept.
        merged = merge_remote_first(remote, self._repository.get_quizzes(), quiz_key)
        self._repository.save_quizzes(merged)
        logger.info("Synced %d remote quizzes (%d total)", len(remote), len(merged))
        return len(remote)

    async def sync_attempts(self) -> int:
        """Merge the remote leaderboard into the local attempts; return how many were pulled."""
        remote = await self.fetch_remote_attempts(LEADERBOARD_ALL_QUIZZES)
        if not remote:
            return 0
        merged = merge_remote_first(remote, self._repository.get_attempts(), attempt_key)
        self._repository.save_attempts(merged)
        logger.info("Synced %d remote attempts (%d total)", len(remote), len(merged))
        return len(remote)

    async def sync_all(self) -> SyncReport:
        report = SyncReport()
        report.quizzes_pulled = await self.sync_quizzes()
        report.attempts_pulled = await self.sync_attempts()
        report.quizzes_total = len(self._repository.get_quizzes())
        report.attempts_total = len(self._repository.get_attempts())
        return report

    async def fetch_remote_attempts(self, quiz_id: str) -> list[Attempt]:
        rows = await self._client.list_leaderboard(quiz_id)
        return [Attempt.from_dict(row) for row in rows]
