"""Facade tying the portal services together for the server layer."""

from __future__ import annotations

import logging

from quiz_portal.constants.quiz_constants import (
    AUTOSAVE_INTERVAL_SECONDS,
    LEADERBOARD_ALL_QUIZZES,
    TICK_INTERVAL_SECONDS,
)
from quiz_portal.core.errors import NotFoundError
from quiz_portal.core.models import UserSession
from quiz_portal.core.sample_data import build_sample_quizzes
from quiz_portal.core.services.local_store import JsonFileStore
from quiz_portal.core.services.quiz_admin import QuizAdmin
from quiz_portal.core.services.quiz_catalog import QuizCatalog
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.core.services.quiz_session import (
    QuizSessionEngine,
    SessionPhase,
    SubmissionOutcome,
)
from quiz_portal.core.services.remote_client import RemoteSyncClient
from quiz_portal.core.services.scoreboard import (
    LeaderboardRow,
    ResultsView,
    Scoreboard,
    StandingRow,
    build_results_view,
)
from quiz_portal.core.services.sync_service import SyncService, attempt_key, merge_remote_first
from quiz_portal.utils.settings import DuplicateAttemptPolicy, PortalSettings

logger = logging.getLogger(__name__)


class QuizManager:
    """Facade for the portal services: repository, catalog, session engine, scoreboard and admin.

    There is at most one live session engine at a time, mirroring the single
    active user session per device.
    """

    def __init__(
        self,
        repository: QuizRepository,
        remote_client: RemoteSyncClient | None = None,
        *,
        duplicate_policy: DuplicateAttemptPolicy = DuplicateAttemptPolicy.CONFIRM,
        run_session_clock: bool = True,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        autosave_interval: float = AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self._repository = repository
        self._remote = remote_client
        self._sync = SyncService(repository, remote_client) if remote_client is not None else None
        self._catalog = QuizCatalog(repository, duplicate_policy)
        self._admin = QuizAdmin(repository, remote_client, self._sync)
        self._run_session_clock = run_session_clock
        self._tick_interval = tick_interval
        self._autosave_interval = autosave_interval
        self._engine: QuizSessionEngine | None = None

    @classmethod
    def from_settings(cls, settings: PortalSettings) -> QuizManager:
        repository = QuizRepository(JsonFileStore(settings.data_file))
        remote_client = RemoteSyncClient(settings.remote_url, timeout=settings.remote_timeout_seconds)
        manager = cls(
            repository,
            remote_client,
            duplicate_policy=settings.duplicate_policy,
            run_session_clock=settings.run_session_clock,
        )
        if settings.seed_sample_data:
            manager.seed_sample_data()
        return manager

    @property
    def repository(self) -> QuizRepository:
        return self._repository

    @property
    def catalog(self) -> QuizCatalog:
        return self._catalog

    @property
    def admin(self) -> QuizAdmin:
        return self._admin

    def seed_sample_data(self) -> bool:
        """Write the sample quizzes if the store has never held a quiz collection."""
        if self._repository.has_quiz_collection():
            return False
        self._repository.save_quizzes(build_sample_quizzes())
        logger.info("Seeded sample quizzes into an empty store")
        return True

    async def aclose(self) -> None:
        if self._engine is not None:
            self._engine.exit()
            self._engine = None
        if self._remote is not None:
            await self._remote.aclose()

    # --- Session start / end ---

    def start_quiz(self, quiz_id: str, user_name: str, email: str, confirm_retake: bool = False) -> UserSession:
        session = self._catalog.start_quiz(quiz_id, user_name, email, confirm_retake=confirm_retake)
        self._discard_engine()
        return session

    def start_scheduled_quiz(
        self, date: str, subject: str, user_name: str, email: str, confirm_retake: bool = False
    ) -> UserSession:
        session = self._catalog.start_scheduled_quiz(date, subject, user_name, email, confirm_retake=confirm_retake)
        self._discard_engine()
        return session

    def logout(self) -> None:
        self._discard_engine()
        self._catalog.logout()

    # --- Attempt delegation ---

    def open_attempt(self) -> QuizSessionEngine:
        """Load (or return the already running) engine for the session's quiz.

        A submitted engine is handed back as is, so reloading after
        submission shows the outcome rather than opening a second attempt.
        Must be called from the event loop when the session clock is enabled.
        """
        session = self._repository.get_session()
        engine = self._engine
        if engine is not None and session is not None and engine.user.email == session.email:
            if engine.phase is SessionPhase.ACTIVE and engine.quiz.quiz_id == session.current_quiz_id:
                return engine
            if engine.phase is SessionPhase.SUBMITTED and not session.current_quiz_id:
                return engine

        self._discard_engine()
        engine = QuizSessionEngine(
            self._repository,
            self._remote,
            tick_interval=self._tick_interval,
            autosave_interval=self._autosave_interval,
        )
        engine.load()
        if self._run_session_clock:
            engine.start_clock()
        self._engine = engine
        return engine

    def active_attempt(self) -> QuizSessionEngine:
        if self._engine is None:
            raise NotFoundError("No quiz in progress. Redirecting to home.")
        return self._engine

    async def submit_attempt(self, selected_option: int | None = None) -> SubmissionOutcome | None:
        return await self.active_attempt().submit(selected_option)

    def exit_attempt(self) -> None:
        self._discard_engine()

    def _discard_engine(self) -> None:
        if self._engine is not None:
            self._engine.exit()
            self._engine = None

    # --- Results and scoreboard ---

    def current_results(self) -> ResultsView:
        results = self._repository.load_results()
        if results is None:
            raise NotFoundError("No results to show. Take a quiz first.", redirect_to="index")
        return build_results_view(results, self._repository.get_quiz(results.quiz_id))

    async def leaderboard(self, quiz_id: str = LEADERBOARD_ALL_QUIZZES, limit: int | None = None) -> list[LeaderboardRow]:
        return (await self._scoreboard(quiz_id)).ranked_attempts(quiz_id, limit=limit)

    async def overall_standings(self, limit: int | None = None) -> list[StandingRow]:
        return (await self._scoreboard(LEADERBOARD_ALL_QUIZZES)).overall_standings(limit=limit)

    async def _scoreboard(self, quiz_id: str) -> Scoreboard:
        remote = await self._sync.fetch_remote_attempts(quiz_id) if self._sync is not None else []
        attempts = merge_remote_first(remote, self._repository.get_attempts(), attempt_key)
        return Scoreboard(attempts, self._repository.get_quizzes())

    async def remote_status(self) -> bool:
        if self._remote is None:
            return False
        return await self._remote.check_status()
