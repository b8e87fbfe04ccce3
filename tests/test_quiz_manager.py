"""Tests for the QuizManager facade."""

import pytest
from conftest import json_response, make_attempt, make_remote

from quiz_portal.core.errors import NotFoundError
from quiz_portal.core.quiz_manager import QuizManager
from quiz_portal.core.services.quiz_session import SessionPhase
from quiz_portal.utils.settings import PortalSettings


@pytest.fixture
def manager(repository, quiz):
    return QuizManager(repository, run_session_clock=False)


class TestSeeding:
    def test_seeds_only_an_empty_store(self, repository):
        manager = QuizManager(repository, run_session_clock=False)
        assert manager.seed_sample_data() is True
        assert [quiz.quiz_id for quiz in repository.get_quizzes()] == ["quiz_sample_1", "quiz_sample_2"]
        assert manager.seed_sample_data() is False

    def test_deleted_collection_is_not_reseeded(self, repository):
        repository.save_quizzes([])
        assert QuizManager(repository).seed_sample_data() is False

    @pytest.mark.asyncio
    async def test_from_settings(self, tmp_path):
        settings = PortalSettings(data_file=tmp_path / "portal.json", run_session_clock=False)
        manager = QuizManager.from_settings(settings)
        assert len(manager.repository.get_quizzes()) == 2
        assert (tmp_path / "portal.json").exists()
        assert await manager.remote_status() is False
        await manager.aclose()


class TestAttemptFlow:
    def test_open_attempt_reuses_active_engine(self, manager):
        manager.start_quiz("quiz_1", "Asha", "asha@example.com")
        engine = manager.open_attempt()
        engine.select_option(2)
        assert manager.open_attempt() is engine
        assert manager.active_attempt() is engine

    def test_restart_discards_engine_but_keeps_progress(self, manager):
        manager.start_quiz("quiz_1", "Asha", "asha@example.com")
        first = manager.open_attempt()
        first.select_option(2)
        manager.start_quiz("quiz_1", "Asha", "asha@example.com")
        assert first.phase is SessionPhase.CLOSED
        second = manager.open_attempt()
        assert second is not first
        assert second.resumed
        assert second.user_answers == {0: 2}

    @pytest.mark.asyncio
    async def test_submitted_engine_is_not_reopened(self, manager, repository):
        manager.start_quiz("quiz_1", "Asha", "asha@example.com")
        engine = manager.open_attempt()
        await manager.submit_attempt()
        assert manager.open_attempt() is engine

        restarted = QuizManager(repository, run_session_clock=False)
        with pytest.raises(NotFoundError):
            restarted.open_attempt()
        assert len(repository.get_attempts()) == 1

    def test_no_active_attempt(self, manager):
        with pytest.raises(NotFoundError):
            manager.active_attempt()
        with pytest.raises(NotFoundError):
            manager.current_results()

    @pytest.mark.asyncio
    async def test_submit_and_results(self, manager):
        manager.start_quiz("quiz_1", "Asha", "asha@example.com")
        manager.open_attempt()
        outcome = await manager.submit_attempt(selected_option=0)
        assert outcome.results.correct == 1
        view = manager.current_results()
        assert view.subject == "Maths"
        assert len(view.reviews) == 5

        rows = await manager.leaderboard("quiz_1")
        assert [row.email for row in rows] == ["asha@example.com"]

        manager.logout()
        with pytest.raises(NotFoundError):
            manager.current_results()

    @pytest.mark.asyncio
    async def test_leaderboard_merges_remote_rows(self, repository, quiz):
        repository.save_attempts([make_attempt("local_1", score=1), make_attempt("local_2", email="bo@example.com", score=2)])
        row = {
            "quizId": "quiz_1",
            "userName": "Asha",
            "email": "asha@example.com",
            "score": 5,
            "totalQuestions": 5,
            "percentage": 100,
            "timeTaken": "01:00",
            "attemptDate": "2025-10-18",
        }
        remote = make_remote(lambda request: json_response({"status": "success", "data": {"leaderboard": [row]}}))
        manager = QuizManager(repository, remote, run_session_clock=False)

        rows = await manager.leaderboard()
        assert [(r.email, r.score) for r in rows] == [("asha@example.com", 5), ("bo@example.com", 2)]
        standings = await manager.overall_standings()
        assert standings[0].total_score == 5
        # Leaderboard reads never rewrite the local collection.
        assert [a.attempt_id for a in repository.get_attempts()] == ["local_1", "local_2"]
        await manager.aclose()
