"""Tests for the dashboard catalog, the scoreboard and the admin operations."""

import json

import httpx
import pytest
from conftest import json_response, make_attempt, make_quiz, make_remote

from quiz_portal.core.errors import (
    DuplicateAttemptError,
    DuplicateAttemptWarning,
    NetworkError,
    NotFoundError,
    QuizValidationError,
)
from quiz_portal.core.models import QuizResults
from quiz_portal.core.services.quiz_admin import CreationStatus, QuizAdmin
from quiz_portal.core.services.quiz_catalog import CompletionStatus, QuizCatalog, validate_user_details
from quiz_portal.core.services.scoreboard import Scoreboard, build_results_view, duration_to_seconds
from quiz_portal.core.services.sync_service import SyncService
from quiz_portal.utils.settings import DuplicateAttemptPolicy

QUESTION = {
    "question": "Pick **beta**",
    "options": ["alpha", "beta", "gamma", "delta"],
    "correctAnswer": 1,
    "explanation": "It says beta.",
}


@pytest.fixture
def seeded(repository):
    repository.save_quizzes(
        [
            make_quiz("quiz_1", date="2025-10-18", subject="Maths"),
            make_quiz("quiz_2", date="2025-10-19", subject="English", count=3),
            make_quiz("quiz_3", date="2025-10-18", subject="English", count=2),
        ]
    )
    repository.save_attempts([make_attempt("attempt_1", quiz_id="quiz_1", score=4)])
    return repository


class TestUserDetails:
    def test_valid_details_are_trimmed(self):
        assert validate_user_details("  Asha ", " asha@example.com ") == ("Asha", "asha@example.com")

    @pytest.mark.parametrize(
        "name, email, message",
        [
            ("Al", "al@example.com", "at least 3"),
            ("Asha", "asha@example", "valid email"),
            ("Asha", "asha example@x.com", "valid email"),
        ],
    )
    def test_rejections(self, name, email, message):
        with pytest.raises(QuizValidationError, match=message):
            validate_user_details(name, email)


class TestDashboard:
    def test_entries_carry_status_and_labels(self, seeded):
        entries = QuizCatalog(seeded).dashboard(email="asha@example.com")
        first = entries[0]
        assert first.status is CompletionStatus.COMPLETED
        assert first.score_label == "Score: 4/5"
        assert first.action_label == "Retake Quiz"
        assert first.duration_minutes == 5
        assert first.display_date == "18 October 2025"
        assert entries[1].status is CompletionStatus.PENDING
        assert entries[1].action_label == "Start Quiz"
        assert entries[1].score_label == ""

    def test_filters_only_hide_entries(self, seeded, store):
        raw_before = store.get_raw("quizzes")
        catalog = QuizCatalog(seeded)
        assert [e.quiz_id for e in catalog.dashboard(email="asha@example.com", subject="english")] == [
            "quiz_2",
            "quiz_3",
        ]
        assert [
            e.quiz_id for e in catalog.dashboard(email="asha@example.com", status=CompletionStatus.COMPLETED)
        ] == ["quiz_1"]
        assert store.get_raw("quizzes") == raw_before

    def test_email_defaults_to_session(self, seeded):
        catalog = QuizCatalog(seeded)
        assert all(e.status is CompletionStatus.PENDING for e in catalog.dashboard())
        catalog.start_quiz("quiz_2", "Asha", "asha@example.com")
        assert catalog.dashboard()[0].status is CompletionStatus.COMPLETED

    def test_dates_and_subjects(self, seeded):
        catalog = QuizCatalog(seeded)
        assert catalog.available_dates() == ["2025-10-18", "2025-10-19"]
        assert catalog.subjects() == ["English", "Maths"]


class TestStartQuiz:
    def test_start_saves_session(self, seeded):
        session = QuizCatalog(seeded).start_quiz("quiz_2", "Asha", "asha@example.com")
        assert session.current_quiz_id == "quiz_2"
        assert seeded.get_session() == session

    def test_start_by_date_and_subject(self, seeded):
        session = QuizCatalog(seeded).start_scheduled_quiz("2025-10-18", "English", "Asha", "asha@example.com")
        assert session.current_quiz_id == "quiz_3"
        with pytest.raises(NotFoundError, match="selected date and subject"):
            QuizCatalog(seeded).start_scheduled_quiz("2025-10-20", "English", "Asha", "asha@example.com")

    def test_unknown_quiz(self, seeded):
        with pytest.raises(NotFoundError):
            QuizCatalog(seeded).start_quiz("quiz_404", "Asha", "asha@example.com")

    def test_confirm_policy_requires_confirmation(self, seeded):
        catalog = QuizCatalog(seeded, DuplicateAttemptPolicy.CONFIRM)
        with pytest.raises(DuplicateAttemptWarning) as excinfo:
            catalog.start_quiz("quiz_1", "Asha", "asha@example.com")
        assert not isinstance(excinfo.value, DuplicateAttemptError)
        assert "score 4/5" in str(excinfo.value)
        assert seeded.get_session() is None
        assert catalog.start_quiz("quiz_1", "Asha", "asha@example.com", confirm_retake=True)

    def test_reject_policy(self, seeded):
        catalog = QuizCatalog(seeded, DuplicateAttemptPolicy.REJECT)
        with pytest.raises(DuplicateAttemptError):
            catalog.start_quiz("quiz_1", "Asha", "asha@example.com", confirm_retake=True)

    def test_allow_policy(self, seeded):
        catalog = QuizCatalog(seeded, DuplicateAttemptPolicy.ALLOW)
        assert catalog.start_quiz("quiz_1", "Asha", "asha@example.com").current_quiz_id == "quiz_1"

    def test_logout_clears_session_and_results(self, seeded, store):
        catalog = QuizCatalog(seeded)
        catalog.start_quiz("quiz_2", "Asha", "asha@example.com")
        seeded.save_results(QuizResults("quiz_2", 3, 1, 1, 1, 1, 33.3, "00:40", {0: 0, 1: 0}, "2025-10-19"))
        catalog.logout()
        assert store.get("userSession") is None
        assert store.get("currentQuizResults") is None
        assert store.get("quizzes") is not None


class TestScoreboard:
    def test_ordering(self):
        attempts = [
            make_attempt("slow", email="a@example.com", score=4, time="03:00"),
            make_attempt("fast", email="b@example.com", score=4, time="02:10"),
            make_attempt("best", email="c@example.com", score=5, time="04:00"),
            make_attempt("other_quiz", quiz_id="quiz_2", email="d@example.com", score=5),
        ]
        board = Scoreboard(attempts, [make_quiz("quiz_1", subject="Maths")])
        rows = board.ranked_attempts("quiz_1")
        assert [row.attempt_id for row in rows] == ["best", "fast", "slow"]
        assert [row.rank for row in rows] == [1, 2, 3]
        assert rows[0].subject == "Maths"
        assert len(board.ranked_attempts()) == 4
        assert board.ranked_attempts(limit=2)[1].attempt_id == "best"

    def test_overall_standings(self):
        attempts = [
            make_attempt("a1", email="a@example.com", score=2),
            make_attempt("a2", quiz_id="quiz_2", email="a@example.com", score=4),
            make_attempt("b1", email="b@example.com", score=5),
        ]
        rows = Scoreboard(attempts, []).overall_standings()
        assert [(row.email, row.total_score, row.attempts) for row in rows] == [
            ("a@example.com", 6, 2),
            ("b@example.com", 5, 1),
        ]
        assert rows[0].average_accuracy == 60.0
        assert rows[0].best_accuracy == 80.0

    def test_duration_parsing(self):
        assert duration_to_seconds("02:05") == 125
        assert duration_to_seconds("1:00:00") == 3600
        assert duration_to_seconds("soon") > duration_to_seconds("999:00")

    def test_results_view(self):
        quiz = make_quiz(count=3)
        results = QuizResults("quiz_1", 3, 1, 1, 1, 1, 33.33, "00:50", {0: 0, 1: 3}, "2025-10-18")
        view = build_results_view(results, quiz)
        assert view.subject == "Maths"
        assert [review.status for review in view.reviews] == ["correct", "incorrect", "unattempted"]
        assert view.reviews[1].selected_letter == "D"
        assert view.reviews[1].correct_letter == "B"
        assert view.reviews[2].selected_letter is None

    def test_results_view_without_quiz(self):
        results = QuizResults("gone", 1, 0, 0, 1, 0, 0.0, "00:10", {}, "2025-10-18")
        assert build_results_view(results, None).subject == "Unknown"


class TestQuizAdmin:
    def test_validate(self, repository):
        summary = QuizAdmin(repository, None).validate_questions_json(json.dumps([QUESTION] * 3))
        assert (summary.question_count, summary.total_minutes) == (3, 3)

    @pytest.mark.asyncio
    async def test_invalid_payload_persists_nothing(self, repository, store):
        payload = json.dumps([QUESTION, QUESTION, {**QUESTION, "options": ["a", "b", "c"]}])
        with pytest.raises(QuizValidationError, match="Question 3"):
            await QuizAdmin(repository, None).create_quiz("2025-10-20", "Maths", payload)
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_create_local_only_when_remote_fails(self, repository):
        admin = QuizAdmin(repository, make_remote(lambda request: httpx.Response(500)))
        outcome = await admin.create_quiz("2025-10-20", "Maths", json.dumps([QUESTION]))
        assert outcome.status is CreationStatus.LOCAL_ONLY
        assert repository.get_quiz(outcome.quiz.quiz_id) == outcome.quiz

    @pytest.mark.asyncio
    async def test_create_local_only_without_remote(self, repository):
        outcome = await QuizAdmin(repository, None).create_quiz("2025-10-20", "Maths", json.dumps([QUESTION]))
        assert outcome.status is CreationStatus.LOCAL_ONLY
        assert "not connected" in outcome.message

    @pytest.mark.asyncio
    async def test_create_synced(self, repository):
        remote = make_remote(lambda request: json_response({"status": "success", "data": {}}))
        outcome = await QuizAdmin(repository, remote).create_quiz("2025-10-20", "Maths", json.dumps([QUESTION] * 2))
        assert outcome.status is CreationStatus.SYNCED
        assert outcome.quiz.time_limit == 120

    def test_listings_and_stats(self, seeded):
        admin = QuizAdmin(seeded, None)
        assert [(row.quiz.quiz_id, row.attempt_count) for row in admin.list_quizzes()] == [
            ("quiz_1", 1),
            ("quiz_2", 0),
            ("quiz_3", 0),
        ]
        assert admin.list_attempts()[0].subject == "Maths"
        stats = admin.stats(today="2025-10-18")
        assert (stats.total_quizzes, stats.total_attempts, stats.todays_quizzes, stats.total_questions) == (
            3,
            1,
            2,
            10,
        )

    def test_deletes(self, seeded):
        admin = QuizAdmin(seeded, None)
        admin.delete_quiz("quiz_2")
        admin.delete_attempt("attempt_1")
        with pytest.raises(NotFoundError):
            admin.delete_quiz("quiz_2")
        with pytest.raises(NotFoundError):
            admin.delete_attempt("attempt_1")
        with pytest.raises(NotFoundError):
            admin.quiz_details("quiz_2")
        admin.delete_all_quizzes()
        assert seeded.get_quizzes() == []

    def test_export_and_backup(self, seeded, store):
        admin = QuizAdmin(seeded, None)
        document = admin.export_all_data()
        assert len(document["quizzes"]) == 3
        assert len(document["attempts"]) == 1
        assert document["exportedAt"].endswith("Z")
        key = admin.backup_data()
        assert store.get(key)["quizzes"] == store.get_raw("quizzes")
        admin.clear_all_data()
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_sync_requires_remote(self, repository):
        with pytest.raises(NetworkError):
            await QuizAdmin(repository, None).sync_with_remote()

    @pytest.mark.asyncio
    async def test_sync_with_remote(self, repository):
        def handler(request):
            if request.url.params["action"] == "getQuizzes":
                return json_response({"status": "success", "data": {"quizzes": [make_quiz("quiz_r").to_dict()]}})
            return json_response({"status": "success", "data": {"leaderboard": []}})

        remote = make_remote(handler)
        report = await QuizAdmin(repository, remote, SyncService(repository, remote)).sync_with_remote()
        assert report.quizzes_pulled == 1
        assert report.attempts_pulled == 0
        assert [quiz.quiz_id for quiz in repository.get_quizzes()] == ["quiz_r"]

    def test_template_is_valid(self, repository):
        admin = QuizAdmin(repository, None)
        assert admin.validate_questions_json(admin.question_template()).question_count == 2
