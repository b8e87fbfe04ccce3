"""Shared fixtures: an in-memory repository seeded with a small quiz."""

import json

import httpx
import pytest

from quiz_portal.core.models import Attempt, Question, Quiz, UserSession
from quiz_portal.core.services.local_store import InMemoryStore
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.core.services.remote_client import RemoteSyncClient

REMOTE_URL = "https://backend.example.com/exec"


def make_question(number, correct_answer=0, time_allocation=None):
    return Question(
        question=f"Question text {number}",
        options=["alpha", "beta", "gamma", "delta"],
        correct_answer=correct_answer,
        explanation=f"Explanation {number}",
        time_allocation=time_allocation,
    )


def make_quiz(quiz_id="quiz_1", count=5, date="2025-10-18", subject="Maths", time_limit=None):
    questions = [make_question(number, correct_answer=number % 4) for number in range(count)]
    return Quiz(
        quiz_id=quiz_id,
        date=date,
        subject=subject,
        questions=questions,
        total_questions=count,
        time_limit=time_limit if time_limit is not None else count * 60,
        created_at="2025-10-01T08:00:00.000Z",
    )


def make_attempt(attempt_id, quiz_id="quiz_1", email="asha@example.com", score=3, date="2025-10-18", time="02:30"):
    return Attempt(
        attempt_id=attempt_id,
        quiz_id=quiz_id,
        user_name=email.split("@")[0].title(),
        email=email,
        score=score,
        total=5,
        accuracy=score / 5 * 100,
        time=time,
        date=date,
        timestamp=f"{date}T10:00:00.000Z",
    )


def json_response(payload, status_code=200):
    return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})


def make_remote(handler, base_url=REMOTE_URL):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteSyncClient(base_url, client=client)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def repository(store):
    return QuizRepository(store)


@pytest.fixture
def quiz(repository):
    quiz = make_quiz()
    repository.save_quizzes([quiz])
    return quiz


@pytest.fixture
def session(repository, quiz):
    session = UserSession(user_name="Asha", email="asha@example.com", current_quiz_id=quiz.quiz_id)
    repository.save_session(session)
    return session
