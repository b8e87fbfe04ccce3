"""Domain models for the quiz portal.

Every record converts to and from the camelCase dictionaries kept in the
persistence store and exchanged with the remote backend. ``from_dict`` is
lenient about types because spreadsheet-backed rows often come back with
numbers as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

from quiz_portal.constants.quiz_constants import DEFAULT_TIME_ALLOCATION_SECONDS


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True)
class Question:
    """Multiple-choice question with exactly four options."""

    question: str
    options: list[str]
    correct_answer: int
    explanation: str
    time_allocation: int | None = None

    @property
    def allocated_seconds(self) -> int:
        if self.time_allocation:
            return self.time_allocation
        return DEFAULT_TIME_ALLOCATION_SECONDS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }
        if self.time_allocation is not None:
            data["timeAllocation"] = self.time_allocation
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        allocation = data.get("timeAllocation")
        return cls(
            question=_as_str(data.get("question")),
            options=[_as_str(option) for option in data.get("options") or []],
            correct_answer=_as_int(data.get("correctAnswer"), default=-1),
            explanation=_as_str(data.get("explanation")),
            time_allocation=_as_int(allocation) if allocation not in (None, "") else None,
        )


@dataclass(slots=True)
class Quiz:
    """A question set with its schedule metadata and time budget."""

    quiz_id: str
    date: str
    subject: str
    questions: list[Question]
    total_questions: int
    time_limit: int
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "quizId": self.quiz_id,
            "date": self.date,
            "subject": self.subject,
            "questions": [question.to_dict() for question in self.questions],
            "totalQuestions": self.total_questions,
            "timeLimit": self.time_limit,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Quiz:
        raw_questions = data.get("questions")
        if raw_questions is None and data.get("questionsJson"):
            # Remote rows carry the question list as a serialized string.
            try:
                raw_questions = json.loads(data["questionsJson"])
            except (TypeError, ValueError):
                raw_questions = []
        questions = [Question.from_dict(item) for item in raw_questions or []]
        return cls(
            quiz_id=_as_str(data.get("quizId")),
            date=_as_str(data.get("date")),
            subject=_as_str(data.get("subject")),
            questions=questions,
            total_questions=_as_int(data.get("totalQuestions"), default=len(questions)),
            time_limit=_as_int(
                data.get("timeLimit"),
                default=sum(question.allocated_seconds for question in questions),
            ),
            created_at=_as_str(data.get("createdAt")),
        )


@dataclass(slots=True)
class Attempt:
    """One user's completed run through a quiz."""

    attempt_id: str
    quiz_id: str
    user_name: str
    email: str
    score: int
    total: int
    accuracy: float
    time: str
    date: str
    timestamp: str

    @property
    def natural_key(self) -> tuple[str, str, str]:
        return (self.email, self.quiz_id, self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "attemptId": self.attempt_id,
            "quizId": self.quiz_id,
            "userName": self.user_name,
            "email": self.email,
            "score": self.score,
            "total": self.total,
            "accuracy": self.accuracy,
            "time": self.time,
            "date": self.date,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attempt:
        """Build an attempt from a stored record or a remote leaderboard row.

        Remote rows use the submission field names (``percentage``,
        ``timeTaken``, ``attemptDate``) and may lack an attempt id.
        """
        quiz_id = _as_str(data.get("quizId"))
        email = _as_str(data.get("email"))
        date = _as_str(data.get("date") or data.get("attemptDate"))
        attempt_id = _as_str(data.get("attemptId")) or f"remote_{quiz_id}_{email}_{date}"
        accuracy = data.get("accuracy")
        if accuracy is None:
            accuracy = data.get("percentage")
        return cls(
            attempt_id=attempt_id,
            quiz_id=quiz_id,
            user_name=_as_str(data.get("userName")),
            email=email,
            score=_as_int(data.get("score")),
            total=_as_int(data.get("total") or data.get("totalQuestions")),
            accuracy=_as_float(accuracy),
            time=_as_str(data.get("time") or data.get("timeTaken")),
            date=date,
            timestamp=_as_str(data.get("timestamp")),
        )


@dataclass(slots=True)
class UserSession:
    """Binding of a user identity to the quiz currently being taken."""

    user_name: str
    email: str
    current_quiz_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "userName": self.user_name,
            "email": self.email,
            "currentQuizId": self.current_quiz_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserSession:
        return cls(
            user_name=_as_str(data.get("userName")),
            email=_as_str(data.get("email")),
            current_quiz_id=data.get("currentQuizId") or None,
        )


@dataclass(slots=True)
class QuizState:
    """Resumable snapshot of an in-progress attempt."""

    quiz_id: str
    current_question_index: int = 0
    user_answers: dict[int, int] = field(default_factory=dict)
    marked_for_review: set[int] = field(default_factory=set)
    time_remaining: int = 0

    def to_dict(self) -> dict[str, Any]:
        # "currentQuestion" is the name older saved snapshots use.
        return {
            "quizId": self.quiz_id,
            "currentQuestion": self.current_question_index,
            "userAnswers": {str(index): option for index, option in self.user_answers.items()},
            "markedForReview": sorted(self.marked_for_review),
            "timeRemaining": self.time_remaining,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuizState:
        index = data.get("currentQuestion", data.get("currentQuestionIndex"))
        answers = {
            _as_int(key): _as_int(value)
            for key, value in (data.get("userAnswers") or {}).items()
        }
        return cls(
            quiz_id=_as_str(data.get("quizId")),
            current_question_index=_as_int(index),
            user_answers=answers,
            marked_for_review={_as_int(item) for item in data.get("markedForReview") or []},
            time_remaining=_as_int(data.get("timeRemaining")),
        )


@dataclass(slots=True)
class QuizResults:
    """Scoring summary of the attempt that was just submitted."""

    quiz_id: str
    total: int
    correct: int
    incorrect: int
    unattempted: int
    score: int
    percentage: float
    time_taken: str
    answers: dict[int, int]
    date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "quizId": self.quiz_id,
            "total": self.total,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "unattempted": self.unattempted,
            "score": self.score,
            "percentage": self.percentage,
            "timeTaken": self.time_taken,
            "answers": {str(index): option for index, option in self.answers.items()},
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuizResults:
        return cls(
            quiz_id=_as_str(data.get("quizId")),
            total=_as_int(data.get("total")),
            correct=_as_int(data.get("correct")),
            incorrect=_as_int(data.get("incorrect")),
            unattempted=_as_int(data.get("unattempted")),
            score=_as_int(data.get("score")),
            percentage=_as_float(data.get("percentage")),
            time_taken=_as_str(data.get("timeTaken")),
            answers={
                _as_int(key): _as_int(value)
                for key, value in (data.get("answers") or {}).items()
            },
            date=_as_str(data.get("date")),
        )
