"""Leaderboard standings and result views computed from stored attempts."""

from __future__ import annotations

from dataclasses import dataclass, field

from quiz_portal.constants.quiz_constants import LEADERBOARD_ALL_QUIZZES, OPTION_LETTERS
from quiz_portal.core.markdown_math_renderer import MarkdownMathRenderer, renderer as default_renderer
from quiz_portal.core.models import Attempt, Quiz, QuizResults


@dataclass(slots=True)
class ScoreEntry:
    """Mutable per-user aggregate used while building overall standings."""

    email: str
    user_name: str
    attempts: int = 0
    total_score: int = 0
    total_questions: int = 0
    accuracy_sum: float = 0.0
    best_accuracy: float = 0.0


@dataclass(slots=True)
class LeaderboardRow:
    """Immutable snapshot of one ranked attempt."""

    rank: int
    attempt_id: str
    quiz_id: str
    subject: str
    user_name: str
    email: str
    score: int
    total: int
    accuracy: float
    time: str
    date: str


@dataclass(slots=True)
class StandingRow:
    """Immutable snapshot of one user's overall standing."""

    rank: int
    email: str
    user_name: str
    attempts: int
    total_score: int
    total_questions: int
    average_accuracy: float
    best_accuracy: float


@dataclass(slots=True)
class QuestionReview:
    index: int
    number: int
    question_html: str
    explanation_html: str
    options: list[str]
    selected_option: int | None
    correct_option: int
    status: str

    @property
    def selected_letter(self) -> str | None:
        if self.selected_option is None or not 0 <= self.selected_option < len(OPTION_LETTERS):
            return None
        return OPTION_LETTERS[self.selected_option]

    @property
    def correct_letter(self) -> str:
        return OPTION_LETTERS[self.correct_option] if 0 <= self.correct_option < len(OPTION_LETTERS) else "?"


@dataclass(slots=True)
class ResultsView:
    results: QuizResults
    subject: str
    reviews: list[QuestionReview] = field(default_factory=list)


def duration_to_seconds(value: str) -> int:
    """Parse ``MM:SS`` (or ``HH:MM:SS``); unparseable values sort last."""
    try:
        parts = [int(part) for part in value.split(":")]
    except (AttributeError, ValueError):
        return 10**9
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds


class Scoreboard:
    """Ranks attempts; reads only, never mutates the collections it is given."""

    def __init__(self, attempts: list[Attempt], quizzes: list[Quiz]) -> None:
        self._attempts = list(attempts)
        self._subjects = {quiz.quiz_id: quiz.subject for quiz in quizzes}

    def ranked_attempts(self, quiz_id: str = LEADERBOARD_ALL_QUIZZES, limit: int | None = None) -> list[LeaderboardRow]:
        """Return attempts ordered by score, accuracy, time taken, then submission time."""
        selected = [
            attempt
            for attempt in self._attempts
            if quiz_id in (None, "", LEADERBOARD_ALL_QUIZZES) or attempt.quiz_id == quiz_id
        ]
        ordered = sorted(
            selected,
            key=lambda a: (-a.score, -a.accuracy, duration_to_seconds(a.time), a.timestamp),
        )
        if limit is not None:
            ordered = ordered[:limit]
        return [
            LeaderboardRow(
                rank=position,
                attempt_id=attempt.attempt_id,
                quiz_id=attempt.quiz_id,
                subject=self._subjects.get(attempt.quiz_id, "Unknown"),
                user_name=attempt.user_name,
                email=attempt.email,
                score=attempt.score,
                total=attempt.total,
                accuracy=round(attempt.accuracy, 2),
                time=attempt.time,
                date=attempt.date,
            )
            for position, attempt in enumerate(ordered, start=1)
        ]

    def overall_standings(self, limit: int | None = None) -> list[StandingRow]:
        """Aggregate every attempt per email address."""
        entries: dict[str, ScoreEntry] = {}
        for attempt in self._attempts:
            entry = entries.get(attempt.email)
            if entry is None:
                entry = ScoreEntry(email=attempt.email, user_name=attempt.user_name)
                entries[attempt.email] = entry
            entry.user_name = attempt.user_name or entry.user_name
            entry.attempts += 1
            entry.total_score += attempt.score
            entry.total_questions += attempt.total
            entry.accuracy_sum += attempt.accuracy
            entry.best_accuracy = max(entry.best_accuracy, attempt.accuracy)

        sorted_entries = sorted(
            entries.values(),
            key=lambda e: (-e.total_score, -(e.accuracy_sum / e.attempts), e.email),
        )
        if limit is not None:
            sorted_entries = sorted_entries[:limit]
        return [
            StandingRow(
                rank=position,
                email=entry.email,
                user_name=entry.user_name,
                attempts=entry.attempts,
                total_score=entry.total_score,
                total_questions=entry.total_questions,
                average_accuracy=round(entry.accuracy_sum / entry.attempts, 2),
                best_accuracy=round(entry.best_accuracy, 2),
            )
            for position, entry in enumerate(sorted_entries, start=1)
        ]


def build_results_view(
    results: QuizResults,
    quiz: Quiz | None,
    markdown_renderer: MarkdownMathRenderer | None = None,
) -> ResultsView:
    """Combine a results snapshot with its quiz into a per-question review."""
    if quiz is None:
        return ResultsView(results=results, subject="Unknown")

    markdown = markdown_renderer or default_renderer
    reviews: list[QuestionReview] = []
    for index, question in enumerate(quiz.questions):
        selected = results.answers.get(index)
        if selected is None:
            status = "unattempted"
        elif selected == question.correct_answer:
            status = "correct"
        else:
            status = "incorrect"
        reviews.append(
            QuestionReview(
                index=index,
                number=index + 1,
                question_html=markdown.render_fragment(question.question),
                explanation_html=markdown.render_fragment(question.explanation),
                options=list(question.options),
                selected_option=selected,
                correct_option=question.correct_answer,
                status=status,
            )
        )
    return ResultsView(results=results, subject=quiz.subject, reviews=reviews)
