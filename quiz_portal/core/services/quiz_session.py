"""State machine driving one quiz attempt from load to submission.

Lifecycle: ``LOADING`` → ``ACTIVE`` → ``SUBMITTING`` → ``SUBMITTED``. A
session left through :meth:`QuizSessionEngine.exit` goes to ``CLOSED``
after its snapshot is saved, and can be resumed by a new engine.

While active, two independent asyncio tasks run: a countdown that calls
:meth:`QuizSessionEngine.tick` every second and an autosave that persists
the snapshot every five seconds. Both are cancelled as soon as submission
starts. The engine knows nothing about the UI; a presentation layer calls
the navigation/answer methods and renders the view objects.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable

from quiz_portal.constants.quiz_constants import (
    AUTOSAVE_INTERVAL_SECONDS,
    OPTION_LETTERS,
    OPTIONS_PER_QUESTION,
    TICK_INTERVAL_SECONDS,
    TIME_CAUTION_THRESHOLD_SECONDS,
    TIME_WARNING_THRESHOLD_SECONDS,
)
from quiz_portal.core.errors import NetworkError, NotFoundError, SessionStateError
from quiz_portal.core.markdown_math_renderer import MarkdownMathRenderer, renderer as default_renderer
from quiz_portal.core.models import Attempt, Quiz, QuizResults, QuizState, UserSession
from quiz_portal.core.services.quiz_repository import QuizRepository
from quiz_portal.core.services.remote_client import AttemptSubmission, RemoteSyncClient
from quiz_portal.utils.formatting import format_duration, iso_date, iso_timestamp
from quiz_portal.utils.ids import new_attempt_id

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    CLOSED = "closed"


class SlotStatus(str, Enum):
    """Display class of a question slot in the palette."""

    CURRENT = "current"
    MARKED = "marked"
    ANSWERED = "answered"
    NOT_VISITED = "not-visited"


@dataclass(slots=True)
class ScoreBreakdown:
    total: int
    correct: int
    incorrect: int
    unattempted: int

    @property
    def score(self) -> int:
        return self.correct

    @property
    def accuracy(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.correct / self.total * 100


def score_answers(quiz: Quiz, user_answers: dict[int, int]) -> ScoreBreakdown:
    """Count correct, incorrect and unattempted questions for a set of answers."""
    answered = {index: option for index, option in user_answers.items() if 0 <= index < quiz.total_questions}
    correct = sum(
        1
        for index, question in enumerate(quiz.questions)
        if answered.get(index) == question.correct_answer
    )
    return ScoreBreakdown(
        total=quiz.total_questions,
        correct=correct,
        incorrect=len(answered) - correct,
        unattempted=quiz.total_questions - len(answered),
    )


@dataclass(slots=True)
class OptionView:
    index: int
    letter: str
    text: str
    html: str
    selected: bool


@dataclass(slots=True)
class QuestionView:
    index: int
    number: int
    total: int
    text: str
    html: str
    options: list[OptionView]
    selected_option: int | None
    marked: bool
    can_go_previous: bool
    can_go_next: bool


@dataclass(slots=True)
class PaletteSlot:
    index: int
    number: int
    status: SlotStatus
    current: bool
    answered: bool
    marked: bool


@dataclass(slots=True)
class TimerView:
    remaining_seconds: int
    display: str
    band: str


@dataclass(slots=True)
class SubmitSummary:
    answered: int
    marked: int
    not_visited: int


@dataclass(slots=True)
class SubmissionOutcome:
    attempt: Attempt
    results: QuizResults
    remote_synced: bool
    remote_message: str
    auto_submitted: bool = False


class QuizSessionEngine:
    """Owns the state of one attempt: answers, marks, position and time."""

    def __init__(
        self,
        repository: QuizRepository,
        remote_client: RemoteSyncClient | None = None,
        *,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        autosave_interval: float = AUTOSAVE_INTERVAL_SECONDS,
        warning_threshold: int = TIME_WARNING_THRESHOLD_SECONDS,
        on_time_warning: Callable[[int], None] | None = None,
        on_auto_submitted: Callable[[SubmissionOutcome], None] | None = None,
        markdown_renderer: MarkdownMathRenderer | None = None,
    ) -> None:
        self._repository = repository
        self._remote = remote_client
        self._tick_interval = tick_interval
        self._autosave_interval = autosave_interval
        self._warning_threshold = warning_threshold
        self._on_time_warning = on_time_warning
        self._on_auto_submitted = on_auto_submitted
        self._renderer = markdown_renderer or default_renderer

        self._phase = SessionPhase.LOADING
        self._session: UserSession | None = None
        self._quiz: Quiz | None = None
        self._current_index: int = 0
        self._user_answers: dict[int, int] = {}
        self._marked: set[int] = set()
        self._time_remaining: int = 0
        self._warning_issued = False
        self._time_expired = False
        self._resumed = False
        self._outcome: SubmissionOutcome | None = None
        self._tasks: list[asyncio.Task] = []

    # --- Lifecycle ---

    def load(self) -> QuizState:
        """Resolve the active session and quiz, then resume or start fresh."""
        if self._phase is not SessionPhase.LOADING:
            raise SessionStateError("Session has already been loaded.")

        session = self._repository.get_session()
        if session is None or not session.current_quiz_id:
            raise NotFoundError("No quiz selected. Redirecting to home.")
        quiz = self._repository.get_quiz(session.current_quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz data not found. Redirecting to home.")

        self._session = session
        self._quiz = quiz
        self._repository.save_current_quiz(quiz)

        saved = self._repository.load_state(quiz.quiz_id)
        if saved is not None and saved.quiz_id == quiz.quiz_id:
            self._current_index = min(max(saved.current_question_index, 0), max(quiz.total_questions - 1, 0))
            self._user_answers = {
                index: option
                for index, option in saved.user_answers.items()
                if 0 <= index < quiz.total_questions and 0 <= option < OPTIONS_PER_QUESTION
            }
            self._marked = {index for index in saved.marked_for_review if 0 <= index < quiz.total_questions}
            self._time_remaining = saved.time_remaining
            self._resumed = True
            logger.info(
                "Resumed quiz %s at question %d with %ds left",
                quiz.quiz_id,
                self._current_index + 1,
                self._time_remaining,
            )
        else:
            self._current_index = 0
            self._user_answers = {}
            self._marked = set()
            self._time_remaining = quiz.time_limit
            logger.info("Started quiz %s for %s", quiz.quiz_id, session.email)

        self._phase = SessionPhase.ACTIVE
        self.save_state()
        return self.snapshot()

    def start_clock(self) -> None:
        """Start the countdown and autosave tasks on the running event loop."""
        self._require_active()
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run_countdown(), name="quiz-countdown"),
            asyncio.create_task(self._run_autosave(), name="quiz-autosave"),
        ]

    def stop_clock(self) -> None:
        """Cancel both periodic tasks immediately; in-flight ticks are not awaited."""
        current = asyncio.current_task() if _loop_running() else None
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._tasks = []

    @property
    def clock_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def needs_exit_warning(self) -> bool:
        """True while leaving would lose progress made since the last autosave."""
        return self._phase is SessionPhase.ACTIVE

    def exit(self) -> None:
        """Tear the session down when the user navigates away."""
        if self._phase is SessionPhase.ACTIVE:
            self.save_state()
            logger.info("Session for quiz %s closed; progress saved", self.quiz.quiz_id)
        self.stop_clock()
        if self._phase in (SessionPhase.ACTIVE, SessionPhase.LOADING):
            self._phase = SessionPhase.CLOSED

    # --- Timer ---

    def tick(self) -> bool:
        """Advance the countdown by one second.

        Returns True exactly once: on the tick that runs the time out. The
        caller is expected to auto-submit when it sees True.
        """
        if self._phase is not SessionPhase.ACTIVE or self._time_expired:
            return False
        previous = self._time_remaining
        self._time_remaining = max(previous - 1, 0)

        if not self._warning_issued and previous > self._warning_threshold >= self._time_remaining:
            self._warning_issued = True
            logger.info("Time warning: %ds left on quiz %s", self._time_remaining, self.quiz.quiz_id)
            if self._on_time_warning is not None:
                self._on_time_warning(self._time_remaining)

        if self._time_remaining <= 0:
            self._time_expired = True
            return True
        return False

    async def _run_countdown(self) -> None:
        while self._phase is SessionPhase.ACTIVE:
            await asyncio.sleep(self._tick_interval)
            if self.tick():
                logger.info("Time is up on quiz %s; submitting automatically", self.quiz.quiz_id)
                await self._auto_submit()
                return

    async def _run_autosave(self) -> None:
        while self._phase is SessionPhase.ACTIVE:
            await asyncio.sleep(self._autosave_interval)
            if self._phase is SessionPhase.ACTIVE:
                self.save_state()

    async def _auto_submit(self) -> None:
        try:
            outcome = await self.submit(auto=True)
        except Exception:
            logger.exception("Automatic submission of quiz %s failed", self.quiz.quiz_id)
            return
        if outcome is not None and self._on_auto_submitted is not None:
            self._on_auto_submitted(outcome)

    # --- Navigation and answers ---

    def go_to(self, index: int) -> bool:
        """Jump to a question; indices outside the quiz are ignored."""
        self._require_active()
        if not 0 <= index < self.quiz.total_questions:
            return False
        self._current_index = index
        return True

    def next_question(self) -> bool:
        return self.go_to(self._current_index + 1)

    def previous_question(self) -> bool:
        return self.go_to(self._current_index - 1)

    def select_option(self, option_index: int) -> None:
        """Record the answer for the current question, replacing any earlier one."""
        self._require_active()
        self._record_answer(option_index)

    def clear_response(self) -> None:
        self._require_active()
        self._user_answers.pop(self._current_index, None)

    def toggle_mark(self) -> bool:
        """Flip the review mark on the current question and return the new state."""
        self._require_active()
        if self._current_index in self._marked:
            self._marked.discard(self._current_index)
            return False
        self._marked.add(self._current_index)
        return True

    def save_and_next(self, selected_option: int | None = None) -> bool:
        self._require_active()
        if selected_option is not None:
            self._record_answer(selected_option)
        return self.next_question()

    def _record_answer(self, option_index: int) -> None:
        if not 0 <= option_index < OPTIONS_PER_QUESTION:
            raise ValueError(f"Option index must be between 0 and {OPTIONS_PER_QUESTION - 1}.")
        self._user_answers[self._current_index] = option_index

    # --- Persistence ---

    def snapshot(self) -> QuizState:
        return QuizState(
            quiz_id=self.quiz.quiz_id,
            current_question_index=self._current_index,
            user_answers=dict(self._user_answers),
            marked_for_review=set(self._marked),
            time_remaining=self._time_remaining,
        )

    def save_state(self) -> None:
        self._repository.save_state(self.snapshot())
        logger.debug("Autosaved quiz %s (%ds left)", self.quiz.quiz_id, self._time_remaining)

    # --- Submission ---

    async def submit(self, selected_option: int | None = None, *, auto: bool = False) -> SubmissionOutcome | None:
        """Score the attempt, store it locally, then try the remote backend.

        A call made while another submission is in flight returns None. Once
        submitted, further calls return the original outcome.
        """
        if self._phase is SessionPhase.SUBMITTING:
            logger.info("Submission already in progress for quiz %s", self.quiz.quiz_id)
            return None
        if self._phase is SessionPhase.SUBMITTED:
            return self._outcome
        self._require_active()

        clock_was_running = self.clock_running
        self._phase = SessionPhase.SUBMITTING
        self.stop_clock()

        try:
            if selected_option is not None:
                self._record_answer(selected_option)
            results = self._build_results()
            attempt = self._build_attempt(results)
            self._repository.save_results(results)
            self._repository.append_attempt(attempt)
            # The attempt is final from here on; there is nothing to resume.
            self._repository.delete_state(self.quiz.quiz_id)
            # A new attempt must go back through the catalog's duplicate check.
            self._session = UserSession(user_name=self.user.user_name, email=self.user.email)
            self._repository.save_session(self._session)
        except Exception:
            self._phase = SessionPhase.ACTIVE
            # The next tick at zero has to try again.
            self._time_expired = False
            if clock_was_running:
                self.start_clock()
            raise

        remote_synced, remote_message = await self._send_to_remote(results)
        self._outcome = SubmissionOutcome(
            attempt=attempt,
            results=results,
            remote_synced=remote_synced,
            remote_message=remote_message,
            auto_submitted=auto,
        )
        self._phase = SessionPhase.SUBMITTED
        logger.info(
            "Quiz %s submitted by %s: %d/%d",
            self.quiz.quiz_id,
            attempt.email,
            attempt.score,
            attempt.total,
        )
        return self._outcome

    def _build_results(self) -> QuizResults:
        breakdown = score_answers(self.quiz, self._user_answers)
        return QuizResults(
            quiz_id=self.quiz.quiz_id,
            total=breakdown.total,
            correct=breakdown.correct,
            incorrect=breakdown.incorrect,
            unattempted=breakdown.unattempted,
            score=breakdown.score,
            percentage=breakdown.accuracy,
            time_taken=format_duration(self.quiz.time_limit - self._time_remaining),
            answers=dict(sorted(self._user_answers.items())),
            date=iso_date(),
        )

    def _build_attempt(self, results: QuizResults) -> Attempt:
        session = self._session
        assert session is not None
        return Attempt(
            attempt_id=new_attempt_id(),
            quiz_id=results.quiz_id,
            user_name=session.user_name,
            email=session.email,
            score=results.score,
            total=results.total,
            accuracy=results.percentage,
            time=results.time_taken,
            date=results.date,
            timestamp=iso_timestamp(),
        )

    async def _send_to_remote(self, results: QuizResults) -> tuple[bool, str]:
        if self._remote is None or not self._remote.is_configured:
            logger.warning("Remote backend not available; attempt saved locally only")
            return False, "Saved locally only: remote backend not configured."
        session = self._session
        assert session is not None
        submission = AttemptSubmission(
            quiz_id=results.quiz_id,
            user_name=session.user_name,
            email=session.email,
            answers=results.answers,
            score=results.score,
            percentage=results.percentage,
            time_taken=results.time_taken,
            attempt_date=results.date,
        )
        try:
            await self._remote.submit_attempt(submission)
        except NetworkError as exc:
            logger.warning("Could not send attempt to the remote backend: %s", exc)
            return False, f"Saved locally only: {exc}"
        return True, "Attempt synced with the remote backend."

    # --- Views ---

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def quiz(self) -> Quiz:
        if self._quiz is None:
            raise SessionStateError("Session has not been loaded.")
        return self._quiz

    @property
    def user(self) -> UserSession:
        if self._session is None:
            raise SessionStateError("Session has not been loaded.")
        return self._session

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def time_remaining(self) -> int:
        return self._time_remaining

    @property
    def user_answers(self) -> dict[int, int]:
        return dict(self._user_answers)

    @property
    def marked_for_review(self) -> set[int]:
        return set(self._marked)

    @property
    def warning_issued(self) -> bool:
        return self._warning_issued

    @property
    def resumed(self) -> bool:
        return self._resumed

    @property
    def outcome(self) -> SubmissionOutcome | None:
        return self._outcome

    def current_question(self) -> QuestionView:
        index = self._current_index
        question = self.quiz.questions[index]
        selected = self._user_answers.get(index)
        options = [
            OptionView(
                index=option_index,
                letter=OPTION_LETTERS[option_index],
                text=text,
                html=self._renderer.render_inline(text),
                selected=selected == option_index,
            )
            for option_index, text in enumerate(question.options)
        ]
        return QuestionView(
            index=index,
            number=index + 1,
            total=self.quiz.total_questions,
            text=question.question,
            html=self._renderer.render_fragment(question.question),
            options=options,
            selected_option=selected,
            marked=index in self._marked,
            can_go_previous=index > 0,
            can_go_next=index < self.quiz.total_questions - 1,
        )

    def palette(self) -> list[PaletteSlot]:
        slots: list[PaletteSlot] = []
        for index in range(self.quiz.total_questions):
            current = index == self._current_index
            answered = index in self._user_answers
            marked = index in self._marked
            if current:
                status = SlotStatus.CURRENT
            elif marked:
                status = SlotStatus.MARKED
            elif answered:
                status = SlotStatus.ANSWERED
            else:
                status = SlotStatus.NOT_VISITED
            slots.append(
                PaletteSlot(
                    index=index,
                    number=index + 1,
                    status=status,
                    current=current,
                    answered=answered,
                    marked=marked,
                )
            )
        return slots

    def progress_percent(self) -> int:
        if self.quiz.total_questions <= 0:
            return 0
        return round(len(self._user_answers) / self.quiz.total_questions * 100)

    def timer(self) -> TimerView:
        remaining = self._time_remaining
        if remaining <= self._warning_threshold:
            band = "danger"
        elif remaining <= TIME_CAUTION_THRESHOLD_SECONDS:
            band = "warning"
        else:
            band = "success"
        return TimerView(remaining_seconds=remaining, display=format_duration(remaining), band=band)

    def submit_summary(self) -> SubmitSummary:
        answered = len(self._user_answers)
        return SubmitSummary(
            answered=answered,
            marked=len(self._marked),
            not_visited=self.quiz.total_questions - answered,
        )

    def _require_active(self) -> None:
        if self._phase is not SessionPhase.ACTIVE:
            raise SessionStateError(f"Quiz session is {self._phase.value}, not active.")


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
