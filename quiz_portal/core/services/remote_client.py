"""Async client for the spreadsheet-backed quiz backend.

Writes are form-encoded POSTs and reads are GETs with query parameters;
every response is a JSON envelope ``{"status": "success", "data": ...}`` or
``{"status": <anything else>, "message": ...}``.

``create_quiz`` and ``submit_attempt`` raise :class:`NetworkError` so the
caller can report a "saved locally only" outcome. The read operations never
raise: they log and return an empty result instead.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

import httpx

from quiz_portal.constants.network_constants import (
    DEFAULT_REMOTE_TIMEOUT_SECONDS,
    REMOTE_PLACEHOLDER_MARKER,
    RESPONSE_STATUS_SUCCESS,
)
from quiz_portal.constants.quiz_constants import LEADERBOARD_ALL_QUIZZES
from quiz_portal.core.errors import NetworkError
from quiz_portal.core.models import Quiz

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RemoteResult:
    """Successful response envelope."""

    status: str
    data: Any = None


@dataclass(slots=True)
class AttemptSubmission:
    """Fields sent to the backend for one completed attempt."""

    quiz_id: str
    user_name: str
    email: str
    answers: dict[int, int]
    score: int
    percentage: float
    time_taken: str
    attempt_date: str

    def to_form(self) -> dict[str, str]:
        return {
            "action": "submitQuiz",
            "quizId": self.quiz_id,
            "userName": self.user_name,
            "email": self.email,
            "answersJson": json.dumps({str(index): option for index, option in self.answers.items()}),
            "score": str(self.score),
            "percentage": _format_number(self.percentage),
            "timeTaken": self.time_taken,
            "attemptDate": self.attempt_date,
        }


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def is_configured_url(url: str | None) -> bool:
    return bool(url) and REMOTE_PLACEHOLDER_MARKER not in url


class RemoteSyncClient:
    """Talks to the remote quiz backend over HTTP."""

    def __init__(
        self,
        base_url: str | None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = (base_url or "").strip()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True, timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return is_configured_url(self._base_url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- Writes ---

    async def create_quiz(self, quiz: Quiz) -> RemoteResult:
        form = {
            "action": "createQuiz",
            "date": quiz.date,
            "subject": quiz.subject,
            "questionsJson": json.dumps([question.to_dict() for question in quiz.questions]),
            "totalQuestions": str(quiz.total_questions),
            "timeLimit": str(quiz.time_limit),
        }
        result = await self._post(form, failure_message="Failed to create quiz")
        logger.info("Quiz %s created on the remote backend", quiz.quiz_id)
        return result

    async def submit_attempt(self, submission: AttemptSubmission) -> RemoteResult:
        result = await self._post(submission.to_form(), failure_message="Failed to submit quiz")
        logger.info("Attempt for quiz %s sent to the remote backend", submission.quiz_id)
        return result

    # --- Reads ---

    async def list_quizzes(
        self, date: str | None = None, subject: str | None = None
    ) -> list[dict[str, Any]]:
        if not self.is_configured:
            logger.debug("Remote backend not configured; no remote quizzes")
            return []
        params = {"action": "getQuizzes"}
        if date:
            params["date"] = date
        if subject:
            params["subject"] = subject
        try:
            data = await self._get(params, failure_message="Failed to fetch quizzes")
        except NetworkError as exc:
            logger.warning("Could not fetch remote quizzes: %s", exc)
            return []
        return _records(data, "quizzes")

    async def list_leaderboard(self, quiz_id: str = LEADERBOARD_ALL_QUIZZES) -> list[dict[str, Any]]:
        if not self.is_configured:
            logger.debug("Remote backend not configured; no remote leaderboard")
            return []
        params = {"action": "getLeaderboard", "quizId": quiz_id or LEADERBOARD_ALL_QUIZZES}
        try:
            data = await self._get(params, failure_message="Failed to fetch leaderboard")
        except NetworkError as exc:
            logger.warning("Could not fetch remote leaderboard: %s", exc)
            return []
        return _records(data, "leaderboard")

    async def check_status(self) -> bool:
        """Liveness probe: True for any 2xx answer to ``action=ping``."""
        if not self.is_configured:
            logger.warning("Remote backend URL is not configured; running local-only")
            return False
        try:
            response = await self._client.get(self._base_url, params={"action": "ping"})
        except httpx.HTTPError as exc:
            logger.warning("Remote backend unreachable: %s", exc)
            return False
        if not response.is_success:
            logger.warning("Remote backend returned HTTP %s", response.status_code)
            return False
        return True

    # --- Transport ---

    async def _post(self, form: dict[str, str], failure_message: str) -> RemoteResult:
        self._ensure_configured()
        try:
            response = await self._client.post(
                self._base_url,
                params={"action": form["action"]},
                data=form,
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"{failure_message}: {exc}") from exc
        return RemoteResult(status=RESPONSE_STATUS_SUCCESS, data=_unwrap(response, failure_message))

    async def _get(self, params: dict[str, str], failure_message: str) -> Any:
        self._ensure_configured()
        try:
            response = await self._client.get(self._base_url, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{failure_message}: {exc}") from exc
        return _unwrap(response, failure_message)

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise NetworkError("Remote backend URL is not configured.")


def _unwrap(response: httpx.Response, failure_message: str) -> Any:
    if not response.is_success:
        raise NetworkError(f"{failure_message}: HTTP {response.status_code}")
    try:
        envelope = response.json()
    except ValueError as exc:
        raise NetworkError(f"{failure_message}: response was not JSON") from exc
    if not isinstance(envelope, dict) or envelope.get("status") != RESPONSE_STATUS_SUCCESS:
        message = envelope.get("message") if isinstance(envelope, dict) else None
        raise NetworkError(message or failure_message)
    return envelope.get("data")


def _records(data: Any, field_name: str) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    records = data.get(field_name) or []
    if not isinstance(records, list):
        return []
    return [record for record in records if isinstance(record, dict)]
