"""Exception types raised by the quiz portal core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quiz_portal.core.models import Attempt


class QuizPortalError(Exception):
    """Base class for all portal errors."""


class QuizValidationError(QuizPortalError, ValueError):
    """Raised when an authoring payload or user detail is malformed."""


class NotFoundError(QuizPortalError, LookupError):
    """Raised when a referenced session, quiz or attempt does not exist."""

    def __init__(self, message: str, redirect_to: str = "index") -> None:
        super().__init__(message)
        self.redirect_to = redirect_to


class NetworkError(QuizPortalError):
    """Raised when the remote backend cannot complete a request."""


class SessionStateError(QuizPortalError, RuntimeError):
    """Raised when a session operation is not valid in the current phase."""


class DuplicateAttemptWarning(QuizPortalError):
    """Advisory gate: the user already has an attempt for this quiz."""

    def __init__(self, existing: Attempt) -> None:
        super().__init__(
            f"You already attempted this quiz (score {existing.score}/{existing.total})."
        )
        self.existing = existing


class DuplicateAttemptError(DuplicateAttemptWarning):
    """Raised instead of the warning when retakes are not allowed at all."""
