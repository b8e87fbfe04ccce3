"""Key names used in the persistence store.

These names are the on-disk format shared with data saved by earlier
versions of the portal, so they must not change.
"""

QUIZZES_KEY: str = "quizzes"
ATTEMPTS_KEY: str = "quizAttempts"
USER_SESSION_KEY: str = "userSession"
CURRENT_QUIZ_KEY: str = "currentQuiz"
CURRENT_RESULTS_KEY: str = "currentQuizResults"
QUIZ_STATE_KEY_PREFIX: str = "quizState_"
BACKUP_KEY_PREFIX: str = "backup_"


def quiz_state_key(quiz_id: str) -> str:
    return f"{QUIZ_STATE_KEY_PREFIX}{quiz_id}"


def backup_key(epoch_ms: int) -> str:
    return f"{BACKUP_KEY_PREFIX}{epoch_ms}"
