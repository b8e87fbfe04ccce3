"""Quiz-related constants shared across the core and server layers."""

DEFAULT_TIME_ALLOCATION_SECONDS: int = 60
OPTIONS_PER_QUESTION: int = 4
OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")

TIME_WARNING_THRESHOLD_SECONDS: int = 120
TIME_CAUTION_THRESHOLD_SECONDS: int = 300
TICK_INTERVAL_SECONDS: float = 1.0
AUTOSAVE_INTERVAL_SECONDS: float = 5.0

MIN_USER_NAME_LENGTH: int = 3
EMAIL_PATTERN: str = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

LEADERBOARD_ALL_QUIZZES: str = "all"
