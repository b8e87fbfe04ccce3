"""Identifier generation for quizzes and attempts."""

from __future__ import annotations

import time


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def new_quiz_id() -> str:
    return f"quiz_{epoch_millis()}"


def new_attempt_id() -> str:
    return f"attempt_{epoch_millis()}"
