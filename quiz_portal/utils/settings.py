"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

from quiz_portal.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REMOTE_TIMEOUT_SECONDS,
    REMOTE_URL_PLACEHOLDER,
)

DEFAULT_DATA_FILE = Path("quiz_portal_data.json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class DuplicateAttemptPolicy(str, Enum):
    """What happens when a user starts a quiz they already completed."""

    ALLOW = "allow"
    CONFIRM = "confirm"
    REJECT = "reject"


@dataclass(slots=True)
class PortalSettings:
    remote_url: str = REMOTE_URL_PLACEHOLDER
    data_file: Path = DEFAULT_DATA_FILE
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    remote_timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS
    duplicate_policy: DuplicateAttemptPolicy = DuplicateAttemptPolicy.CONFIRM
    seed_sample_data: bool = True
    run_session_clock: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PortalSettings:
        """Build settings from ``QUIZ_PORTAL_*`` variables.

        When no mapping is given the process environment is used, after
        loading a ``.env`` file from the working directory if one exists.
        """
        if environ is None:
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        defaults = cls()
        return cls(
            remote_url=environ.get("QUIZ_PORTAL_REMOTE_URL", defaults.remote_url).strip(),
            data_file=Path(environ.get("QUIZ_PORTAL_DATA_FILE", str(defaults.data_file))),
            host=environ.get("QUIZ_PORTAL_HOST", defaults.host),
            port=_parse_int(environ, "QUIZ_PORTAL_PORT", defaults.port),
            remote_timeout_seconds=_parse_float(
                environ, "QUIZ_PORTAL_REMOTE_TIMEOUT", defaults.remote_timeout_seconds
            ),
            duplicate_policy=_parse_policy(environ, defaults.duplicate_policy),
            seed_sample_data=_parse_bool(environ, "QUIZ_PORTAL_SEED_SAMPLES", defaults.seed_sample_data),
            run_session_clock=_parse_bool(environ, "QUIZ_PORTAL_SESSION_CLOCK", defaults.run_session_clock),
            log_level=environ.get("QUIZ_PORTAL_LOG_LEVEL", defaults.log_level),
        )


def _parse_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc


def _parse_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from exc


def _parse_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}.")


def _parse_policy(
    environ: Mapping[str, str], default: DuplicateAttemptPolicy
) -> DuplicateAttemptPolicy:
    raw = environ.get("QUIZ_PORTAL_DUPLICATE_POLICY")
    if raw is None:
        return default
    try:
        return DuplicateAttemptPolicy(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in DuplicateAttemptPolicy)
        raise ValueError(
            f"QUIZ_PORTAL_DUPLICATE_POLICY must be one of {choices}, got {raw!r}."
        ) from exc
