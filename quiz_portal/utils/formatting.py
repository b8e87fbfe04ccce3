"""Small formatting helpers shared by the engine, catalog and viewers."""

from __future__ import annotations

from datetime import date, datetime, timezone


def format_duration(seconds: int) -> str:
    """Format a number of seconds as ``MM:SS`` (minutes are not wrapped at 60)."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_display_date(value: str) -> str:
    """Render an ISO date as ``18 October 2025``; unparseable input is returned as-is."""
    try:
        parsed = date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return value
    return f"{parsed.day} {parsed.strftime('%B')} {parsed.year}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = (moment or utc_now()).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def iso_date(moment: datetime | None = None) -> str:
    return (moment or utc_now()).astimezone(timezone.utc).date().isoformat()
