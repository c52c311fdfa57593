from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime.

    Note: Services take a ``Clock`` so tests can pass a fixed one instead.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive values as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` is accepted."""
    text = (value or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def combine_local(work_date: date, at: time, *, ends_after: time | None = None) -> datetime:
    """Wall-clock datetime on ``work_date``.

    With ``ends_after`` the result rolls to the next day when ``at`` is not later
    than it (overnight shifts).
    """
    result = datetime.combine(work_date, at)
    if ends_after is not None and at <= ends_after:
        result += timedelta(days=1)
    return result


def non_negative(delta: timedelta) -> timedelta:
    return delta if delta > timedelta(0) else timedelta(0)


def hours(value: float) -> timedelta:
    return timedelta(hours=float(value))


def to_minutes(delta: timedelta | None) -> float | None:
    if delta is None:
        return None
    return round(delta.total_seconds() / 60, 2)
