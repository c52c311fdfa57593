from __future__ import annotations

from datetime import datetime, timedelta

from ..core.constants import MAX_HOURS_PER_DAY
from ..core.exceptions import ValidationError


def require_non_empty(value: str | None, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def require_positive_id(value: int, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def require_hours_in_range(value: float, field_name: str) -> float:
    if value < 0 or value > MAX_HOURS_PER_DAY:
        raise ValidationError(f"{field_name} must be between 0 and {MAX_HOURS_PER_DAY} hours")
    return value


def require_ordered(check_in: datetime | None, check_out: datetime | None) -> None:
    """Check-out must not precede check-in and the span must fit in one day."""
    if check_in is None or check_out is None:
        return
    if check_out < check_in:
        raise ValidationError("Check-out time cannot be earlier than check-in time")
    if check_out - check_in > timedelta(hours=MAX_HOURS_PER_DAY):
        raise ValidationError(f"Attendance span cannot exceed {MAX_HOURS_PER_DAY} hours")
