"""Break-type policy table and the break-closing computation.

Every ``BreakType`` must have an entry; a missing one fails at import time
instead of silently falling back to the default.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Union

from ..core.constants import DEFAULT_BREAK_LIMIT_MINUTES
from ..core.enums import BreakApprovalStatus, BreakType
from ..core.exceptions import PolicyViolationError
from ..attendance.model import BreakRecord


@dataclass(frozen=True)
class BreakPolicy:
    max_minutes: Optional[int]
    is_paid: bool


DEFAULT_POLICY = BreakPolicy(max_minutes=DEFAULT_BREAK_LIMIT_MINUTES, is_paid=True)

BREAK_POLICIES: dict[BreakType, BreakPolicy] = {
    BreakType.TEA: BreakPolicy(max_minutes=15, is_paid=True),
    BreakType.LUNCH: BreakPolicy(max_minutes=60, is_paid=False),
    BreakType.PERSONAL: BreakPolicy(max_minutes=10, is_paid=True),
    BreakType.MEETING: BreakPolicy(max_minutes=None, is_paid=True),
    BreakType.PRAYER: BreakPolicy(max_minutes=15, is_paid=True),
    BreakType.MEDICAL: BreakPolicy(max_minutes=30, is_paid=True),
    BreakType.EMERGENCY: BreakPolicy(max_minutes=None, is_paid=True),
    BreakType.OTHER: DEFAULT_POLICY,
}

_missing = set(BreakType) - set(BREAK_POLICIES)
if _missing:
    raise RuntimeError(f"No break policy configured for: {sorted(m.value for m in _missing)}")


def resolve_break_type(value: Union[BreakType, str]) -> BreakType:
    """Unrecognised text maps to OTHER, which carries the default policy."""
    if isinstance(value, BreakType):
        return value
    try:
        return BreakType.parse(value)
    except ValueError:
        return BreakType.OTHER


def policy_for(break_type: Union[BreakType, str]) -> BreakPolicy:
    return BREAK_POLICIES[resolve_break_type(break_type)]


def close_break(brk: BreakRecord, *, end_utc: datetime, end_local: datetime) -> BreakRecord:
    """End a break and apply overage flagging.

    Shared by an employee ending the break and by check-out closing it.
    """
    duration = end_utc - brk.start_time
    if duration < timedelta(0):
        duration = timedelta(0)

    closed = replace(brk, end_time=end_utc, end_time_local=end_local, duration=duration)
    if brk.max_allowed_minutes is not None:
        limit = timedelta(minutes=brk.max_allowed_minutes)
        if duration > limit:
            return replace(
                closed,
                is_exceeding=True,
                exceeded_duration=duration - limit,
                approval_status=BreakApprovalStatus.PENDING,
            )
    return replace(
        closed,
        is_exceeding=False,
        exceeded_duration=None,
        approval_status=BreakApprovalStatus.NOT_REQUIRED,
    )


def policy_violation(brk: BreakRecord) -> Optional[PolicyViolationError]:
    if not brk.is_exceeding or brk.exceeded_duration is None:
        return None
    minutes = round(brk.exceeded_duration.total_seconds() / 60, 2)
    return PolicyViolationError(
        f"{brk.break_type.value} break exceeded its {brk.max_allowed_minutes} minute limit by {minutes} minutes"
    )
