from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from branch_attendance.attendance.model import BreakRecord
from branch_attendance.breaks.policy import BREAK_POLICIES, close_break, policy_for, policy_violation, resolve_break_type
from branch_attendance.core.enums import BreakApprovalStatus, BreakType
from branch_attendance.core.exceptions import PolicyViolationError

START = datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)


def _open(break_type: BreakType) -> BreakRecord:
    policy = BREAK_POLICIES[break_type]
    return BreakRecord(
        break_id=1,
        attendance_id=1,
        break_type=break_type,
        start_time=START,
        start_time_local=START.replace(tzinfo=None) + timedelta(hours=7),
        is_paid=policy.is_paid,
        max_allowed_minutes=policy.max_minutes,
    )


def _close(brk: BreakRecord, minutes: int) -> BreakRecord:
    end = START + timedelta(minutes=minutes)
    return close_break(brk, end_utc=end, end_local=end.replace(tzinfo=None) + timedelta(hours=7))


def test_every_break_type_has_a_policy():
    assert set(BREAK_POLICIES) == set(BreakType)


@pytest.mark.parametrize(
    "break_type, max_minutes, is_paid",
    [
        (BreakType.TEA, 15, True),
        (BreakType.LUNCH, 60, False),
        (BreakType.PERSONAL, 10, True),
        (BreakType.MEETING, None, True),
        (BreakType.PRAYER, 15, True),
        (BreakType.MEDICAL, 30, True),
        (BreakType.EMERGENCY, None, True),
        (BreakType.OTHER, 15, True),
    ],
)
def test_policy_table(break_type, max_minutes, is_paid):
    policy = BREAK_POLICIES[break_type]

    assert policy.max_minutes == max_minutes
    assert policy.is_paid is is_paid


def test_unknown_break_type_gets_default_policy():
    assert resolve_break_type("Smoking") == BreakType.OTHER
    assert policy_for("Smoking").max_minutes == 15
    assert policy_for("Smoking").is_paid is True


def test_break_type_accepts_display_names():
    assert resolve_break_type("Lunch") == BreakType.LUNCH
    assert resolve_break_type("MEDICAL") == BreakType.MEDICAL


def test_tea_break_over_limit_is_flagged():
    closed = _close(_open(BreakType.TEA), 20)

    assert closed.duration == timedelta(minutes=20)
    assert closed.is_exceeding is True
    assert closed.exceeded_duration == timedelta(minutes=5)
    assert closed.approval_status == BreakApprovalStatus.PENDING


def test_break_within_limit_needs_no_approval():
    closed = _close(_open(BreakType.TEA), 15)

    assert closed.is_exceeding is False
    assert closed.exceeded_duration is None
    assert closed.approval_status == BreakApprovalStatus.NOT_REQUIRED
    assert policy_violation(closed) is None


def test_unlimited_break_never_exceeds():
    closed = _close(_open(BreakType.MEETING), 240)

    assert closed.is_exceeding is False
    assert closed.approval_status == BreakApprovalStatus.NOT_REQUIRED


def test_policy_violation_is_returned_not_raised():
    violation = policy_violation(_close(_open(BreakType.PERSONAL), 25))

    assert isinstance(violation, PolicyViolationError)
    assert "15.0 minutes" in str(violation)
