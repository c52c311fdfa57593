from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from branch_attendance.core.enums import AttendanceStatus, BreakApprovalStatus, BreakType
from branch_attendance.core.exceptions import (
    AlreadyCheckedOutError,
    BreakAlreadyActiveError,
    BreakNotFoundError,
    InvalidStateError,
    NoActiveBreakError,
    NotCheckedInError,
    OperationCancelledError,
)


@pytest.fixture
def checked_in(env):
    env.at(8, 0)
    env.attendance_service.check_in(1)
    return env


def test_start_break_requires_check_in(env):
    with pytest.raises(NotCheckedInError):
        env.break_service.start_break(1, BreakType.TEA)


def test_start_break_after_check_out_fails(checked_in):
    env = checked_in
    env.at(17, 0)
    env.attendance_service.check_out(1)

    with pytest.raises(AlreadyCheckedOutError):
        env.break_service.start_break(1, BreakType.TEA)


def test_start_break_sets_policy_and_status(checked_in):
    env = checked_in
    env.at(12, 0)

    brk = env.break_service.start_break(1, "Lunch", location="Canteen", reason="lunch")

    assert brk.break_id is not None
    assert brk.break_type == BreakType.LUNCH
    assert brk.is_paid is False
    assert brk.max_allowed_minutes == 60
    assert brk.location == "Canteen"
    assert env.attendance_service.get_current_status(1) == AttendanceStatus.ON_BREAK


def test_second_start_break_is_rejected(checked_in):
    env = checked_in
    env.at(10, 0)
    env.break_service.start_break(1, BreakType.TEA)

    env.at(10, 5)
    with pytest.raises(BreakAlreadyActiveError):
        env.break_service.start_break(1, BreakType.PERSONAL)

    assert len(env.break_service.get_active_breaks(1)) == 1


def test_end_break_without_open_break_fails(checked_in):
    with pytest.raises(NoActiveBreakError):
        checked_in.break_service.end_break(1)


def test_end_break_without_record_fails(env):
    with pytest.raises(NotCheckedInError):
        env.break_service.end_break(1)


def test_twenty_minute_tea_break_exceeds_by_five(checked_in):
    env = checked_in
    env.at(10, 0)
    started = env.break_service.start_break(1, BreakType.TEA)
    env.at(10, 20)

    ended = env.break_service.end_break(1)

    assert ended.break_id == started.break_id
    assert ended.duration == ended.end_time - ended.start_time == timedelta(minutes=20)
    assert ended.is_exceeding is True
    assert ended.exceeded_duration == timedelta(minutes=5)
    assert ended.approval_status == BreakApprovalStatus.PENDING
    assert env.attendance_service.get_current_status(1) == AttendanceStatus.PRESENT
    assert env.attendance_service.get_today_record(1).break_duration == timedelta(minutes=20)


def test_end_break_restores_present_for_late_arrival(env):
    env.at(9, 30)
    env.attendance_service.check_in(1)
    env.at(10, 0)
    env.break_service.start_break(1, BreakType.TEA)
    env.at(10, 10)

    env.break_service.end_break(1)

    record = env.attendance_service.get_today_record(1)
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_arrival_duration == timedelta(minutes=30)


def test_break_durations_accumulate(checked_in):
    env = checked_in
    for start, end in ((10, 10), (15, 5)):
        env.at(start, 0)
        env.break_service.start_break(1, BreakType.TEA)
        env.at(start, end)
        env.break_service.end_break(1)

    assert env.attendance_service.get_today_record(1).break_duration == timedelta(minutes=15)


def test_cancelled_start_break_changes_nothing(checked_in):
    env = checked_in
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        env.break_service.start_break(1, BreakType.TEA, cancel=cancel)

    assert env.attendance.breaks == {}
    assert env.attendance_service.get_current_status(1) == AttendanceStatus.PRESENT


def test_overage_can_be_approved_once(checked_in):
    env = checked_in
    env.at(10, 0)
    env.break_service.start_break(1, BreakType.PERSONAL)
    env.at(10, 30)
    ended = env.break_service.end_break(1)

    approved = env.break_service.approve_overage(ended.break_id, approved_by=7)

    assert approved.approval_status == BreakApprovalStatus.APPROVED
    assert approved.approved_by == 7
    assert approved.approved_at == env.clock.now
    with pytest.raises(InvalidStateError):
        env.break_service.reject_overage(ended.break_id, rejected_by=7)


def test_break_within_limit_cannot_be_decided(checked_in):
    env = checked_in
    env.at(10, 0)
    env.break_service.start_break(1, BreakType.TEA)
    env.at(10, 5)
    ended = env.break_service.end_break(1)

    with pytest.raises(InvalidStateError):
        env.break_service.approve_overage(ended.break_id, approved_by=7)


def test_deciding_unknown_break_fails(env):
    with pytest.raises(BreakNotFoundError):
        env.break_service.reject_overage(999, rejected_by=7)


def test_break_operations_are_audited(checked_in):
    env = checked_in
    env.at(10, 0)
    env.break_service.start_break(1, BreakType.TEA)
    env.at(10, 5)
    env.break_service.end_break(1)

    assert env.audit.actions == ["CHECK_IN", "START", "END"]
