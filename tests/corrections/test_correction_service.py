from __future__ import annotations

import logging
import threading
from datetime import date, timedelta

import pytest

from branch_attendance.core.enums import (
    AttendanceStatus,
    BreakApprovalStatus,
    BreakType,
    CorrectionStatus,
    CorrectionType,
)
from branch_attendance.core.exceptions import (
    CorrectionNotFoundError,
    InvalidStateError,
    OperationCancelledError,
    RecordNotFoundError,
    ValidationError,
)

from fakes import build_env, hcm


@pytest.fixture
def worked_day(env):
    """Employee 1 checked in at 09:20 (late) and out at 18:00 local."""
    env.at(9, 20)
    env.attendance_service.check_in(1)
    env.at(18, 0)
    record = env.attendance_service.check_out(1)
    return env, record


def _request(env, record, correction_type, corrected_value, **overrides):
    kwargs = dict(
        requested_by=1,
        correction_type=correction_type,
        original_value=None,
        corrected_value=corrected_value,
        reason="Clock was wrong",
    )
    kwargs.update(overrides)
    return env.correction_service.request_correction(record.attendance_id, **kwargs)


def test_request_creates_pending_correction_scoped_to_branch(worked_day):
    env, record = worked_day

    correction = _request(env, record, "CheckInTime", "2025-03-10T09:00:00", original_value="09:20")

    assert correction.correction_id is not None
    assert correction.status == CorrectionStatus.PENDING
    assert correction.correction_type == CorrectionType.CHECK_IN_TIME
    assert correction.branch_id == 10
    assert correction.created_at == env.clock.now


def test_request_for_missing_record_fails(env):
    with pytest.raises(RecordNotFoundError):
        env.correction_service.request_correction(
            404,
            requested_by=1,
            correction_type=CorrectionType.LOCATION,
            original_value=None,
            corrected_value="HQ",
            reason="wrong gate",
        )


def test_request_validates_input(worked_day):
    env, record = worked_day

    with pytest.raises(ValidationError):
        _request(env, record, CorrectionType.LOCATION, "HQ", reason=" ")
    with pytest.raises(ValidationError):
        _request(env, record, "Teleport", "HQ")


def test_approving_status_correction_applies_once(env):
    env.at(8, 30)
    record = env.attendance_service.check_in(1)
    correction = _request(env, record, CorrectionType.ATTENDANCE_STATUS, "Late")

    outcome = env.correction_service.approve(correction.correction_id, approved_by=50, comments="ok")

    assert outcome.applied is True
    assert outcome.correction.status == CorrectionStatus.APPROVED
    assert outcome.correction.approved_by == 50
    assert outcome.correction.approval_comments == "ok"
    assert env.attendance.get_by_id(record.attendance_id).status == AttendanceStatus.LATE

    with pytest.raises(InvalidStateError):
        env.correction_service.approve(correction.correction_id, approved_by=50)


def test_check_in_correction_in_branch_time_recomputes_hours(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.CHECK_IN_TIME, "2025-03-10T08:00:00")

    outcome = env.correction_service.approve(correction.correction_id, approved_by=50)

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored.check_in_time == hcm(8, 0)
    assert stored.check_in_time_local.hour == 8
    assert stored.total_working_hours == timedelta(hours=10)
    assert stored.overtime_hours == timedelta(hours=2)
    assert outcome.record == stored


def test_check_out_correction_accepts_utc_timestamp(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.CHECK_OUT_TIME, "2025-03-10T09:20:00Z")

    env.correction_service.approve(correction.correction_id, approved_by=50)

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored.check_out_time == hcm(16, 20)
    assert stored.total_working_hours == timedelta(hours=7)
    assert stored.overtime_hours == timedelta(0)


def test_check_out_correction_before_check_in_is_invalid(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.CHECK_OUT_TIME, "2025-03-10T08:00:00")

    with pytest.raises(ValidationError):
        env.correction_service.approve(correction.correction_id, approved_by=50)

    assert env.correction_service.get(correction.correction_id).status == CorrectionStatus.PENDING


def test_unparsable_value_is_approved_but_skipped(worked_day, caplog):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.CHECK_IN_TIME, "around nine")

    with caplog.at_level(logging.WARNING, logger="branch_attendance.corrections.service"):
        outcome = env.correction_service.approve(correction.correction_id, approved_by=50)

    assert outcome.applied is False
    assert outcome.skipped_field == "check_in_time"
    assert outcome.correction.status == CorrectionStatus.APPROVED
    assert env.attendance.get_by_id(record.attendance_id) == record
    assert "could not be applied" in caplog.text


def test_unknown_status_value_is_skipped(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.ATTENDANCE_STATUS, "Sleeping")

    outcome = env.correction_service.approve(correction.correction_id, approved_by=50)

    assert outcome.skipped_field == "status"
    assert env.attendance.get_by_id(record.attendance_id).status == AttendanceStatus.LATE


def test_working_hours_correction(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.WORKING_HOURS, "9.5")

    env.correction_service.approve(correction.correction_id, approved_by=50)

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored.total_working_hours == timedelta(hours=9, minutes=30)
    assert stored.overtime_hours == timedelta(hours=1, minutes=30)


def test_working_hours_outside_a_day_are_rejected(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.WORKING_HOURS, "25")

    with pytest.raises(ValidationError):
        env.correction_service.approve(correction.correction_id, approved_by=50)


def test_break_duration_correction_recomputes_working_time(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.BREAK_DURATION, "40")

    env.correction_service.approve(correction.correction_id, approved_by=50)

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored.break_duration == timedelta(minutes=40)
    assert stored.total_working_hours == timedelta(hours=8)
    assert stored.overtime_hours == timedelta(0)


def test_location_correction(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.LOCATION, "Warehouse 2")

    env.correction_service.approve(correction.correction_id, approved_by=50)

    assert env.attendance.get_by_id(record.attendance_id).check_in_location == "Warehouse 2"


def test_reject_leaves_record_alone(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.ATTENDANCE_STATUS, "Present")

    rejected = env.correction_service.reject(correction.correction_id, rejected_by=50, reason="No evidence")

    assert rejected.status == CorrectionStatus.REJECTED
    assert rejected.approval_comments == "No evidence"
    assert env.attendance.get_by_id(record.attendance_id) == record
    with pytest.raises(InvalidStateError):
        env.correction_service.approve(correction.correction_id, approved_by=50)


def test_reject_requires_reason(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.ATTENDANCE_STATUS, "Present")

    with pytest.raises(ValidationError):
        env.correction_service.reject(correction.correction_id, rejected_by=50, reason="")


def test_requester_can_cancel_pending_correction(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.LOCATION, "HQ")

    with pytest.raises(ValidationError):
        env.correction_service.cancel(correction.correction_id, requested_by=2)

    cancelled = env.correction_service.cancel(correction.correction_id, requested_by=1)

    assert cancelled.status == CorrectionStatus.CANCELLED
    with pytest.raises(InvalidStateError):
        env.correction_service.reject(correction.correction_id, rejected_by=50, reason="late")


def test_unknown_correction(env):
    with pytest.raises(CorrectionNotFoundError):
        env.correction_service.approve(12345, approved_by=1)


def test_cancelled_approval_keeps_correction_pending(worked_day):
    env, record = worked_day
    correction = _request(env, record, CorrectionType.ATTENDANCE_STATUS, "Present")
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        env.correction_service.approve(correction.correction_id, approved_by=50, cancel=cancel)

    assert env.correction_service.get(correction.correction_id).status == CorrectionStatus.PENDING
    assert env.attendance.get_by_id(record.attendance_id).status == AttendanceStatus.LATE


def test_iter_pending_is_lazy_and_restartable():
    env = build_env(page_size=2)
    env.at(9, 0)
    record = env.attendance_service.check_in(1)
    other = env.attendance_service.check_in(3)
    for value in ("A", "B", "C", "D", "E"):
        _request(env, record, CorrectionType.LOCATION, value)
    _request(env, other, CorrectionType.LOCATION, "F", requested_by=3)
    env.correction_service.reject(1, rejected_by=50, reason="dup")

    pending = env.correction_service.iter_pending()
    first = next(pending)
    assert first.corrected_value == "B"
    assert env.corrections.list_calls == 1

    assert [c.corrected_value for c in env.correction_service.iter_pending()] == ["B", "C", "D", "E", "F"]
    assert [c.corrected_value for c in env.correction_service.iter_pending(branch_id=20)] == ["F"]
    assert [c.corrected_value for c in env.correction_service.iter_pending(branch_id=10)] == ["B", "C", "D", "E"]


def test_check_out_correction_needs_a_check_in(env):
    leave = env.attendance_service.create_manual_entry(
        1,
        date(2025, 3, 7),
        check_in=None,
        check_out=None,
        status=AttendanceStatus.ON_LEAVE,
        reason="Annual leave",
        entered_by=99,
    )
    correction = _request(env, leave, CorrectionType.CHECK_OUT_TIME, "2025-03-07T18:00:00")

    with pytest.raises(ValidationError):
        env.correction_service.approve(correction.correction_id, approved_by=50)

    assert env.correction_service.get(correction.correction_id).status == CorrectionStatus.PENDING
    assert env.attendance.get_by_id(leave.attendance_id).check_out_time is None


@pytest.mark.parametrize(
    "correction_type, value",
    [(CorrectionType.WORKING_HOURS, "7"), (CorrectionType.BREAK_DURATION, "30")],
)
def test_totals_cannot_be_corrected_before_check_out(env, correction_type, value):
    env.at(8, 0)
    record = env.attendance_service.check_in(1)
    correction = _request(env, record, correction_type, value)

    with pytest.raises(ValidationError):
        env.correction_service.approve(correction.correction_id, approved_by=50)

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored == record
    assert env.correction_service.get(correction.correction_id).status == CorrectionStatus.PENDING


def test_check_out_correction_closes_open_break(env):
    env.at(8, 0)
    record = env.attendance_service.check_in(1)
    env.at(12, 0)
    lunch = env.break_service.start_break(1, BreakType.LUNCH)
    correction = _request(env, record, CorrectionType.CHECK_OUT_TIME, "2025-03-10T17:00:00")

    outcome = env.correction_service.approve(correction.correction_id, approved_by=50)

    assert env.break_service.get_active_breaks(1) == []
    closed = env.attendance.get_break(lunch.break_id)
    assert closed.end_time == hcm(17, 0)
    assert closed.duration == timedelta(hours=5)
    assert closed.is_exceeding is True
    assert closed.approval_status == BreakApprovalStatus.PENDING

    stored = env.attendance.get_by_id(record.attendance_id)
    assert stored == outcome.record
    assert stored.status == AttendanceStatus.PRESENT
    assert stored.check_out_time == hcm(17, 0)
    assert stored.break_duration == timedelta(hours=5)
    assert stored.total_working_hours == timedelta(hours=4)
    assert stored.overtime_hours == timedelta(0)


def test_check_out_correction_before_open_break_start_is_invalid(env):
    env.at(8, 0)
    record = env.attendance_service.check_in(1)
    env.at(12, 0)
    env.break_service.start_break(1, BreakType.LUNCH)
    correction = _request(env, record, CorrectionType.CHECK_OUT_TIME, "2025-03-10T11:00:00")

    with pytest.raises(ValidationError):
        env.correction_service.approve(correction.correction_id, approved_by=50)

    assert len(env.break_service.get_active_breaks(1)) == 1
    assert env.correction_service.get(correction.correction_id).status == CorrectionStatus.PENDING
