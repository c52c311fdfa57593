from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..audit.sink import AuditSink, record_audit
from ..breaks.service import BreakService, total_break_duration
from ..common.cancellation import CancelToken, raise_if_cancelled
from ..common.datetime_utils import combine_local, ensure_utc, hours, non_negative
from ..common.locks import KeyedLock
from ..common.validators import optional_text, require_hours_in_range, require_non_empty, require_ordered
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_SHIFT_END, DEFAULT_SHIFT_START, NOTES_SEPARATOR
from ..core.enums import AttendanceStatus, DayState
from ..core.exceptions import (
    AlreadyCheckedInError,
    AlreadyCheckedOutError,
    DuplicateRecordError,
    NotCheckedInError,
    NotManualEntryError,
    RecordNotFoundError,
)
from ..employees.model import Employee
from ..shifts.model import Shift
from ..shifts.resolver import ShiftResolver
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, BreakRecord, WeatherSnapshot
from .repository import AttendanceRepository
from .workday import WorkdayResolver

logger = logging.getLogger(__name__)


def append_notes(existing: Optional[str], extra: Optional[str]) -> Optional[str]:
    extra = optional_text(extra)
    if not extra:
        return existing
    if not existing:
        return extra
    return f"{existing}{NOTES_SEPARATOR}{extra}"


def working_totals(
    check_in: datetime,
    check_out: datetime,
    break_duration: timedelta,
    normal_working_hours: float,
) -> tuple[timedelta, timedelta]:
    """(working, overtime) for one day; breaks are subtracted from elapsed time."""
    working = non_negative(check_out - check_in - break_duration)
    overtime = non_negative(working - hours(normal_working_hours))
    return working, overtime


class AttendanceService:
    """Check-in/check-out state machine for one record per employee per local day."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        workdays: WorkdayResolver,
        shifts: ShiftResolver,
        breaks: BreakService,
        locks: KeyedLock,
        *,
        audit: Optional[AuditSink] = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    ):
        self._attendance = attendance
        self._workdays = workdays
        self._shifts = shifts
        self._breaks = breaks
        self._locks = locks
        self._audit = audit
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._grace_minutes = int(grace_minutes)

    def _expected_window(self, employee_id: int, work_date: date) -> tuple[Optional[Shift], datetime, datetime]:
        shift = self._shifts.get_current_shift(employee_id, work_date)
        start = shift.start_time if shift else DEFAULT_SHIFT_START
        end = shift.end_time if shift else DEFAULT_SHIFT_END
        return shift, combine_local(work_date, start), combine_local(work_date, end, ends_after=start)

    def check_in(
        self,
        employee_id: int,
        *,
        location: Optional[str] = None,
        ip_address: Optional[str] = None,
        device_info: Optional[str] = None,
        notes: Optional[str] = None,
        weather: Optional[WeatherSnapshot] = None,
        cancel: CancelToken = None,
    ) -> AttendanceRecord:
        workday = self._workdays.today(employee_id)
        employee_id = workday.employee.employee_id
        today = workday.work_date

        with self._locks.hold(workday.lock_key):
            existing = self._attendance.get_for_employee_and_date(employee_id, today)
            if existing and existing.is_checked_in:
                raise AlreadyCheckedInError("Employee has already checked in today")

            shift, expected_start, expected_end = self._expected_window(employee_id, today)
            strategy = self._factory.for_checkin(
                now_local=workday.now_local, expected_start=expected_start, grace_minutes=self._grace_minutes
            )
            decision = strategy.decide_checkin(now_local=workday.now_local, expected_start=expected_start)

            base = existing or AttendanceRecord(
                attendance_id=None,
                employee_id=employee_id,
                work_date=today,
                created_at=workday.now_utc,
            )
            record = replace(
                base,
                check_in_time=workday.now_utc,
                check_in_time_local=workday.now_local,
                check_in_location=optional_text(location),
                check_in_ip=optional_text(ip_address),
                check_in_device=optional_text(device_info),
                status=decision.status,
                shift_id=shift.shift_id if shift else base.shift_id,
                expected_check_in=expected_start,
                expected_check_out=expected_end,
                late_arrival_duration=decision.late_by,
                weather=weather,
                notes=append_notes(base.notes, notes),
                updated_at=workday.now_utc,
            )

            raise_if_cancelled(cancel, "check_in")
            saved, _ = self._attendance.save(record)

        record_audit(
            self._audit,
            employee_id,
            "Attendance",
            saved.attendance_id,
            "CHECK_IN",
            new_value=f"Checked in at {workday.now_local:%H:%M}",
        )
        logger.info(
            "Check-in completed for employee %s at %s (%s, late by %s)",
            employee_id,
            workday.now_local,
            saved.status.value,
            saved.late_arrival_duration,
        )
        return saved

    def check_out(
        self,
        employee_id: int,
        *,
        location: Optional[str] = None,
        ip_address: Optional[str] = None,
        device_info: Optional[str] = None,
        notes: Optional[str] = None,
        cancel: CancelToken = None,
    ) -> AttendanceRecord:
        workday = self._workdays.today(employee_id)
        employee = workday.employee

        with self._locks.hold(workday.lock_key):
            record = self._attendance.get_for_employee_and_date(employee.employee_id, workday.work_date)
            if not record or not record.is_checked_in:
                raise NotCheckedInError("Employee has not checked in today")
            if record.is_checked_out:
                raise AlreadyCheckedOutError("Employee has already checked out today")

            breaks = list(self._attendance.list_breaks(record.attendance_id))
            closed = self._breaks.force_end_active(breaks, end_utc=workday.now_utc, end_local=workday.now_local)
            closed_ids = {b.break_id for b in closed}
            all_breaks = [b for b in breaks if b.break_id not in closed_ids] + closed

            break_duration = total_break_duration(all_breaks)
            working, overtime = working_totals(
                record.check_in_time, workday.now_utc, break_duration, employee.normal_working_hours
            )

            expected_end = record.expected_check_out
            if expected_end is None:
                _, _, expected_end = self._expected_window(employee.employee_id, workday.work_date)
            strategy = self._factory.for_checkout(now_local=workday.now_local, expected_end=expected_end)
            decision = strategy.decide_checkout(
                now_local=workday.now_local, expected_end=expected_end, current=record.status
            )

            updated = replace(
                record,
                check_out_time=workday.now_utc,
                check_out_time_local=workday.now_local,
                check_out_location=optional_text(location),
                check_out_ip=optional_text(ip_address),
                check_out_device=optional_text(device_info),
                status=decision.status,
                expected_check_out=expected_end,
                early_departure_duration=decision.early_by,
                total_working_hours=working,
                break_duration=break_duration,
                overtime_hours=overtime,
                notes=append_notes(record.notes, notes),
                updated_at=workday.now_utc,
            )

            raise_if_cancelled(cancel, "check_out")
            saved, _ = self._attendance.save(updated, breaks=closed)

        record_audit(
            self._audit,
            employee.employee_id,
            "Attendance",
            saved.attendance_id,
            "CHECK_OUT",
            new_value=f"Checked out at {workday.now_local:%H:%M}",
        )
        logger.info(
            "Check-out completed for employee %s at %s, working %s, overtime %s",
            employee.employee_id,
            workday.now_local,
            working,
            overtime,
        )
        return saved

    def get_today_record(self, employee_id: int) -> Optional[AttendanceRecord]:
        workday = self._workdays.today(employee_id)
        return self._attendance.get_for_employee_and_date(workday.employee.employee_id, workday.work_date)

    def get_current_status(self, employee_id: int) -> AttendanceStatus:
        record = self.get_today_record(employee_id)
        return record.status if record else AttendanceStatus.ABSENT

    def get_day_state(self, employee_id: int) -> DayState:
        record = self.get_today_record(employee_id)
        if record is None:
            return DayState.NO_RECORD
        if record.is_checked_out:
            return DayState.CHECKED_OUT
        return DayState(record.status.value)

    def get_active_breaks(self, employee_id: int) -> list[BreakRecord]:
        return self._breaks.get_active_breaks(employee_id)

    def list_employee_records(self, employee_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        """Finalised and in-progress records for downstream reporting."""
        self._workdays.employee(employee_id)
        return self._attendance.list_for_employee(int(employee_id), start=start, end=end)

    def is_within_shift_hours(self, employee_id: int, at: datetime) -> bool:
        employee = self._workdays.employee(employee_id)
        local = self._workdays.to_local(employee, ensure_utc(at))
        _, start, end = self._expected_window(employee.employee_id, local.date())
        return start <= local <= end

    def create_manual_entry(
        self,
        employee_id: int,
        work_date: date,
        *,
        status: AttendanceStatus,
        reason: str,
        entered_by: int,
        check_in: Optional[datetime] = None,
        check_out: Optional[datetime] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        cancel: CancelToken = None,
    ) -> AttendanceRecord:
        employee = self._workdays.employee(employee_id)
        reason = require_non_empty(reason, "Manual entry reason")
        check_in, check_out = self._normalise_span(check_in, check_out)
        now = self._workdays.now()

        with self._locks.hold((employee.employee_id, work_date)):
            if self._attendance.get_for_employee_and_date(employee.employee_id, work_date):
                raise DuplicateRecordError(f"Attendance record already exists for {work_date:%Y-%m-%d}")

            record = self._apply_manual_values(
                AttendanceRecord(attendance_id=None, employee_id=employee.employee_id, work_date=work_date, created_at=now),
                employee,
                breaks=(),
                check_in=check_in,
                check_out=check_out,
                status=status,
                location=location,
                reason=reason,
                entered_by=entered_by,
                notes=notes,
                now=now,
            )

            raise_if_cancelled(cancel, "create_manual_entry")
            saved, _ = self._attendance.save(record)

        record_audit(
            self._audit,
            int(entered_by),
            "Attendance",
            saved.attendance_id,
            "MANUAL_CREATE",
            new_value=f"Manual entry for employee {employee.employee_id} on {work_date:%Y-%m-%d}",
        )
        logger.info("Manual attendance entry created: %s", saved.attendance_id)
        return saved

    def update_manual_entry(
        self,
        employee_id: int,
        work_date: date,
        *,
        status: AttendanceStatus,
        reason: str,
        entered_by: int,
        check_in: Optional[datetime] = None,
        check_out: Optional[datetime] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        cancel: CancelToken = None,
    ) -> AttendanceRecord:
        employee = self._workdays.employee(employee_id)
        reason = require_non_empty(reason, "Manual entry reason")
        check_in, check_out = self._normalise_span(check_in, check_out)
        now = self._workdays.now()

        with self._locks.hold((employee.employee_id, work_date)):
            record = self._attendance.get_for_employee_and_date(employee.employee_id, work_date)
            if not record:
                raise RecordNotFoundError(f"No attendance record for {work_date:%Y-%m-%d}")
            if not record.is_manual_entry:
                raise NotManualEntryError("Only manual entries can be updated this way")

            updated = self._apply_manual_values(
                record,
                employee,
                breaks=self._attendance.list_breaks(record.attendance_id),
                check_in=check_in,
                check_out=check_out,
                status=status,
                location=location,
                reason=reason,
                entered_by=entered_by,
                notes=notes,
                now=now,
            )

            raise_if_cancelled(cancel, "update_manual_entry")
            saved, _ = self._attendance.save(updated)

        record_audit(
            self._audit,
            int(entered_by),
            "Attendance",
            saved.attendance_id,
            "MANUAL_UPDATE",
            old_value=f"{record.check_in_time} - {record.check_out_time} ({record.status.value})",
            new_value=f"{saved.check_in_time} - {saved.check_out_time} ({saved.status.value})",
        )
        logger.info("Manual attendance entry updated: %s", saved.attendance_id)
        return saved

    @staticmethod
    def _normalise_span(
        check_in: Optional[datetime], check_out: Optional[datetime]
    ) -> tuple[Optional[datetime], Optional[datetime]]:
        check_in = ensure_utc(check_in) if check_in else None
        check_out = ensure_utc(check_out) if check_out else None
        if check_out is not None and check_in is None:
            raise NotCheckedInError("A check-out time needs a check-in time")
        require_ordered(check_in, check_out)
        return check_in, check_out

    def _apply_manual_values(
        self,
        record: AttendanceRecord,
        employee: Employee,
        *,
        breaks: Sequence[BreakRecord],
        check_in: Optional[datetime],
        check_out: Optional[datetime],
        status: AttendanceStatus,
        location: Optional[str],
        reason: str,
        entered_by: int,
        notes: Optional[str],
        now: datetime,
    ) -> AttendanceRecord:
        working = overtime = break_duration = None
        if check_in and check_out:
            break_duration = total_break_duration(breaks)
            working, overtime = working_totals(check_in, check_out, break_duration, employee.normal_working_hours)
            require_hours_in_range(working.total_seconds() / 3600, "Working hours")

        location = optional_text(location)
        return replace(
            record,
            check_in_time=check_in,
            check_in_time_local=self._workdays.to_local(employee, check_in) if check_in else None,
            check_out_time=check_out,
            check_out_time_local=self._workdays.to_local(employee, check_out) if check_out else None,
            check_in_location=location,
            check_out_location=location if check_out else None,
            status=status,
            total_working_hours=working,
            overtime_hours=overtime,
            break_duration=break_duration,
            is_manual_entry=True,
            manual_entry_reason=reason,
            manual_entry_by=int(entered_by),
            notes=optional_text(notes),
            updated_at=now,
        )
