from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from ..attendance.model import AttendanceRecord, BreakRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.workday import Workday, WorkdayResolver
from ..audit.sink import AuditSink, record_audit
from ..common.cancellation import CancelToken, raise_if_cancelled
from ..common.locks import KeyedLock
from ..common.validators import optional_text
from ..core.enums import AttendanceStatus, BreakApprovalStatus, BreakType
from ..core.exceptions import (
    AlreadyCheckedOutError,
    BreakAlreadyActiveError,
    BreakNotFoundError,
    InvalidStateError,
    NoActiveBreakError,
    NotCheckedInError,
    RecordNotFoundError,
)
from .policy import BREAK_POLICIES, close_break, resolve_break_type

logger = logging.getLogger(__name__)


def total_break_duration(breaks: Iterable[BreakRecord]) -> timedelta:
    return sum((b.duration for b in breaks if b.duration is not None), timedelta(0))


class BreakService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        workdays: WorkdayResolver,
        locks: KeyedLock,
        *,
        audit: Optional[AuditSink] = None,
    ):
        self._attendance = attendance
        self._workdays = workdays
        self._locks = locks
        self._audit = audit

    def _checked_in_record(self, workday: Workday) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(workday.employee.employee_id, workday.work_date)
        if not record or not record.is_checked_in:
            raise NotCheckedInError("Employee must check in before taking a break")
        return record

    @staticmethod
    def _active(breaks: Sequence[BreakRecord]) -> Optional[BreakRecord]:
        return next((b for b in breaks if b.is_active), None)

    def start_break(
        self,
        employee_id: int,
        break_type: Union[BreakType, str],
        *,
        location: Optional[str] = None,
        reason: Optional[str] = None,
        cancel: CancelToken = None,
    ) -> BreakRecord:
        workday = self._workdays.today(employee_id)
        resolved_type = resolve_break_type(break_type)
        policy = BREAK_POLICIES[resolved_type]

        with self._locks.hold(workday.lock_key):
            record = self._checked_in_record(workday)
            if record.is_checked_out:
                raise AlreadyCheckedOutError("Employee has already checked out today")
            if self._active(self._attendance.list_breaks(record.attendance_id)):
                raise BreakAlreadyActiveError("Employee is already on a break")

            new_break = BreakRecord(
                break_id=None,
                attendance_id=record.attendance_id,
                break_type=resolved_type,
                start_time=workday.now_utc,
                start_time_local=workday.now_local,
                is_paid=policy.is_paid,
                max_allowed_minutes=policy.max_minutes,
                location=optional_text(location),
                reason=optional_text(reason),
            )
            updated = replace(record, status=AttendanceStatus.ON_BREAK, updated_at=workday.now_utc)

            raise_if_cancelled(cancel, "start_break")
            _, saved = self._attendance.save(updated, breaks=[new_break])

        started = saved[0]
        record_audit(
            self._audit,
            workday.employee.employee_id,
            "Break",
            started.break_id,
            "START",
            new_value=f"{resolved_type.value} break started at {workday.now_local:%H:%M}",
        )
        logger.info("Break started for employee %s, type %s", workday.employee.employee_id, resolved_type.value)
        return started

    def end_break(self, employee_id: int, *, cancel: CancelToken = None) -> BreakRecord:
        workday = self._workdays.today(employee_id)

        with self._locks.hold(workday.lock_key):
            record = self._checked_in_record(workday)
            breaks = list(self._attendance.list_breaks(record.attendance_id))
            active = self._active(breaks)
            if active is None:
                raise NoActiveBreakError("Employee is not currently on a break")

            closed = close_break(active, end_utc=workday.now_utc, end_local=workday.now_local)
            others = [b for b in breaks if b.break_id != active.break_id]
            status = AttendanceStatus.PRESENT if record.status == AttendanceStatus.ON_BREAK else record.status
            updated = replace(
                record,
                status=status,
                break_duration=total_break_duration(others + [closed]),
                updated_at=workday.now_utc,
            )

            raise_if_cancelled(cancel, "end_break")
            _, saved = self._attendance.save(updated, breaks=[closed])

        ended = saved[0]
        if ended.is_exceeding:
            logger.warning(
                "Break %s of employee %s exceeded its limit by %s",
                ended.break_id,
                workday.employee.employee_id,
                ended.exceeded_duration,
            )
        record_audit(
            self._audit,
            workday.employee.employee_id,
            "Break",
            ended.break_id,
            "END",
            new_value=f"{ended.break_type.value} break ended after {ended.duration}",
        )
        logger.info("Break ended for employee %s, duration %s", workday.employee.employee_id, ended.duration)
        return ended

    def force_end_active(
        self,
        breaks: Sequence[BreakRecord],
        *,
        end_utc: datetime,
        end_local: datetime,
    ) -> list[BreakRecord]:
        """Close every open break at check-out time.

        Called by check-out and by an approved check-out correction; the caller
        persists the result with the record.
        """
        closed = [close_break(b, end_utc=end_utc, end_local=end_local) for b in breaks if b.is_active]
        for brk in closed:
            logger.info("Break %s closed by check-out after %s", brk.break_id, brk.duration)
        return closed

    def get_active_breaks(self, employee_id: int) -> list[BreakRecord]:
        workday = self._workdays.today(employee_id)
        record = self._attendance.get_for_employee_and_date(workday.employee.employee_id, workday.work_date)
        if not record:
            return []
        return [b for b in self._attendance.list_breaks(record.attendance_id) if b.is_active]

    def approve_overage(self, break_id: int, *, approved_by: int) -> BreakRecord:
        return self._decide_overage(break_id, decided_by=approved_by, status=BreakApprovalStatus.APPROVED)

    def reject_overage(self, break_id: int, *, rejected_by: int) -> BreakRecord:
        return self._decide_overage(break_id, decided_by=rejected_by, status=BreakApprovalStatus.REJECTED)

    def _decide_overage(self, break_id: int, *, decided_by: int, status: BreakApprovalStatus) -> BreakRecord:
        brk = self._attendance.get_break(int(break_id))
        if not brk:
            raise BreakNotFoundError(f"Break {break_id} not found")
        record = self._attendance.get_by_id(brk.attendance_id)
        if not record:
            raise RecordNotFoundError(f"Attendance record {brk.attendance_id} not found")

        with self._locks.hold((record.employee_id, record.work_date)):
            brk = self._attendance.get_break(int(break_id))
            if brk.approval_status != BreakApprovalStatus.PENDING:
                raise InvalidStateError("Only breaks pending approval can be decided")
            decided = self._attendance.save_break(
                replace(brk, approval_status=status, approved_by=int(decided_by), approved_at=self._workdays.now())
            )

        record_audit(self._audit, int(decided_by), "Break", decided.break_id, f"OVERAGE_{status.value}")
        logger.info("Break %s overage %s by %s", decided.break_id, status.value.lower(), decided_by)
        return decided
