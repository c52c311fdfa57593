from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterator, Optional, Union

from ..attendance.model import AttendanceRecord, BreakRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.workday import WorkdayResolver
from ..audit.sink import AuditSink, record_audit
from ..breaks.service import BreakService, total_break_duration
from ..common.cancellation import CancelToken, raise_if_cancelled
from ..common.datetime_utils import ensure_utc, hours, non_negative, parse_timestamp
from ..common.locks import KeyedLock
from ..common.validators import optional_text, require_hours_in_range, require_non_empty, require_ordered
from ..core.constants import DEFAULT_PENDING_PAGE_SIZE
from ..core.enums import AttendanceStatus, CorrectionStatus, CorrectionType
from ..core.exceptions import (
    CorrectionNotFoundError,
    InvalidStateError,
    RecordNotFoundError,
    ValidationError,
)
from ..employees.model import Employee
from .model import AttendanceCorrection, CorrectionOutcome
from .repository import CorrectionRepository

logger = logging.getLogger(__name__)

CORRECTED_FIELDS: dict[CorrectionType, str] = {
    CorrectionType.CHECK_IN_TIME: "check_in_time",
    CorrectionType.CHECK_OUT_TIME: "check_out_time",
    CorrectionType.BREAK_DURATION: "break_duration",
    CorrectionType.WORKING_HOURS: "total_working_hours",
    CorrectionType.ATTENDANCE_STATUS: "status",
    CorrectionType.LOCATION: "check_in_location",
}


def _parse_number(value: str) -> float:
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"{value!r} is not a non-negative number")
    return number


def _recompute_totals(record: AttendanceRecord, normal_working_hours: float) -> AttendanceRecord:
    if record.check_in_time is None or record.check_out_time is None:
        return record
    working = non_negative(record.check_out_time - record.check_in_time - (record.break_duration or timedelta(0)))
    return replace(
        record,
        total_working_hours=working,
        overtime_hours=non_negative(working - hours(normal_working_hours)),
    )


class CorrectionService:
    """Request / approve / reject workflow for attendance corrections.

    An approved correction is applied to its record once, in the same
    transaction that marks it approved.
    """

    def __init__(
        self,
        corrections: CorrectionRepository,
        attendance: AttendanceRepository,
        breaks: BreakService,
        workdays: WorkdayResolver,
        locks: KeyedLock,
        *,
        audit: Optional[AuditSink] = None,
        page_size: int = DEFAULT_PENDING_PAGE_SIZE,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._corrections = corrections
        self._attendance = attendance
        self._breaks = breaks
        self._workdays = workdays
        self._locks = locks
        self._audit = audit
        self._page_size = int(page_size)

    def request_correction(
        self,
        attendance_id: int,
        *,
        requested_by: int,
        correction_type: Union[CorrectionType, str],
        original_value: Optional[str],
        corrected_value: str,
        reason: str,
    ) -> AttendanceCorrection:
        reason = require_non_empty(reason, "Correction reason")
        corrected_value = require_non_empty(corrected_value, "Corrected value")
        if not isinstance(correction_type, CorrectionType):
            try:
                correction_type = CorrectionType.parse(correction_type)
            except ValueError as e:
                raise ValidationError(str(e))

        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise RecordNotFoundError(f"Attendance record {attendance_id} not found")
        employee = self._workdays.employee(record.employee_id)

        correction = self._corrections.add(
            AttendanceCorrection(
                correction_id=None,
                attendance_id=record.attendance_id,
                branch_id=employee.branch_id,
                requested_by=int(requested_by),
                correction_type=correction_type,
                original_value=optional_text(original_value),
                corrected_value=corrected_value,
                reason=reason,
                created_at=self._workdays.now(),
            )
        )
        record_audit(
            self._audit,
            int(requested_by),
            "AttendanceCorrection",
            correction.correction_id,
            "REQUEST",
            old_value=correction.original_value,
            new_value=correction.corrected_value,
        )
        logger.info(
            "Correction %s requested for attendance %s (%s)",
            correction.correction_id,
            record.attendance_id,
            correction_type.value,
        )
        return correction

    def get(self, correction_id: int) -> AttendanceCorrection:
        correction = self._corrections.get_by_id(int(correction_id))
        if not correction:
            raise CorrectionNotFoundError(f"Correction {correction_id} not found")
        return correction

    def approve(
        self,
        correction_id: int,
        *,
        approved_by: int,
        comments: Optional[str] = None,
        cancel: CancelToken = None,
    ) -> CorrectionOutcome:
        correction = self._pending(correction_id)
        record = self._record_for(correction)

        with self._locks.hold((record.employee_id, record.work_date)):
            record = self._record_for(correction)
            employee = self._workdays.employee(record.employee_id)
            corrected, closed, skipped = self._apply(correction, record, employee)

            decided = replace(
                correction,
                status=CorrectionStatus.APPROVED,
                approved_by=int(approved_by),
                approved_at=self._workdays.now(),
                approval_comments=optional_text(comments),
            )

            raise_if_cancelled(cancel, "approve_correction")
            if skipped:
                stored = self._corrections.decide(decided)
            else:
                stored = self._corrections.decide(decided, record=corrected, breaks=closed)
            if not stored:
                raise InvalidStateError(f"Correction {correction_id} is no longer pending")

        if skipped:
            logger.warning(
                "Correction %s approved but %r could not be applied to %s; record left unchanged",
                decided.correction_id,
                decided.corrected_value,
                skipped,
            )
        record_audit(
            self._audit,
            int(approved_by),
            "AttendanceCorrection",
            decided.correction_id,
            "APPROVE",
            old_value=decided.original_value,
            new_value=decided.corrected_value,
        )
        logger.info("Correction %s approved by %s", decided.correction_id, approved_by)
        return CorrectionOutcome(correction=decided, record=corrected, skipped_field=skipped)

    def reject(self, correction_id: int, *, rejected_by: int, reason: str) -> AttendanceCorrection:
        reason = require_non_empty(reason, "Rejection reason")
        correction = self._pending(correction_id)
        decided = replace(
            correction,
            status=CorrectionStatus.REJECTED,
            approved_by=int(rejected_by),
            approved_at=self._workdays.now(),
            approval_comments=reason,
        )
        if not self._corrections.decide(decided):
            raise InvalidStateError(f"Correction {correction_id} is no longer pending")

        record_audit(self._audit, int(rejected_by), "AttendanceCorrection", decided.correction_id, "REJECT", new_value=reason)
        logger.info("Correction %s rejected by %s", decided.correction_id, rejected_by)
        return decided

    def cancel(self, correction_id: int, *, requested_by: int) -> AttendanceCorrection:
        correction = self._pending(correction_id)
        if correction.requested_by != int(requested_by):
            raise ValidationError("Only the requester can cancel a correction")
        cancelled = replace(correction, status=CorrectionStatus.CANCELLED)
        if not self._corrections.decide(cancelled):
            raise InvalidStateError(f"Correction {correction_id} is no longer pending")

        record_audit(self._audit, int(requested_by), "AttendanceCorrection", cancelled.correction_id, "CANCEL")
        logger.info("Correction %s cancelled by requester", cancelled.correction_id)
        return cancelled

    def iter_pending(self, branch_id: Optional[int] = None) -> Iterator[AttendanceCorrection]:
        """Lazily walk pending corrections, one keyset page at a time.

        Every call starts again from the lowest id.
        """
        after_id = 0
        while True:
            page = self._corrections.list_pending(branch_id=branch_id, after_id=after_id, limit=self._page_size)
            yield from page
            if len(page) < self._page_size:
                return
            after_id = page[-1].correction_id

    def _pending(self, correction_id: int) -> AttendanceCorrection:
        correction = self.get(correction_id)
        if not correction.is_pending:
            raise InvalidStateError(f"Correction {correction_id} is already {correction.status.value}")
        return correction

    def _record_for(self, correction: AttendanceCorrection) -> AttendanceRecord:
        record = self._attendance.get_by_id(correction.attendance_id)
        if not record:
            raise RecordNotFoundError(f"Attendance record {correction.attendance_id} not found")
        return record

    def _instant(self, value: str, employee: Employee) -> tuple[datetime, datetime]:
        """(utc, local) for a corrected timestamp; naive text is branch wall-clock."""
        parsed = parse_timestamp(value)
        utc = self._workdays.to_utc(employee, parsed) if parsed.tzinfo is None else ensure_utc(parsed)
        return utc, self._workdays.to_local(employee, utc)

    def _close_open_breaks(
        self,
        record: AttendanceRecord,
        end_utc: datetime,
        end_local: datetime,
    ) -> tuple[AttendanceRecord, list[BreakRecord]]:
        """Check the record out at the corrected instant, closing open breaks like check-out does."""
        breaks = list(self._attendance.list_breaks(record.attendance_id))
        active = [b for b in breaks if b.is_active]
        if any(b.start_time > end_utc for b in active):
            raise ValidationError("Check-out time cannot be earlier than the start of an open break")

        updated = replace(record, check_out_time=end_utc, check_out_time_local=end_local)
        if not active:
            return updated, []

        closed = self._breaks.force_end_active(active, end_utc=end_utc, end_local=end_local)
        closed_ids = {b.break_id for b in closed}
        all_breaks = [b for b in breaks if b.break_id not in closed_ids] + closed
        status = AttendanceStatus.PRESENT if record.status == AttendanceStatus.ON_BREAK else record.status
        return replace(updated, break_duration=total_break_duration(all_breaks), status=status), closed

    def _apply(
        self,
        correction: AttendanceCorrection,
        record: AttendanceRecord,
        employee: Employee,
    ) -> tuple[AttendanceRecord, list[BreakRecord], Optional[str]]:
        """Corrected copy of ``record``, breaks closed on the way, and the skipped field if the value did not parse."""
        kind = correction.correction_type
        value = correction.corrected_value
        closed: list[BreakRecord] = []

        if kind == CorrectionType.CHECK_OUT_TIME and record.check_in_time is None:
            raise ValidationError("Check-out time cannot be corrected on a record without a check-in")
        if kind in (CorrectionType.BREAK_DURATION, CorrectionType.WORKING_HOURS) and record.check_out_time is None:
            raise ValidationError(f"{kind.value} can only be corrected after check-out")

        try:
            if kind == CorrectionType.CHECK_IN_TIME:
                utc, local = self._instant(value, employee)
                require_ordered(utc, record.check_out_time)
                updated = replace(record, check_in_time=utc, check_in_time_local=local)
            elif kind == CorrectionType.CHECK_OUT_TIME:
                utc, local = self._instant(value, employee)
                require_ordered(record.check_in_time, utc)
                updated, closed = self._close_open_breaks(record, utc, local)
            elif kind == CorrectionType.BREAK_DURATION:
                updated = replace(record, break_duration=timedelta(minutes=_parse_number(value)))
            elif kind == CorrectionType.WORKING_HOURS:
                worked = require_hours_in_range(_parse_number(value), "Working hours")
                return (
                    replace(
                        record,
                        total_working_hours=hours(worked),
                        overtime_hours=non_negative(hours(worked) - hours(employee.normal_working_hours)),
                        updated_at=self._workdays.now(),
                    ),
                    [],
                    None,
                )
            elif kind == CorrectionType.ATTENDANCE_STATUS:
                return replace(record, status=AttendanceStatus.parse(value), updated_at=self._workdays.now()), [], None
            else:
                return replace(record, check_in_location=value, updated_at=self._workdays.now()), [], None
        except ValueError:
            return record, [], CORRECTED_FIELDS[kind]

        updated = _recompute_totals(updated, employee.normal_working_hours)
        return replace(updated, updated_at=self._workdays.now()), closed, None
