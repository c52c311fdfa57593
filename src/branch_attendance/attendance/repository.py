from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, BreakRecord


class AttendanceRepository(Protocol):
    """Persistence port for attendance records and their breaks.

    Breaks are written through ``save`` together with their record so one
    operation is always one transaction.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_breaks(self, attendance_id: int) -> Sequence[BreakRecord]:
        raise NotImplementedError

    def get_break(self, break_id: int) -> Optional[BreakRecord]:
        raise NotImplementedError

    def save(
        self,
        record: AttendanceRecord,
        *,
        breaks: Sequence[BreakRecord] = (),
    ) -> tuple[AttendanceRecord, list[BreakRecord]]:
        """Insert (``attendance_id is None``) or update the record and upsert the given breaks.

        Raises DuplicateRecordError when inserting a second record for the same
        (employee_id, work_date). Returns the stored record and breaks with ids.
        """

        raise NotImplementedError

    def save_break(self, brk: BreakRecord) -> BreakRecord:
        raise NotImplementedError
