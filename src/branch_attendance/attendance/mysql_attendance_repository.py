from __future__ import annotations

import json
from dataclasses import replace
from datetime import date
from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, BreakApprovalStatus, BreakType
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    seconds_column,
    seconds_param,
    utc_column,
    utc_param,
)
from .model import AttendanceRecord, BreakRecord, WeatherSnapshot
from .repository import AttendanceRepository

RECORD_COLUMNS = (
    "employee_id",
    "work_date",
    "status",
    "check_in_time",
    "check_in_time_local",
    "check_out_time",
    "check_out_time_local",
    "check_in_location",
    "check_in_ip",
    "check_in_device",
    "check_out_location",
    "check_out_ip",
    "check_out_device",
    "shift_id",
    "expected_check_in",
    "expected_check_out",
    "late_arrival_seconds",
    "early_departure_seconds",
    "working_seconds",
    "break_seconds",
    "overtime_seconds",
    "is_manual_entry",
    "manual_entry_reason",
    "manual_entry_by",
    "notes",
    "weather_json",
    "created_at",
    "updated_at",
)

BREAK_COLUMNS = (
    "attendance_id",
    "break_type",
    "start_time",
    "start_time_local",
    "is_paid",
    "max_allowed_minutes",
    "end_time",
    "end_time_local",
    "duration_seconds",
    "location",
    "reason",
    "is_exceeding",
    "exceeded_seconds",
    "approval_status",
    "approved_by",
    "approved_at",
)

_RECORD_SELECT = "SELECT attendance_id, " + ", ".join(RECORD_COLUMNS) + " FROM attendance_records"
_BREAK_SELECT = "SELECT break_id, " + ", ".join(BREAK_COLUMNS) + " FROM break_records"


def _record_params(record: AttendanceRecord) -> tuple:
    weather = json.dumps(record.weather.to_dict()) if record.weather else None
    return (
        int(record.employee_id),
        record.work_date,
        record.status.value,
        utc_param(record.check_in_time),
        record.check_in_time_local,
        utc_param(record.check_out_time),
        record.check_out_time_local,
        record.check_in_location,
        record.check_in_ip,
        record.check_in_device,
        record.check_out_location,
        record.check_out_ip,
        record.check_out_device,
        record.shift_id,
        record.expected_check_in,
        record.expected_check_out,
        seconds_param(record.late_arrival_duration),
        seconds_param(record.early_departure_duration),
        seconds_param(record.total_working_hours),
        seconds_param(record.break_duration),
        seconds_param(record.overtime_hours),
        1 if record.is_manual_entry else 0,
        record.manual_entry_reason,
        record.manual_entry_by,
        record.notes,
        weather,
        utc_param(record.created_at),
        utc_param(record.updated_at),
    )


def _break_params(brk: BreakRecord) -> tuple:
    return (
        int(brk.attendance_id),
        brk.break_type.value,
        utc_param(brk.start_time),
        brk.start_time_local,
        1 if brk.is_paid else 0,
        brk.max_allowed_minutes,
        utc_param(brk.end_time),
        brk.end_time_local,
        seconds_param(brk.duration),
        brk.location,
        brk.reason,
        1 if brk.is_exceeding else 0,
        seconds_param(brk.exceeded_duration),
        brk.approval_status.value,
        brk.approved_by,
        utc_param(brk.approved_at),
    )


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    weather = json.loads(r["weather_json"]) if r.get("weather_json") else None
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in_time=utc_column(r.get("check_in_time")),
        check_in_time_local=r.get("check_in_time_local"),
        check_out_time=utc_column(r.get("check_out_time")),
        check_out_time_local=r.get("check_out_time_local"),
        check_in_location=r.get("check_in_location"),
        check_in_ip=r.get("check_in_ip"),
        check_in_device=r.get("check_in_device"),
        check_out_location=r.get("check_out_location"),
        check_out_ip=r.get("check_out_ip"),
        check_out_device=r.get("check_out_device"),
        shift_id=int(r["shift_id"]) if r.get("shift_id") else None,
        expected_check_in=r.get("expected_check_in"),
        expected_check_out=r.get("expected_check_out"),
        late_arrival_duration=seconds_column(r.get("late_arrival_seconds")),
        early_departure_duration=seconds_column(r.get("early_departure_seconds")),
        total_working_hours=seconds_column(r.get("working_seconds")),
        break_duration=seconds_column(r.get("break_seconds")),
        overtime_hours=seconds_column(r.get("overtime_seconds")),
        is_manual_entry=bool(r.get("is_manual_entry")),
        manual_entry_reason=r.get("manual_entry_reason"),
        manual_entry_by=int(r["manual_entry_by"]) if r.get("manual_entry_by") else None,
        notes=r.get("notes"),
        weather=WeatherSnapshot.from_dict(weather),
        created_at=utc_column(r.get("created_at")),
        updated_at=utc_column(r.get("updated_at")),
    )


def _row_to_break(r: Dict[str, Any]) -> BreakRecord:
    return BreakRecord(
        break_id=int(r["break_id"]),
        attendance_id=int(r["attendance_id"]),
        break_type=BreakType(r["break_type"]),
        start_time=utc_column(r["start_time"]),
        start_time_local=r["start_time_local"],
        is_paid=bool(r.get("is_paid")),
        max_allowed_minutes=int(r["max_allowed_minutes"]) if r.get("max_allowed_minutes") is not None else None,
        end_time=utc_column(r.get("end_time")),
        end_time_local=r.get("end_time_local"),
        duration=seconds_column(r.get("duration_seconds")),
        location=r.get("location"),
        reason=r.get("reason"),
        is_exceeding=bool(r.get("is_exceeding")),
        exceeded_duration=seconds_column(r.get("exceeded_seconds")),
        approval_status=BreakApprovalStatus(r["approval_status"]),
        approved_by=int(r["approved_by"]) if r.get("approved_by") else None,
        approved_at=utc_column(r.get("approved_at")),
    )


def write_record(cur, record: AttendanceRecord) -> AttendanceRecord:
    """Insert or update ``record`` on an open cursor; the caller owns the transaction."""
    params = _record_params(record)
    if record.attendance_id is None:
        placeholders = ",".join(["%s"] * len(RECORD_COLUMNS))
        cur.execute(
            f"INSERT INTO attendance_records({', '.join(RECORD_COLUMNS)}) VALUES({placeholders})",
            params,
        )
        return replace(record, attendance_id=int(cur.lastrowid))

    assignments = ", ".join(f"{c}=%s" for c in RECORD_COLUMNS)
    cur.execute(
        f"UPDATE attendance_records SET {assignments} WHERE attendance_id=%s",
        params + (int(record.attendance_id),),
    )
    return record


def write_break(cur, brk: BreakRecord) -> BreakRecord:
    params = _break_params(brk)
    if brk.break_id is None:
        placeholders = ",".join(["%s"] * len(BREAK_COLUMNS))
        cur.execute(
            f"INSERT INTO break_records({', '.join(BREAK_COLUMNS)}) VALUES({placeholders})",
            params,
        )
        return replace(brk, break_id=int(cur.lastrowid))

    assignments = ", ".join(f"{c}=%s" for c in BREAK_COLUMNS)
    cur.execute(f"UPDATE break_records SET {assignments} WHERE break_id=%s", params + (int(brk.break_id),))
    return brk


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_RECORD_SELECT} WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_RECORD_SELECT} WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_employee(self, employee_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_RECORD_SELECT}
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date ASC
                """,
                (int(employee_id), start, end),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_breaks(self, attendance_id: int) -> Sequence[BreakRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_BREAK_SELECT} WHERE attendance_id=%s ORDER BY start_time ASC, break_id ASC",
                (int(attendance_id),),
            )
            return [_row_to_break(r) for r in fetchall(cur)]

    def get_break(self, break_id: int) -> Optional[BreakRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_BREAK_SELECT} WHERE break_id=%s", (int(break_id),))
            r = fetchone(cur)
            return _row_to_break(r) if r else None

    def save(
        self,
        record: AttendanceRecord,
        *,
        breaks: Sequence[BreakRecord] = (),
    ) -> tuple[AttendanceRecord, list[BreakRecord]]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                stored = write_record(cur, record)
                stored_breaks = [
                    write_break(cur, replace(b, attendance_id=stored.attendance_id)) for b in breaks
                ]
        except mysql.connector.IntegrityError as e:
            if record.attendance_id is None:
                raise DuplicateRecordError(
                    f"Attendance record already exists for employee {record.employee_id} on {record.work_date}"
                ) from e
            raise
        return stored, stored_breaks

    def save_break(self, brk: BreakRecord) -> BreakRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            return write_break(cur, brk)
