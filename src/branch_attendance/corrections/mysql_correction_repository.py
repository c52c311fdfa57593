from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Optional, Sequence

from ..attendance.model import AttendanceRecord, BreakRecord
from ..attendance.mysql_attendance_repository import write_break, write_record
from ..core.enums import CorrectionStatus, CorrectionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, utc_column, utc_param
from .model import AttendanceCorrection
from .repository import CorrectionRepository

_SELECT = """
    SELECT correction_id, attendance_id, branch_id, requested_by, correction_type,
           original_value, corrected_value, reason, status, created_at,
           approved_by, approved_at, approval_comments
    FROM attendance_corrections
"""


def _row_to_correction(r: Dict[str, Any]) -> AttendanceCorrection:
    return AttendanceCorrection(
        correction_id=int(r["correction_id"]),
        attendance_id=int(r["attendance_id"]),
        branch_id=int(r["branch_id"]),
        requested_by=int(r["requested_by"]),
        correction_type=CorrectionType(r["correction_type"]),
        original_value=r.get("original_value"),
        corrected_value=r["corrected_value"],
        reason=r["reason"],
        status=CorrectionStatus(r["status"]),
        created_at=utc_column(r.get("created_at")),
        approved_by=int(r["approved_by"]) if r.get("approved_by") else None,
        approved_at=utc_column(r.get("approved_at")),
        approval_comments=r.get("approval_comments"),
    )


class MySQLCorrectionRepository(CorrectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, correction: AttendanceCorrection) -> AttendanceCorrection:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_corrections(
                    attendance_id, branch_id, requested_by, correction_type,
                    original_value, corrected_value, reason, status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(correction.attendance_id),
                    int(correction.branch_id),
                    int(correction.requested_by),
                    correction.correction_type.value,
                    correction.original_value,
                    correction.corrected_value,
                    correction.reason,
                    correction.status.value,
                    utc_param(correction.created_at),
                ),
            )
            return replace(correction, correction_id=int(cur.lastrowid))

    def get_by_id(self, correction_id: int) -> Optional[AttendanceCorrection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE correction_id=%s", (int(correction_id),))
            r = fetchone(cur)
            return _row_to_correction(r) if r else None

    def decide(
        self,
        correction: AttendanceCorrection,
        *,
        record: Optional[AttendanceRecord] = None,
        breaks: Sequence[BreakRecord] = (),
    ) -> bool:
        with db_cursor(self._conn_factory) as (conn, cur):
            cur.execute(
                """
                UPDATE attendance_corrections
                SET status=%s, approved_by=%s, approved_at=%s, approval_comments=%s
                WHERE correction_id=%s AND status=%s
                """,
                (
                    correction.status.value,
                    correction.approved_by,
                    utc_param(correction.approved_at),
                    correction.approval_comments,
                    int(correction.correction_id),
                    CorrectionStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                conn.rollback()
                return False
            if record is not None:
                write_record(cur, record)
                for brk in breaks:
                    write_break(cur, replace(brk, attendance_id=record.attendance_id))
            return True

    def list_pending(
        self,
        *,
        branch_id: Optional[int] = None,
        after_id: int = 0,
        limit: int = 100,
    ) -> Sequence[AttendanceCorrection]:
        clauses = ["status=%s", "correction_id > %s"]
        params: list[object] = [CorrectionStatus.PENDING.value, int(after_id)]

        if branch_id is not None:
            clauses.append("branch_id=%s")
            params.append(int(branch_id))

        where = " AND ".join(clauses)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where} ORDER BY correction_id ASC LIMIT %s", tuple(params))
            return [_row_to_correction(r) for r in fetchall(cur)]
