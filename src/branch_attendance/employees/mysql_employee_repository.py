from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_NORMAL_WORKING_HOURS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Employee
from .repository import EmployeeDirectory


def _row_to_employee(r: dict) -> Employee:
    normal_hours = r.get("normal_working_hours")
    overtime_rate = r.get("overtime_rate")
    return Employee(
        employee_id=int(r["employee_id"]),
        branch_id=int(r["branch_id"]),
        timezone=r.get("time_zone") or "UTC",
        normal_working_hours=DEFAULT_NORMAL_WORKING_HOURS if normal_hours is None else float(normal_hours),
        overtime_rate=1.0 if overtime_rate is None else float(overtime_rate),
        default_shift_id=int(r["default_shift_id"]) if r.get("default_shift_id") else None,
    )


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT e.employee_id, e.branch_id, e.default_shift_id,
                       b.time_zone, o.normal_working_hours, o.overtime_rate
                FROM employees e
                JOIN branches b ON b.branch_id = e.branch_id
                JOIN organizations o ON o.organization_id = b.organization_id
                WHERE e.employee_id=%s
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            return _row_to_employee(r) if r else None
