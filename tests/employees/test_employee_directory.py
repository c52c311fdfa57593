from __future__ import annotations

from branch_attendance.core.constants import DEFAULT_NORMAL_WORKING_HOURS
from branch_attendance.employees.mysql_employee_repository import _row_to_employee


def _row(**overrides):
    row = {
        "employee_id": 4,
        "branch_id": 10,
        "default_shift_id": None,
        "time_zone": "Asia/Ho_Chi_Minh",
        "normal_working_hours": 7.5,
        "overtime_rate": 1.5,
    }
    row.update(overrides)
    return row


def test_row_maps_branch_policy():
    employee = _row_to_employee(_row(default_shift_id=2))

    assert employee.timezone == "Asia/Ho_Chi_Minh"
    assert employee.normal_working_hours == 7.5
    assert employee.overtime_rate == 1.5
    assert employee.default_shift_id == 2


def test_zero_normal_hours_is_kept():
    employee = _row_to_employee(_row(normal_working_hours=0, overtime_rate=0))

    assert employee.normal_working_hours == 0.0
    assert employee.overtime_rate == 0.0


def test_missing_policy_values_fall_back_to_defaults():
    employee = _row_to_employee(_row(normal_working_hours=None, overtime_rate=None, time_zone=None))

    assert employee.normal_working_hours == DEFAULT_NORMAL_WORKING_HOURS
    assert employee.overtime_rate == 1.0
    assert employee.timezone == "UTC"
