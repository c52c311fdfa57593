from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..employees.repository import EmployeeDirectory
from .model import Shift
from .repository import ShiftRepository


class ShiftResolver(Protocol):
    def get_current_shift(self, employee_id: int, work_date: date) -> Optional[Shift]:
        """``None`` means the default 09:00-18:00 policy applies."""

        raise NotImplementedError


class ScheduledShiftResolver(ShiftResolver):
    """Schedule assignment for the date first, then the employee's default shift."""

    def __init__(self, shifts: ShiftRepository, employees: EmployeeDirectory):
        self._shifts = shifts
        self._employees = employees

    def get_current_shift(self, employee_id: int, work_date: date) -> Optional[Shift]:
        assigned = self._shifts.get_assigned(employee_id=employee_id, work_date=work_date)
        if assigned:
            return assigned

        employee = self._employees.get_by_id(employee_id)
        if employee and employee.default_shift_id:
            return self._shifts.get_by_id(employee.default_shift_id)
        return None
