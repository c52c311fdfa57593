from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..common.datetime_utils import Clock, ensure_utc, utc_now
from ..common.timezones import TimeZoneConverter
from ..core.exceptions import EmployeeNotFoundError
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory


@dataclass(frozen=True)
class Workday:
    """The instant an operation runs at, read once and converted once."""

    employee: Employee
    now_utc: datetime
    now_local: datetime

    @property
    def work_date(self) -> date:
        return self.now_local.date()

    @property
    def lock_key(self) -> tuple[int, date]:
        return (self.employee.employee_id, self.work_date)


class WorkdayResolver:
    """Shared lookups for the attendance, break and correction services."""

    def __init__(self, employees: EmployeeDirectory, converter: TimeZoneConverter, clock: Clock | None = None):
        self._employees = employees
        self._converter = converter
        self._clock = clock or utc_now

    def employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        return employee

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    def today(self, employee_id: int) -> Workday:
        employee = self.employee(employee_id)
        now_utc = self.now()
        return Workday(employee=employee, now_utc=now_utc, now_local=self.to_local(employee, now_utc))

    def to_local(self, employee: Employee, utc_value: datetime) -> datetime:
        return self._converter.to_local(utc_value, employee.timezone)

    def to_utc(self, employee: Employee, local_value: datetime) -> datetime:
        return self._converter.to_utc(local_value, employee.timezone)
