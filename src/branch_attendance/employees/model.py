from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_NORMAL_WORKING_HOURS


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee with the branch policy it works under.

    Employee and branch records are owned elsewhere; the attendance core only
    needs the time zone and the working-hour policy.
    """

    employee_id: int
    branch_id: int
    timezone: str
    normal_working_hours: float = DEFAULT_NORMAL_WORKING_HOURS
    overtime_rate: float = 1.0
    default_shift_id: Optional[int] = None
