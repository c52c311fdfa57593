from __future__ import annotations

from typing import Optional, Protocol

from .model import Employee


class EmployeeDirectory(Protocol):
    """Lookup port for employees (DIP: services depend on this, not on a DB)."""

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError
