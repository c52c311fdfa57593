from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import Shift


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

    def get_assigned(self, *, employee_id: int, work_date: date) -> Optional[Shift]:
        """Shift explicitly scheduled for the employee on that date, if any."""

        raise NotImplementedError
