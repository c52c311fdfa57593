from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class CheckInDecision:
    status: AttendanceStatus
    late_by: timedelta = timedelta(0)


@dataclass(frozen=True)
class CheckOutDecision:
    status: AttendanceStatus
    early_by: timedelta = timedelta(0)


def settled_status(current: AttendanceStatus) -> AttendanceStatus:
    """Status a record keeps after check-out; an open break no longer counts."""
    if current == AttendanceStatus.ON_BREAK:
        return AttendanceStatus.PRESENT
    return current


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_checkin(self, *, now_local: datetime, expected_start: datetime) -> CheckInDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(
        self,
        *,
        now_local: datetime,
        expected_end: Optional[datetime],
        current: AttendanceStatus,
    ) -> CheckOutDecision:
        raise NotImplementedError
