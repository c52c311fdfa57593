from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...common.datetime_utils import non_negative
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, CheckInDecision, CheckOutDecision, settled_status


class NormalStrategy(AttendanceStrategy):
    """On-time check-in, normal check-out.

    Minutes inside the grace window are still recorded as lateness.
    """

    def decide_checkin(self, *, now_local: datetime, expected_start: datetime) -> CheckInDecision:
        return CheckInDecision(status=AttendanceStatus.PRESENT, late_by=non_negative(now_local - expected_start))

    def decide_checkout(
        self,
        *,
        now_local: datetime,
        expected_end: Optional[datetime],
        current: AttendanceStatus,
    ) -> CheckOutDecision:
        return CheckOutDecision(status=settled_status(current))
