from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ...common.datetime_utils import non_negative
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, CheckInDecision, CheckOutDecision, settled_status


class EarlyLeaveStrategy(AttendanceStrategy):
    """Check-out before the expected end; the status is kept, the gap is recorded."""

    def decide_checkin(self, *, now_local: datetime, expected_start: datetime) -> CheckInDecision:
        return CheckInDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(
        self,
        *,
        now_local: datetime,
        expected_end: Optional[datetime],
        current: AttendanceStatus,
    ) -> CheckOutDecision:
        early_by = non_negative(expected_end - now_local) if expected_end else timedelta(0)
        return CheckOutDecision(status=settled_status(current), early_by=early_by)
