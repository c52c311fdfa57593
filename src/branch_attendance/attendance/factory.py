from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .strategies.base import AttendanceStrategy
from .strategies.early_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now_local: datetime, expected_start: datetime, grace_minutes: int = 0) -> AttendanceStrategy:
        if now_local > expected_start + timedelta(minutes=grace_minutes):
            return LateStrategy()
        return NormalStrategy()

    def for_checkout(self, *, now_local: datetime, expected_end: Optional[datetime]) -> AttendanceStrategy:
        if expected_end is not None and now_local < expected_end:
            return EarlyLeaveStrategy()
        return NormalStrategy()
