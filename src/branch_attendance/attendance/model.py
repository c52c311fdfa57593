from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from ..core.enums import AttendanceStatus, BreakApprovalStatus, BreakType


@dataclass(frozen=True)
class WeatherSnapshot:
    """Weather reported by the client at check-in. Stored and returned as is."""

    summary: Optional[str] = None
    temperature_c: Optional[float] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"summary": self.summary, "temperature_c": self.temperature_c, "extra": dict(self.extra)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["WeatherSnapshot"]:
        if not data:
            return None
        temperature = data.get("temperature_c")
        return cls(
            summary=data.get("summary"),
            temperature_c=float(temperature) if temperature is not None else None,
            extra=dict(data.get("extra") or {}),
        )


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one branch-local day.

    UTC timestamps are timezone-aware; ``*_local`` values are naive branch
    wall-clock, converted once when written.
    """

    attendance_id: Optional[int]
    employee_id: int
    work_date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT
    check_in_time: Optional[datetime] = None
    check_in_time_local: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_out_time_local: Optional[datetime] = None
    check_in_location: Optional[str] = None
    check_in_ip: Optional[str] = None
    check_in_device: Optional[str] = None
    check_out_location: Optional[str] = None
    check_out_ip: Optional[str] = None
    check_out_device: Optional[str] = None
    shift_id: Optional[int] = None
    expected_check_in: Optional[datetime] = None
    expected_check_out: Optional[datetime] = None
    late_arrival_duration: Optional[timedelta] = None
    early_departure_duration: Optional[timedelta] = None
    total_working_hours: Optional[timedelta] = None
    break_duration: Optional[timedelta] = None
    overtime_hours: Optional[timedelta] = None
    is_manual_entry: bool = False
    manual_entry_reason: Optional[str] = None
    manual_entry_by: Optional[int] = None
    notes: Optional[str] = None
    weather: Optional[WeatherSnapshot] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_time is not None

    @property
    def is_checked_out(self) -> bool:
        return self.check_out_time is not None


@dataclass(frozen=True)
class BreakRecord:
    """A break nested under an attendance record; open while ``end_time`` is None."""

    break_id: Optional[int]
    attendance_id: Optional[int]
    break_type: BreakType
    start_time: datetime
    start_time_local: datetime
    is_paid: bool = True
    max_allowed_minutes: Optional[int] = None
    end_time: Optional[datetime] = None
    end_time_local: Optional[datetime] = None
    duration: Optional[timedelta] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    is_exceeding: bool = False
    exceeded_duration: Optional[timedelta] = None
    approval_status: BreakApprovalStatus = BreakApprovalStatus.NOT_REQUIRED
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.end_time is None
