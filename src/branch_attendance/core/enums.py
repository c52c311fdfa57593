from __future__ import annotations

from enum import Enum


class _LenientEnum(str, Enum):
    @classmethod
    def parse(cls, value: str):
        """Accept either the stored value ("ON_BREAK") or the display name ("OnBreak")."""
        text = (value or "").strip()
        key = text.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if text == member.value or key == member.value.replace("_", "").lower():
                return member
        raise ValueError(f"{text!r} is not a valid {cls.__name__}")


class AttendanceStatus(_LenientEnum):
    """Status stored on an attendance record."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    ON_BREAK = "ON_BREAK"
    ABSENT = "ABSENT"
    ON_LEAVE = "ON_LEAVE"


class DayState(str, Enum):
    """Derived state of one employee-day, including states with no stored status."""

    NO_RECORD = "NO_RECORD"
    PRESENT = "PRESENT"
    LATE = "LATE"
    ON_BREAK = "ON_BREAK"
    CHECKED_OUT = "CHECKED_OUT"
    ABSENT = "ABSENT"
    ON_LEAVE = "ON_LEAVE"


class BreakType(_LenientEnum):
    TEA = "TEA"
    LUNCH = "LUNCH"
    PERSONAL = "PERSONAL"
    MEETING = "MEETING"
    PRAYER = "PRAYER"
    MEDICAL = "MEDICAL"
    EMERGENCY = "EMERGENCY"
    OTHER = "OTHER"


class BreakApprovalStatus(str, Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CorrectionType(_LenientEnum):
    CHECK_IN_TIME = "CHECK_IN_TIME"
    CHECK_OUT_TIME = "CHECK_OUT_TIME"
    BREAK_DURATION = "BREAK_DURATION"
    WORKING_HOURS = "WORKING_HOURS"
    ATTENDANCE_STATUS = "ATTENDANCE_STATUS"
    LOCATION = "LOCATION"


class CorrectionStatus(str, Enum):
    """Approval flow of a correction request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
