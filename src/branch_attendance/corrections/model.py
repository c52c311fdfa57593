from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..core.enums import CorrectionStatus, CorrectionType


@dataclass(frozen=True)
class AttendanceCorrection:
    """Domain entity: a request to change one field of an attendance record.

    Only PENDING corrections move; APPROVED, REJECTED and CANCELLED are final.
    """

    correction_id: Optional[int]
    attendance_id: int
    branch_id: int
    requested_by: int
    correction_type: CorrectionType
    original_value: Optional[str]
    corrected_value: str
    reason: str
    status: CorrectionStatus = CorrectionStatus.PENDING
    created_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approval_comments: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == CorrectionStatus.PENDING


@dataclass(frozen=True)
class CorrectionOutcome:
    """Result of an approval.

    ``skipped_field`` is set when the corrected value could not be applied; the
    correction is approved anyway and the record is left as it was.
    """

    correction: AttendanceCorrection
    record: AttendanceRecord
    skipped_field: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.skipped_field is None
