from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..attendance.model import AttendanceRecord, BreakRecord
from .model import AttendanceCorrection


class CorrectionRepository(Protocol):
    def add(self, correction: AttendanceCorrection) -> AttendanceCorrection:
        raise NotImplementedError

    def get_by_id(self, correction_id: int) -> Optional[AttendanceCorrection]:
        raise NotImplementedError

    def decide(
        self,
        correction: AttendanceCorrection,
        *,
        record: Optional[AttendanceRecord] = None,
        breaks: Sequence[BreakRecord] = (),
    ) -> bool:
        """Store a decided correction, the corrected record and its closed breaks in one transaction.

        The write only happens while the stored correction is still PENDING;
        returns False (and writes nothing) otherwise.
        """

        raise NotImplementedError

    def list_pending(
        self,
        *,
        branch_id: Optional[int] = None,
        after_id: int = 0,
        limit: int = 100,
    ) -> Sequence[AttendanceCorrection]:
        """PENDING corrections with ``correction_id > after_id``, ordered by id."""

        raise NotImplementedError
