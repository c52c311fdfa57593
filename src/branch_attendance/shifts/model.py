from __future__ import annotations

from dataclasses import dataclass
from datetime import time


@dataclass(frozen=True)
class Shift:
    """Domain entity: a working shift in branch-local wall-clock time.

    ``end_time`` not later than ``start_time`` means the shift ends the next day.
    """

    shift_id: int
    shift_name: str
    start_time: time
    end_time: time
