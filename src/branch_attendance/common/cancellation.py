from __future__ import annotations

import threading
from typing import Optional

from ..core.exceptions import OperationCancelledError

CancelToken = Optional[threading.Event]


def raise_if_cancelled(cancel: CancelToken, operation: str) -> None:
    """Checked right before the single persistence step of an operation."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(f"{operation} was cancelled")
