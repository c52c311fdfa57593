from __future__ import annotations

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def log_data_modification(
        self,
        actor_id: int,
        entity_name: str,
        entity_id: Optional[int],
        action: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


class LoggingAuditSink(AuditSink):
    """Writes audit entries to the ``branch_attendance.audit`` logger."""

    def __init__(self, audit_logger: Optional[logging.Logger] = None):
        self._logger = audit_logger or logging.getLogger("branch_attendance.audit")

    def log_data_modification(
        self,
        actor_id: int,
        entity_name: str,
        entity_id: Optional[int],
        action: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> None:
        self._logger.info(
            "actor=%s entity=%s id=%s action=%s old=%s new=%s",
            actor_id,
            entity_name,
            entity_id,
            action,
            old_value,
            new_value,
        )


def record_audit(
    sink: Optional[AuditSink],
    actor_id: int,
    entity_name: str,
    entity_id: Optional[int],
    action: str,
    *,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> None:
    """Best effort: a failing sink is logged and never reaches the caller."""
    if sink is None:
        return
    try:
        sink.log_data_modification(actor_id, entity_name, entity_id, action, old_value, new_value)
    except Exception:
        logger.warning("Audit sink failed for %s %s %s", entity_name, entity_id, action, exc_info=True)
