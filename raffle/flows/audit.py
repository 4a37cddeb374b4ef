# raffle/flows/audit.py
from __future__ import annotations

import logging
from typing import Any, Optional

from raffle.clock import Clock
from raffle.models import AuditLog, AuditLogType, FlowRun
from raffle.store.base import Store

logger = logging.getLogger(__name__)

_WARNING_TYPES = {AuditLogType.RECHARGE_FAILED, AuditLogType.RUN_NEEDS_REVIEW}


class AuditRecorder:
    """Writes audit entries to the store and mirrors them to the Python log."""

    def __init__(self, store: Store, clock: Clock):
        self._store = store
        self._clock = clock

    def record(
        self,
        type: AuditLogType,
        message: str,
        run: Optional[FlowRun] = None,
        payload: Any = None,
    ) -> AuditLog:
        entry = AuditLog(
            log_id=self._clock.new_id(),
            run_id=run.run_id if run else None,
            correlation_id=run.correlation_id if run else None,
            type=type,
            message=message,
            created_at=self._clock.now(),
            payload=payload,
        )
        self._store.append_log(entry)

        level = logging.WARNING if type in _WARNING_TYPES else logging.INFO
        if run:
            logger.log(level, "[correlation_id=%s] %s: %s", run.correlation_id[:8], type.value, message)
        else:
            logger.log(level, "%s: %s", type.value, message)
        return entry
