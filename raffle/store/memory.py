# raffle/store/memory.py
from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional

from raffle.models import AuditLog, FlowRun, Settings
from raffle.store.base import Store


class MemoryStore(Store):
    """Keep everything in process memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Runs are stored as deep copies so a
    caller mutating a returned run does not change what is stored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settings: Optional[Settings] = None
        self._runs: List[FlowRun] = []
        self._logs: List[AuditLog] = []
        self._processed: Dict[str, datetime] = {}

    # ------------------------------------------------------------------
    def get_settings(self) -> Optional[Settings]:
        with self._lock:
            return self._settings.model_copy() if self._settings else None

    def save_settings(self, settings: Settings) -> None:
        with self._lock:
            self._settings = settings.model_copy()

    def list_runs(self) -> List[FlowRun]:
        with self._lock:
            return [run.model_copy(deep=True) for run in self._runs]

    def get_run(self, run_id: str) -> Optional[FlowRun]:
        with self._lock:
            for run in self._runs:
                if run.run_id == run_id:
                    return run.model_copy(deep=True)
            return None

    def save_run(self, run: FlowRun) -> None:
        stored = run.model_copy(deep=True)
        with self._lock:
            for index, existing in enumerate(self._runs):
                if existing.run_id == run.run_id:
                    self._runs[index] = stored
                    return
            self._runs.insert(0, stored)

    def list_logs(self) -> List[AuditLog]:
        with self._lock:
            return list(self._logs)

    def append_log(self, entry: AuditLog) -> None:
        with self._lock:
            self._logs.insert(0, entry)

    def get_processed_customer(self, customer_id: str) -> Optional[datetime]:
        with self._lock:
            return self._processed.get(customer_id)

    def mark_customer_processed(self, customer_id: str, timestamp: datetime) -> None:
        with self._lock:
            self._processed[customer_id] = timestamp
