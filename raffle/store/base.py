# raffle/store/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from raffle.models import AuditLog, FlowRun, Settings


class Store(ABC):
    """
    Persistence for runs, settings, the processed-customer index and audit logs.

    Listings are most-recent-first. Callers that run flows concurrently must
    serialise runs for the same customer; the store only guarantees that each
    individual call is atomic.
    """

    @abstractmethod
    def get_settings(self) -> Optional[Settings]:
        """Return stored settings, or None if the merchant never saved any."""

    @abstractmethod
    def save_settings(self, settings: Settings) -> None:
        pass

    @abstractmethod
    def list_runs(self) -> List[FlowRun]:
        pass

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[FlowRun]:
        pass

    @abstractmethod
    def save_run(self, run: FlowRun) -> None:
        """Upsert by run id. A run saved for the first time goes to the front."""

    @abstractmethod
    def list_logs(self) -> List[AuditLog]:
        pass

    @abstractmethod
    def append_log(self, entry: AuditLog) -> None:
        pass

    @abstractmethod
    def get_processed_customer(self, customer_id: str) -> Optional[datetime]:
        """Timestamp the customer was marked processed, or None."""

    @abstractmethod
    def mark_customer_processed(self, customer_id: str, timestamp: datetime) -> None:
        pass

    def close(self) -> None:
        """Release backend resources. Called once at shutdown."""
