# raffle/store/sql.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, cast

from sqlalchemy.orm import sessionmaker

from raffle.db.engine import create_db_engine
from raffle.db.models import AuditLogRecord, FlowRunRecord, ProcessedCustomer, SettingsRecord
from raffle.models import AuditLog, FlowRun, Settings
from raffle.store.base import Store

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way out; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlStore(Store):
    """Persist runs, settings, logs and the processed index with SQLAlchemy."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine = create_db_engine(database_url)
        self._Session = sessionmaker(bind=self._engine, expire_on_commit=False)

    def close(self) -> None:
        self._engine.dispose()

    # ------------------------------------------------------------------
    # Settings
    def get_settings(self) -> Optional[Settings]:
        session = self._Session()
        try:
            row = session.get(SettingsRecord, SETTINGS_ROW_ID)
            if row is None:
                return None
            return Settings(
                apply_to=cast(str, row.apply_to),
                existing_discount=cast(str, row.existing_discount),
                discount_percent=cast(int, row.discount_percent),
                duration_days=cast(Optional[int], row.duration_days),
                apply_to_future_subscriptions=cast(bool, row.apply_to_future_subscriptions),
            )
        finally:
            session.close()

    def save_settings(self, settings: Settings) -> None:
        session = self._Session()
        try:
            row = session.get(SettingsRecord, SETTINGS_ROW_ID)
            if row is None:
                row = SettingsRecord(id=SETTINGS_ROW_ID)
                session.add(row)

            row.apply_to = settings.apply_to.value
            row.existing_discount = settings.existing_discount.value
            row.discount_percent = settings.discount_percent
            row.duration_days = settings.duration_days
            row.apply_to_future_subscriptions = settings.apply_to_future_subscriptions

            session.commit()
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Runs
    def list_runs(self) -> List[FlowRun]:
        session = self._Session()
        try:
            rows = session.query(FlowRunRecord).order_by(FlowRunRecord.id.desc()).all()
            return [FlowRun.model_validate(row.document) for row in rows]
        finally:
            session.close()

    def get_run(self, run_id: str) -> Optional[FlowRun]:
        session = self._Session()
        try:
            row = session.query(FlowRunRecord).filter(FlowRunRecord.run_id == run_id).one_or_none()
            if row is None:
                return None
            return FlowRun.model_validate(row.document)
        finally:
            session.close()

    def save_run(self, run: FlowRun) -> None:
        document = run.model_dump(mode="json")
        session = self._Session()
        try:
            row = session.query(FlowRunRecord).filter(FlowRunRecord.run_id == run.run_id).one_or_none()
            if row is None:
                row = FlowRunRecord(
                    run_id=run.run_id,
                    correlation_id=run.correlation_id,
                    customer_id=run.customer_id,
                    created_at=run.created_at,
                )
                session.add(row)

            row.stage = run.stage
            row.status = run.status.value
            row.document = document
            session.commit()
            logger.debug("Saved run %s (status: %s)", run.run_id, run.status.value)
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Audit log
    def list_logs(self) -> List[AuditLog]:
        session = self._Session()
        try:
            rows = session.query(AuditLogRecord).order_by(AuditLogRecord.id.desc()).all()
            return [
                AuditLog(
                    log_id=cast(str, row.log_id),
                    run_id=cast(Optional[str], row.run_id),
                    correlation_id=cast(Optional[str], row.correlation_id),
                    type=cast(str, row.type),
                    message=cast(str, row.message),
                    created_at=_as_utc(cast(datetime, row.created_at)),
                    payload=row.payload,
                )
                for row in rows
            ]
        finally:
            session.close()

    def append_log(self, entry: AuditLog) -> None:
        session = self._Session()
        try:
            session.add(
                AuditLogRecord(
                    log_id=entry.log_id,
                    run_id=entry.run_id,
                    correlation_id=entry.correlation_id,
                    type=entry.type.value,
                    message=entry.message,
                    created_at=entry.created_at,
                    payload=entry.model_dump(mode="json")["payload"],
                )
            )
            session.commit()
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Processed-customer index
    def get_processed_customer(self, customer_id: str) -> Optional[datetime]:
        session = self._Session()
        try:
            row = session.get(ProcessedCustomer, customer_id)
            if row is None:
                return None
            return _as_utc(cast(datetime, row.processed_at))
        finally:
            session.close()

    def mark_customer_processed(self, customer_id: str, timestamp: datetime) -> None:
        session = self._Session()
        try:
            row = session.get(ProcessedCustomer, customer_id)
            if row is None:
                row = ProcessedCustomer(customer_id=customer_id)
                session.add(row)
            row.processed_at = timestamp
            session.commit()
            logger.info("Customer marked processed → %s", customer_id)
        finally:
            session.close()
