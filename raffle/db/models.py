# raffle/db/models.py

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FlowRunRecord(Base):
    """Persisted flow run. The full run (steps, attempts) lives in ``document``."""

    __tablename__ = "flow_runs"

    # Insertion order; listings are newest-first by this column
    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String, nullable=False, unique=True, index=True)  # UUID
    correlation_id = Column(String, nullable=False, index=True)
    customer_id = Column(String, nullable=False, index=True)
    stage = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, index=True)  # "pending", "success", "failed", ...
    created_at = Column(DateTime(timezone=True), nullable=False)
    document = Column(JSON, nullable=False)  # FlowRun.model_dump(mode="json")


class AuditLogRecord(Base):
    """Append-only audit trail entry."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    log_id = Column(String, nullable=False, unique=True)
    run_id = Column(String, nullable=True, index=True)
    correlation_id = Column(String, nullable=True, index=True)
    type = Column(String, nullable=False)  # "run_started", "recharge_failed", ...
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=True)


class SettingsRecord(Base):
    """Merchant discount policy. Single row (id=1)."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    apply_to = Column(String, nullable=False)
    existing_discount = Column(String, nullable=False)
    discount_percent = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=True)  # None = indefinite
    apply_to_future_subscriptions = Column(Boolean, default=False, nullable=False)


class ProcessedCustomer(Base):
    """Idempotency ledger: customers whose raffle discount was already applied."""

    __tablename__ = "processed_customers"

    customer_id = Column(String, primary_key=True)
    processed_at = Column(DateTime(timezone=True), nullable=False)
