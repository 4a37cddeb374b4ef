# raffle/models.py
from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, PositiveInt, computed_field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Stage = Literal[1, 2, 3]


def validate_email_address(v: str) -> str:
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Email must be valid.")
    return v


def _duration_ms(started_at: datetime, ended_at: datetime) -> int:
    return max(0, int((ended_at - started_at).total_seconds() * 1000))


class RunStatus(str, Enum):
    """Lifecycle of a flow run. Everything except PENDING is terminal."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    ALREADY_PROCESSED = "already_processed"
    NEEDS_REVIEW = "needs_review"


class StepStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class AttemptSource(str, Enum):
    """Who triggered the discount call: the flow itself or a manual retry."""

    AUTO = "auto"
    MANUAL = "manual"


class AttemptPhase(str, Enum):
    APPLY_DISCOUNT = "apply_discount"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class ApplyTo(str, Enum):
    ACTIVE_ONLY = "active_only"
    ACTIVE_AND_PAUSED = "active_and_paused"


class ExistingDiscountPolicy(str, Enum):
    SKIP = "skip"
    OVERRIDE = "override"


class AuditLogType(str, Enum):
    """Closed set of audit event types."""

    RUN_STARTED = "run_started"
    IDEMPOTENCY_HIT = "idempotency_hit"
    SUBSCRIPTIONS_FETCHED = "subscriptions_fetched"
    RECHARGE_ATTEMPT = "recharge_attempt"
    RECHARGE_FAILED = "recharge_failed"
    EMAIL_SENT = "email_sent"
    CUSTOMER_MARKED = "customer_marked"
    RUN_COMPLETED = "run_completed"
    RUN_NEEDS_REVIEW = "run_needs_review"
    SETTINGS_UPDATED = "settings_updated"
    STAGE_SIMULATED = "stage_simulated"
    MANUAL_RETRY = "manual_retry"


class Subscription(BaseModel):
    """A Recharge subscription as seen by the discount policy."""

    subscription_id: str
    status: SubscriptionStatus
    has_discount: bool = False
    discount_percent: Optional[int] = None
    discount_duration_days: Optional[int] = None


class Settings(BaseModel):
    """Merchant discount policy."""

    apply_to: ApplyTo = Field(ApplyTo.ACTIVE_ONLY, description="Which subscription statuses are eligible")
    existing_discount: ExistingDiscountPolicy = Field(
        ExistingDiscountPolicy.SKIP, description="What to do with subscriptions that already have a discount"
    )
    discount_percent: int = Field(10, ge=1, le=90, description="Discount percentage to apply")
    duration_days: Optional[PositiveInt] = Field(None, description="Discount duration in days (None = indefinite)")
    apply_to_future_subscriptions: bool = Field(False, description="Advisory flag carried into results")

    @field_validator("duration_days", mode="before")
    @classmethod
    def blank_duration_is_indefinite(cls, v: Any) -> Any:
        """Treat empty form values as an indefinite duration."""
        if v == "" or v is None:
            return None
        return v

    @field_validator("apply_to_future_subscriptions", mode="before")
    @classmethod
    def coerce_future_flag(cls, v: Any) -> bool:
        return v is True or v == "true"


DEFAULT_SETTINGS = Settings()


class FlowInput(BaseModel):
    """Trigger payload for a raffle winner run."""

    customer_id: str = Field(..., min_length=1, description="Customer ID is required.")
    email: str = Field(..., description="Customer email")
    stage: Stage = Field(1, description="Raffle stage (1, 2 or 3)")
    force_fail: bool = Field(False, description="Force every Recharge call to fail")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_address(v)


class Step(BaseModel):
    """One named stage of a run's pipeline."""

    name: str
    status: StepStatus = StepStatus.PENDING
    message: str = ""
    started_at: datetime
    ended_at: datetime
    request_payload: Optional[Any] = None
    response_payload: Optional[Any] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_ms(self) -> int:
        return _duration_ms(self.started_at, self.ended_at)

    def finalize(
        self,
        status: StepStatus,
        message: str,
        ended_at: datetime,
        response_payload: Any = None,
    ) -> "Step":
        """Close the step. Only finalized steps are appended to a run."""
        if status == StepStatus.PENDING:
            raise ValueError("A step cannot be finalized as pending")
        self.status = status
        self.message = message
        self.ended_at = ended_at
        self.response_payload = response_payload
        return self


class Attempt(BaseModel):
    """One try of the apply-discount retry loop."""

    attempt: int = Field(..., ge=1)
    source: AttemptSource
    phase: AttemptPhase = AttemptPhase.APPLY_DISCOUNT
    status: AttemptStatus
    started_at: datetime
    ended_at: datetime
    backoff_ms: int
    error_message: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_ms(self) -> int:
        return _duration_ms(self.started_at, self.ended_at)


class FlowRun(BaseModel):
    """One execution of the raffle winner automation for one customer."""

    run_id: str
    correlation_id: str
    customer_id: str
    email: str
    stage: Stage = 1
    status: RunStatus = RunStatus.PENDING
    created_at: datetime
    steps: List[Step] = Field(default_factory=list)
    attempts: List[Attempt] = Field(default_factory=list)

    def add_step(self, step: Step) -> None:
        if step.status == StepStatus.PENDING:
            raise ValueError(f"Step '{step.name}' must be finalized before it is recorded")
        self.steps.append(step)


class AuditLog(BaseModel):
    """Append-only audit trail entry."""

    log_id: str
    run_id: Optional[str] = None
    correlation_id: Optional[str] = None
    type: AuditLogType
    message: str
    created_at: datetime
    payload: Optional[Any] = None


class StaffEmailPayload(BaseModel):
    to: str
    subject: str
    body: str
    customer_id: str
    email: str
    run_id: str
    correlation_id: str


class SkippedSubscription(BaseModel):
    subscription_id: str
    reason: str


class ApplyDiscountRequest(BaseModel):
    """Payload sent to Recharge to apply a discount."""

    customer_id: str = Field(..., min_length=1)
    email: str
    subscriptions: List[Subscription]
    settings: Settings
    force_fail: bool = False


class ApplyDiscountResult(BaseModel):
    """Recharge's answer to an apply-discount request."""

    ok: bool = True
    request_id: str
    applied_count: int
    skipped_count: int
    message: str
    updated_subscriptions: List[Subscription]
    skipped: List[SkippedSubscription] = Field(default_factory=list)
    applied_to_future_subscriptions: bool = False
