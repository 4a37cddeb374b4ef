# raffle/flows/orchestrator.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from raffle.clock import Clock
from raffle.conf import MAX_SIMULATED_DELAY_MS, STAFF_EMAIL
from raffle.flows.audit import AuditRecorder
from raffle.flows.billing import BillingClient, LocalBillingClient
from raffle.flows.errors import RunNotFoundError
from raffle.flows.retry import RetryController
from raffle.flows.subscriptions import MockSubscriptionProvider, SubscriptionProvider
from raffle.models import (
    DEFAULT_SETTINGS,
    AttemptSource,
    AuditLogType,
    FlowInput,
    FlowRun,
    RunStatus,
    Settings,
    StaffEmailPayload,
    Step,
    StepStatus,
    Subscription,
)
from raffle.store.base import Store

logger = logging.getLogger(__name__)

UNHANDLED_STEP_NAME = "Unhandled exception"
MANUAL_RETRY_PREFIX = "Manual retry: "


# Structured logging adapter that includes run_id and customer
class RunLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = self.extra or {}
        run_id = str(extra.get("run_id", "unknown"))[:8]
        customer = str(extra.get("customer_id", "unknown"))
        formatted_msg = f"[run_id={run_id}] [customer={customer}] {msg}"
        return formatted_msg, kwargs


@dataclass
class _RunContext:
    """State threaded through the stages of one execution."""

    run: FlowRun
    force_fail: bool
    source: AttemptSource
    log: RunLoggerAdapter
    settings: Settings = field(default_factory=lambda: DEFAULT_SETTINGS)
    subscriptions: List[Subscription] = field(default_factory=list)

    def step_name(self, name: str) -> str:
        if self.source == AttemptSource.MANUAL:
            return f"{MANUAL_RETRY_PREFIX}{name[0].lower()}{name[1:]}"
        return name


# A stage returns None to continue, or the terminal status that ends the run
Stage = Callable[[_RunContext], Optional[RunStatus]]


class FlowOrchestrator:
    """
    Runs the raffle winner automation for one customer.

    Stages, in order:
    1. Idempotency check (already processed → already_processed)
    2. Fetch subscriptions
    3. Apply Recharge discount with retries (exhausted → needs_review)
    4. Send staff email
    5. Mark customer processed (→ success)

    Both entry points always hand back a persisted run. Any exception raised by
    a collaborator inside the stages becomes a single failed step and a
    failed run. The only error surfaced to callers is RunNotFoundError from
    ``retry``.

    Runs for the same customer must not execute concurrently; that is the
    caller's job.
    """

    def __init__(
        self,
        store: Store,
        subscriptions: SubscriptionProvider | None = None,
        billing: BillingClient | None = None,
        clock: Clock | None = None,
        staff_email: str = STAFF_EMAIL,
        max_delay_ms: int = MAX_SIMULATED_DELAY_MS,
    ):
        self._store = store
        self._subscriptions = subscriptions or MockSubscriptionProvider()
        self._clock = clock or Clock()
        self._staff_email = staff_email
        self._audit = AuditRecorder(store, self._clock)
        self._retry = RetryController(
            billing or LocalBillingClient(self._clock),
            self._audit,
            self._clock,
            max_delay_ms=max_delay_ms,
        )
        self._stages: List[Stage] = [
            self._check_idempotency,
            self._fetch_subscriptions,
            self._apply_discount,
            self._send_staff_email,
            self._mark_processed,
        ]

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def start(self, flow_input: FlowInput) -> FlowRun:
        """Run the flow for a freshly tagged raffle winner."""
        run = FlowRun(
            run_id=self._clock.new_id(),
            correlation_id=self._clock.new_id(),
            customer_id=flow_input.customer_id,
            email=flow_input.email,
            stage=flow_input.stage,
            status=RunStatus.PENDING,
            created_at=self._clock.now(),
        )
        ctx = self._context(run, flow_input.force_fail, AttemptSource.AUTO)
        ctx.log.info("Starting raffle winner flow (stage %d)", run.stage)

        def announce() -> None:
            self._audit.record(
                AuditLogType.RUN_STARTED,
                "Flow triggered by rafflewinner tag.",
                run=run,
                payload={"stage": run.stage, "force_fail": flow_input.force_fail},
            )

        return self._execute(ctx, announce)

    def retry(self, run_id: str, force_fail: bool = False) -> FlowRun:
        """
        Re-run the flow for an existing run, from the idempotency check.

        New steps and attempts are appended to the same run.

        Raises:
            RunNotFoundError: if the store has no run with this id
        """
        run = self._store.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)

        previous_status = run.status
        run.status = RunStatus.PENDING
        ctx = self._context(run, force_fail, AttemptSource.MANUAL)
        ctx.log.info("Manual retry requested (previous status: %s)", previous_status.value)

        def announce() -> None:
            self._audit.record(
                AuditLogType.MANUAL_RETRY,
                "Manual retry initiated.",
                run=run,
                payload={"previous_status": previous_status.value, "force_fail": force_fail},
            )

        return self._execute(ctx, announce)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _context(self, run: FlowRun, force_fail: bool, source: AttemptSource) -> _RunContext:
        log = RunLoggerAdapter(logger, {"run_id": run.run_id, "customer_id": run.customer_id})
        return _RunContext(run=run, force_fail=force_fail, source=source, log=log)

    def _execute(self, ctx: _RunContext, announce: Callable[[], None]) -> FlowRun:
        run = ctx.run
        try:
            ctx.settings = self._store.get_settings() or DEFAULT_SETTINGS
            announce()

            for stage in self._stages:
                outcome = stage(ctx)
                if outcome is not None:
                    run.status = outcome
                    break
        except Exception as e:
            ctx.log.error("Run execution failed with exception: %s", e, exc_info=True)
            step = self._begin_step(UNHANDLED_STEP_NAME)
            step.finalize(StepStatus.FAILED, str(e) or "Unknown error", ended_at=self._clock.now())
            run.add_step(step)
            run.status = RunStatus.FAILED

        self._store.save_run(run)
        ctx.log.info("Run finished with status: %s", run.status.value)
        return run

    def _begin_step(self, name: str, request_payload: Any = None) -> Step:
        started_at = self._clock.now()
        return Step(name=name, started_at=started_at, ended_at=started_at, request_payload=request_payload)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _check_idempotency(self, ctx: _RunContext) -> Optional[RunStatus]:
        run = ctx.run
        step = self._begin_step(ctx.step_name("Idempotency check"), {"customer_id": run.customer_id})
        processed_at = self._store.get_processed_customer(run.customer_id)

        if processed_at is None:
            step.finalize(StepStatus.SUCCESS, "Customer not processed yet.", ended_at=self._clock.now())
            run.add_step(step)
            return None

        processed_iso = processed_at.isoformat()
        step.finalize(
            StepStatus.SUCCESS,
            f"Customer already processed on {processed_iso}.",
            ended_at=self._clock.now(),
            response_payload={"processed_at": processed_iso},
        )
        run.add_step(step)
        self._audit.record(
            AuditLogType.IDEMPOTENCY_HIT,
            "Customer was already processed.",
            run=run,
            payload={"processed_at": processed_iso},
        )
        return RunStatus.ALREADY_PROCESSED

    def _fetch_subscriptions(self, ctx: _RunContext) -> Optional[RunStatus]:
        run = ctx.run
        step = self._begin_step(ctx.step_name("Fetch subscriptions"), {"customer_id": run.customer_id})
        ctx.subscriptions = self._subscriptions.subscriptions_for(run.customer_id)

        step.finalize(
            StepStatus.SUCCESS,
            f"Fetched {len(ctx.subscriptions)} subscriptions.",
            ended_at=self._clock.now(),
            response_payload={"subscriptions": [s.model_dump(mode="json") for s in ctx.subscriptions]},
        )
        run.add_step(step)
        self._audit.record(
            AuditLogType.SUBSCRIPTIONS_FETCHED,
            "Fetched subscriptions from Recharge.",
            run=run,
            payload={"count": len(ctx.subscriptions)},
        )
        return None

    def _apply_discount(self, ctx: _RunContext) -> Optional[RunStatus]:
        run = ctx.run
        outcome = self._retry.apply_with_retries(
            run,
            ctx.subscriptions,
            ctx.settings,
            force_fail=ctx.force_fail,
            step_name=ctx.step_name("Apply Recharge discount"),
            source=ctx.source,
        )
        run.add_step(outcome.step)

        if not outcome.success:
            self._audit.record(
                AuditLogType.RUN_NEEDS_REVIEW,
                "Retries exhausted. Manual review required.",
                run=run,
                payload={"error": outcome.error_message},
            )
            return RunStatus.NEEDS_REVIEW

        ctx.subscriptions = outcome.updated_subscriptions
        return None

    def _send_staff_email(self, ctx: _RunContext) -> Optional[RunStatus]:
        run = ctx.run
        step = self._begin_step(ctx.step_name("Send staff email"), {"channel": "Shopify email"})
        email = self.build_staff_email(run)

        step.finalize(
            StepStatus.SUCCESS,
            "Staff email sent.",
            ended_at=self._clock.now(),
            response_payload=email.model_dump(mode="json"),
        )
        run.add_step(step)
        self._audit.record(
            AuditLogType.EMAIL_SENT,
            "Internal notification email dispatched.",
            run=run,
            payload={"subject": email.subject},
        )
        return None

    def _mark_processed(self, ctx: _RunContext) -> Optional[RunStatus]:
        run = ctx.run
        step = self._begin_step(ctx.step_name("Mark customer processed"))
        processed_at = self._clock.now()
        self._store.mark_customer_processed(run.customer_id, processed_at)

        processed_iso = processed_at.isoformat()
        step.finalize(
            StepStatus.SUCCESS,
            f"Customer processed at {processed_iso}.",
            ended_at=self._clock.now(),
            response_payload={"processed_at": processed_iso},
        )
        run.add_step(step)
        self._audit.record(
            AuditLogType.CUSTOMER_MARKED,
            "Customer marked as processed.",
            run=run,
            payload={"processed_at": processed_iso},
        )
        self._audit.record(AuditLogType.RUN_COMPLETED, "Flow completed successfully.", run=run)
        return RunStatus.SUCCESS

    # ------------------------------------------------------------------
    def build_staff_email(self, run: FlowRun) -> StaffEmailPayload:
        """Internal notification for staff. Nothing is actually delivered."""
        body = "\n".join(
            [
                "A raffle winner discount was applied successfully.",
                f"Customer: {run.customer_id} ({run.email})",
                f"Run ID: {run.run_id}",
                f"Correlation ID: {run.correlation_id}",
                "Please verify the subscription discounts in Recharge.",
            ]
        )
        return StaffEmailPayload(
            to=self._staff_email,
            subject=f"Raffle winner discount applied: {run.customer_id}",
            body=body,
            customer_id=run.customer_id,
            email=run.email,
            run_id=run.run_id,
            correlation_id=run.correlation_id,
        )
