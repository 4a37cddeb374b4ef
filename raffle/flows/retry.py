# raffle/flows/retry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from raffle.clock import Clock
from raffle.conf import MAX_SIMULATED_DELAY_MS
from raffle.flows.audit import AuditRecorder
from raffle.flows.billing import BillingClient
from raffle.flows.errors import UpstreamError
from raffle.models import (
    ApplyDiscountRequest,
    ApplyDiscountResult,
    Attempt,
    AttemptSource,
    AttemptStatus,
    AuditLogType,
    FlowRun,
    Settings,
    Step,
    StepStatus,
    Subscription,
)

logger = logging.getLogger(__name__)

# One attempt per slot; the value is the wait after a failure in that slot
BACKOFF_SCHEDULE_MS = (1000, 5000, 15000)

DEFAULT_FAILURE_MESSAGE = "Recharge apply discount failed"


@dataclass
class DiscountOutcome:
    """What the retry loop hands back to the orchestrator."""

    step: Step
    success: bool
    updated_subscriptions: List[Subscription]
    result: Optional[ApplyDiscountResult] = None
    error_message: Optional[str] = None


class RetryController:
    """Bounded retry with a fixed backoff schedule around the Recharge discount call."""

    def __init__(
        self,
        billing: BillingClient,
        audit: AuditRecorder,
        clock: Clock,
        max_delay_ms: int = MAX_SIMULATED_DELAY_MS,
    ):
        self._billing = billing
        self._audit = audit
        self._clock = clock
        self._max_delay_ms = max_delay_ms

    def apply_with_retries(
        self,
        run: FlowRun,
        subscriptions: List[Subscription],
        settings: Settings,
        force_fail: bool,
        step_name: str,
        source: AttemptSource,
    ) -> DiscountOutcome:
        """
        Try the discount call once per backoff slot until it succeeds.

        Every try is appended to ``run.attempts``. The returned step is
        finalized but not yet added to the run.

        Only UpstreamError is retried; anything else propagates.
        """
        started_at = self._clock.now()
        step = Step(
            name=step_name,
            started_at=started_at,
            ended_at=started_at,
            request_payload={
                "customer_id": run.customer_id,
                "settings": settings.model_dump(mode="json"),
                "subscriptions": [s.model_dump(mode="json") for s in subscriptions],
            },
        )
        request = ApplyDiscountRequest(
            customer_id=run.customer_id,
            email=run.email,
            subscriptions=subscriptions,
            settings=settings,
            force_fail=force_fail,
        )
        last_error = ""

        for index, backoff_ms in enumerate(BACKOFF_SCHEDULE_MS):
            attempt_number = index + 1
            attempt_start = self._clock.now()

            try:
                result = self._billing.apply_discount(request)
            except UpstreamError as e:
                last_error = str(e)
                run.attempts.append(
                    Attempt(
                        attempt=attempt_number,
                        source=source,
                        status=AttemptStatus.FAILED,
                        started_at=attempt_start,
                        ended_at=self._clock.now(),
                        backoff_ms=backoff_ms,
                        error_message=last_error,
                    )
                )
                self._audit.record(
                    AuditLogType.RECHARGE_FAILED,
                    last_error,
                    run=run,
                    payload={"attempt": attempt_number},
                )

                if attempt_number < len(BACKOFF_SCHEDULE_MS):
                    delay_ms = min(backoff_ms, self._max_delay_ms)
                    logger.debug("Attempt %d failed, retrying in %dms", attempt_number, delay_ms)
                    self._clock.sleep(delay_ms / 1000)
                continue

            run.attempts.append(
                Attempt(
                    attempt=attempt_number,
                    source=source,
                    status=AttemptStatus.SUCCESS,
                    started_at=attempt_start,
                    ended_at=self._clock.now(),
                    backoff_ms=backoff_ms,
                )
            )
            step.finalize(
                StepStatus.SUCCESS,
                result.message,
                ended_at=self._clock.now(),
                response_payload=result.model_dump(mode="json"),
            )
            self._audit.record(
                AuditLogType.RECHARGE_ATTEMPT,
                result.message,
                run=run,
                payload={"request_id": result.request_id, "applied_count": result.applied_count},
            )
            return DiscountOutcome(
                step=step,
                success=True,
                updated_subscriptions=result.updated_subscriptions,
                result=result,
            )

        step.finalize(
            StepStatus.FAILED,
            last_error or DEFAULT_FAILURE_MESSAGE,
            ended_at=self._clock.now(),
            response_payload={"error": last_error},
        )
        return DiscountOutcome(
            step=step,
            success=False,
            updated_subscriptions=subscriptions,
            error_message=last_error or DEFAULT_FAILURE_MESSAGE,
        )
