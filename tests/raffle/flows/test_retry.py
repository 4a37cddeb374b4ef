# tests/raffle/flows/test_retry.py
from unittest.mock import MagicMock

import pytest

from raffle.flows.audit import AuditRecorder
from raffle.flows.billing import BillingClient, LocalBillingClient
from raffle.flows.errors import UpstreamError
from raffle.flows.retry import BACKOFF_SCHEDULE_MS, RetryController
from raffle.models import (
    ApplyDiscountResult,
    AttemptSource,
    AttemptStatus,
    AuditLogType,
    Settings,
    StepStatus,
    Subscription,
    SubscriptionStatus,
)


@pytest.fixture
def subscriptions():
    return [Subscription(subscription_id="sub_1", status=SubscriptionStatus.ACTIVE)]


@pytest.fixture
def ok_result(subscriptions):
    return ApplyDiscountResult(
        request_id="req-1",
        applied_count=1,
        skipped_count=0,
        message="Applied 10% discount to 1 subscriptions",
        updated_subscriptions=subscriptions,
    )


def _controller(billing, store, clock, max_delay_ms=400):
    return RetryController(billing, AuditRecorder(store, clock), clock, max_delay_ms=max_delay_ms)


class TestBackoffSchedule:
    def test_schedule(self):
        assert BACKOFF_SCHEDULE_MS == (1000, 5000, 15000)


class TestApplyWithRetries:
    """Test RetryController.apply_with_retries()."""

    def test_first_attempt_succeeds(self, store, clock, make_run, subscriptions, ok_result):
        billing = MagicMock(spec=BillingClient)
        billing.apply_discount.return_value = ok_result
        run = make_run()

        outcome = _controller(billing, store, clock).apply_with_retries(
            run, subscriptions, Settings(), False, "Apply Recharge discount", AttemptSource.AUTO
        )

        assert outcome.success is True
        assert outcome.result == ok_result
        assert outcome.step.status == StepStatus.SUCCESS
        assert outcome.step.message == ok_result.message
        assert len(run.attempts) == 1
        assert run.attempts[0].status == AttemptStatus.SUCCESS
        assert run.attempts[0].backoff_ms == 1000
        assert clock.sleeps == []

        logs = store.list_logs()
        assert [log.type for log in logs] == [AuditLogType.RECHARGE_ATTEMPT]
        assert logs[0].payload == {"request_id": "req-1", "applied_count": 1}

    def test_recovers_on_second_attempt(self, store, clock, make_run, subscriptions, ok_result):
        billing = MagicMock(spec=BillingClient)
        billing.apply_discount.side_effect = [UpstreamError("Recharge API error: 503"), ok_result]
        run = make_run()

        outcome = _controller(billing, store, clock).apply_with_retries(
            run, subscriptions, Settings(), False, "Apply Recharge discount", AttemptSource.AUTO
        )

        assert outcome.success is True
        assert [a.status for a in run.attempts] == [AttemptStatus.FAILED, AttemptStatus.SUCCESS]
        assert [a.attempt for a in run.attempts] == [1, 2]
        assert [a.backoff_ms for a in run.attempts] == [1000, 5000]
        assert run.attempts[0].error_message == "Recharge API error: 503"
        assert clock.sleeps == [0.4]

        types = [log.type for log in reversed(store.list_logs())]
        assert types == [AuditLogType.RECHARGE_FAILED, AuditLogType.RECHARGE_ATTEMPT]

    def test_exhausts_schedule(self, store, clock, make_run, subscriptions):
        run = make_run()

        outcome = _controller(LocalBillingClient(), store, clock).apply_with_retries(
            run, subscriptions, Settings(), True, "Apply Recharge discount", AttemptSource.AUTO
        )

        assert outcome.success is False
        assert outcome.result is None
        assert outcome.updated_subscriptions == subscriptions
        assert outcome.error_message == "Recharge API error: 502 Bad Gateway (simulated)"
        assert outcome.step.status == StepStatus.FAILED
        assert outcome.step.response_payload == {"error": outcome.error_message}

        assert len(run.attempts) == 3
        assert all(a.status == AttemptStatus.FAILED for a in run.attempts)
        assert [a.backoff_ms for a in run.attempts] == list(BACKOFF_SCHEDULE_MS)
        # no wait after the final slot
        assert clock.sleeps == [0.4, 0.4]

        failed = [log for log in reversed(store.list_logs()) if log.type == AuditLogType.RECHARGE_FAILED]
        assert [log.payload["attempt"] for log in failed] == [1, 2, 3]

    def test_delay_is_capped_but_not_raised(self, store, clock, make_run, subscriptions):
        _controller(LocalBillingClient(), store, clock, max_delay_ms=2000).apply_with_retries(
            make_run(), subscriptions, Settings(), True, "Apply Recharge discount", AttemptSource.AUTO
        )

        assert clock.sleeps == [1.0, 2.0]

    def test_manual_source_is_recorded(self, store, clock, make_run, subscriptions, ok_result):
        billing = MagicMock(spec=BillingClient)
        billing.apply_discount.return_value = ok_result
        run = make_run()

        _controller(billing, store, clock).apply_with_retries(
            run, subscriptions, Settings(), False, "Manual retry: apply Recharge discount", AttemptSource.MANUAL
        )

        assert run.attempts[0].source == AttemptSource.MANUAL

    def test_request_carries_settings_and_force_fail(self, store, clock, make_run, subscriptions, ok_result):
        billing = MagicMock(spec=BillingClient)
        billing.apply_discount.return_value = ok_result
        settings = Settings(discount_percent=30)

        _controller(billing, store, clock).apply_with_retries(
            make_run(), subscriptions, settings, False, "Apply Recharge discount", AttemptSource.AUTO
        )

        request = billing.apply_discount.call_args[0][0]
        assert request.customer_id == "cust_123"
        assert request.settings.discount_percent == 30
        assert request.force_fail is False

    def test_other_errors_propagate(self, store, clock, make_run, subscriptions):
        billing = MagicMock(spec=BillingClient)
        billing.apply_discount.side_effect = RuntimeError("bug")
        run = make_run()

        with pytest.raises(RuntimeError, match="bug"):
            _controller(billing, store, clock).apply_with_retries(
                run, subscriptions, Settings(), False, "Apply Recharge discount", AttemptSource.AUTO
            )

        assert billing.apply_discount.call_count == 1
        assert run.attempts == []
