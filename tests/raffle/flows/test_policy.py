# tests/raffle/flows/test_policy.py
import pytest

from raffle.flows.errors import SimulatedUpstreamError, UpstreamError
from raffle.flows.policy import apply_discount, eligible_statuses
from raffle.models import ApplyTo, ExistingDiscountPolicy, Settings, Subscription, SubscriptionStatus


def _sub(sub_id: str, status: str, has_discount: bool = False, percent: int | None = None) -> Subscription:
    return Subscription(
        subscription_id=sub_id,
        status=SubscriptionStatus(status),
        has_discount=has_discount,
        discount_percent=percent,
    )


@pytest.fixture
def subscriptions():
    return [
        _sub("sub_1", "active"),
        _sub("sub_2", "paused"),
        _sub("sub_3", "cancelled"),
        _sub("sub_4", "active", has_discount=True, percent=5),
    ]


class TestEligibleStatuses:
    """Test eligible_statuses() function."""

    def test_active_only(self):
        assert eligible_statuses(Settings(apply_to=ApplyTo.ACTIVE_ONLY)) == (SubscriptionStatus.ACTIVE,)

    def test_active_and_paused(self):
        statuses = eligible_statuses(Settings(apply_to=ApplyTo.ACTIVE_AND_PAUSED))
        assert SubscriptionStatus.PAUSED in statuses
        assert SubscriptionStatus.CANCELLED not in statuses


class TestApplyDiscount:
    """Test apply_discount() function."""

    def test_default_policy_applies_to_active_without_discount(self, subscriptions):
        """Default settings: active only, existing discounts preserved."""
        result = apply_discount("cust_1", "a@example.com", subscriptions, Settings())

        assert result.ok is True
        assert result.applied_count == 1
        assert result.skipped_count == 3
        assert result.message == "Applied 10% discount to 1 subscriptions"

        by_id = {s.subscription_id: s for s in result.updated_subscriptions}
        assert by_id["sub_1"].has_discount is True
        assert by_id["sub_1"].discount_percent == 10
        assert by_id["sub_4"].discount_percent == 5

    def test_skip_reasons(self, subscriptions):
        result = apply_discount("cust_1", "a@example.com", subscriptions, Settings())

        reasons = {s.subscription_id: s.reason for s in result.skipped}
        assert reasons["sub_2"] == "Status paused is excluded by policy"
        assert reasons["sub_3"] == "Status cancelled is excluded by policy"
        assert reasons["sub_4"] == "Existing discount preserved"

    def test_override_and_paused(self, subscriptions):
        settings = Settings(
            apply_to=ApplyTo.ACTIVE_AND_PAUSED,
            existing_discount=ExistingDiscountPolicy.OVERRIDE,
            discount_percent=25,
            duration_days=30,
        )

        result = apply_discount("cust_1", "a@example.com", subscriptions, settings)

        assert result.applied_count == 3
        assert result.skipped_count == 1
        by_id = {s.subscription_id: s for s in result.updated_subscriptions}
        assert by_id["sub_4"].discount_percent == 25
        assert by_id["sub_2"].discount_duration_days == 30
        assert by_id["sub_3"].has_discount is False

    def test_counts_add_up_and_order_is_kept(self, subscriptions):
        result = apply_discount("cust_1", "a@example.com", subscriptions, Settings())

        assert result.applied_count + result.skipped_count == len(subscriptions)
        assert [s.subscription_id for s in result.updated_subscriptions] == ["sub_1", "sub_2", "sub_3", "sub_4"]

    def test_input_not_mutated(self, subscriptions):
        apply_discount("cust_1", "a@example.com", subscriptions, Settings(discount_percent=50))

        assert subscriptions[0].has_discount is False
        assert subscriptions[0].discount_percent is None

    def test_nothing_eligible(self):
        result = apply_discount("cust_1", "a@example.com", [_sub("sub_1", "cancelled")], Settings())

        assert result.applied_count == 0
        assert result.message == "No eligible subscriptions to update"

    def test_empty_subscription_list(self):
        result = apply_discount("cust_1", "a@example.com", [], Settings())

        assert result.applied_count == 0
        assert result.skipped_count == 0
        assert result.updated_subscriptions == []

    def test_future_flag_is_echoed(self):
        result = apply_discount("cust_1", "a@example.com", [], Settings(apply_to_future_subscriptions=True))
        assert result.applied_to_future_subscriptions is True

    def test_request_id_passthrough(self):
        result = apply_discount("cust_1", "a@example.com", [], Settings(), request_id="req-1")
        assert result.request_id == "req-1"

    def test_force_fail_raises_upstream_error(self, subscriptions):
        with pytest.raises(SimulatedUpstreamError) as exc_info:
            apply_discount("cust_1", "a@example.com", subscriptions, Settings(), force_fail=True)

        assert isinstance(exc_info.value, UpstreamError)
        assert "502" in str(exc_info.value)
