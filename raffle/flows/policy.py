# raffle/flows/policy.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from raffle.flows.errors import SimulatedUpstreamError
from raffle.models import (
    ApplyDiscountResult,
    ApplyTo,
    ExistingDiscountPolicy,
    Settings,
    SkippedSubscription,
    Subscription,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)


def eligible_statuses(settings: Settings) -> tuple[SubscriptionStatus, ...]:
    """Subscription statuses the policy allows a discount on."""
    if settings.apply_to == ApplyTo.ACTIVE_ONLY:
        return (SubscriptionStatus.ACTIVE,)
    if settings.apply_to == ApplyTo.ACTIVE_AND_PAUSED:
        return (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)
    raise ValueError(f"Unknown apply_to policy: {settings.apply_to}")


def apply_discount(
    customer_id: str,
    email: str,
    subscriptions: List[Subscription],
    settings: Settings,
    force_fail: bool = False,
    request_id: Optional[str] = None,
) -> ApplyDiscountResult:
    """
    Apply the merchant's discount policy to a customer's subscriptions.

    Each subscription is handled independently:
    1. Status not eligible under ``settings.apply_to`` → skipped, unchanged
    2. Already discounted and ``existing_discount`` is skip → skipped, unchanged
    3. Otherwise the policy percent and duration are written onto a copy

    The input list is never mutated.

    Raises:
        SimulatedUpstreamError: when ``force_fail`` is set, before any work is done
    """
    if force_fail:
        raise SimulatedUpstreamError()

    eligible = eligible_statuses(settings)
    applied_count = 0
    skipped: List[SkippedSubscription] = []
    updated: List[Subscription] = []

    for subscription in subscriptions:
        if subscription.status not in eligible:
            skipped.append(
                SkippedSubscription(
                    subscription_id=subscription.subscription_id,
                    reason=f"Status {subscription.status.value} is excluded by policy",
                )
            )
            updated.append(subscription)
            continue

        if subscription.has_discount and settings.existing_discount == ExistingDiscountPolicy.SKIP:
            skipped.append(
                SkippedSubscription(
                    subscription_id=subscription.subscription_id,
                    reason="Existing discount preserved",
                )
            )
            updated.append(subscription)
            continue

        applied_count += 1
        updated.append(
            subscription.model_copy(
                update={
                    "has_discount": True,
                    "discount_percent": settings.discount_percent,
                    "discount_duration_days": settings.duration_days,
                }
            )
        )

    if applied_count == 0:
        message = "No eligible subscriptions to update"
    else:
        message = f"Applied {settings.discount_percent}% discount to {applied_count} subscriptions"

    logger.debug("Discount policy for %s (%s): %s", customer_id, email, message)

    return ApplyDiscountResult(
        ok=True,
        request_id=request_id or str(uuid.uuid4()),
        applied_count=applied_count,
        skipped_count=len(skipped),
        message=message,
        updated_subscriptions=updated,
        skipped=skipped,
        applied_to_future_subscriptions=settings.apply_to_future_subscriptions,
    )
