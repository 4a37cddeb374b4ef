# raffle/flows/subscriptions.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from raffle.models import Subscription, SubscriptionStatus

_STATUS_CYCLE = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELLED)


class SubscriptionProvider(ABC):
    """Source of a customer's current subscription snapshot."""

    @abstractmethod
    def subscriptions_for(self, customer_id: str) -> List[Subscription]:
        """
        Return the customer's subscriptions as they are right now.

        Raises whatever the underlying lookup raises; the orchestrator treats
        that as an unhandled fault.
        """
        pass


class MockSubscriptionProvider(SubscriptionProvider):
    """
    Deterministic stand-in for a Recharge subscription lookup.

    The same customer id always yields the same 2–4 subscriptions, with a mix
    of statuses and pre-existing discounts.
    """

    def subscriptions_for(self, customer_id: str) -> List[Subscription]:
        seed = sum(ord(char) for char in customer_id)
        count = 2 + (seed % 3)

        subscriptions = []
        for index in range(count):
            has_discount = (seed + index * 3) % 4 == 0
            subscriptions.append(
                Subscription(
                    subscription_id=f"sub_{customer_id}_{index + 1}",
                    status=_STATUS_CYCLE[(seed + index) % len(_STATUS_CYCLE)],
                    has_discount=has_discount,
                    discount_percent=5 + ((seed + index) % 3) * 5 if has_discount else None,
                    discount_duration_days=None,
                )
            )
        return subscriptions
