# raffle/flows/billing.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import requests
from pydantic import ValidationError

from raffle.clock import Clock
from raffle.flows.errors import UpstreamError
from raffle.flows.policy import apply_discount
from raffle.models import ApplyDiscountRequest, ApplyDiscountResult

logger = logging.getLogger(__name__)


class BillingClient(ABC):
    """Recharge billing API as seen by the retry controller."""

    @abstractmethod
    def apply_discount(self, request: ApplyDiscountRequest) -> ApplyDiscountResult:
        """
        Apply the discount policy to the customer's subscriptions.

        Raises:
            UpstreamError: on any failure that is worth retrying
        """
        pass


class LocalBillingClient(BillingClient):
    """Evaluates the discount policy in-process. Request ids come from ``clock``."""

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or Clock()

    def apply_discount(self, request: ApplyDiscountRequest) -> ApplyDiscountResult:
        return apply_discount(
            customer_id=request.customer_id,
            email=request.email,
            subscriptions=request.subscriptions,
            settings=request.settings,
            force_fail=request.force_fail,
            request_id=self.clock.new_id(),
        )


class HttpBillingClient(BillingClient):
    """
    Calls a Recharge-compatible apply-discount endpoint over HTTP.

    Timeouts, connection errors, non-2xx responses and malformed bodies all
    surface as UpstreamError so they count as a failed attempt.
    """

    def __init__(self, url: str, timeout_s: float = 10.0, session: requests.Session | None = None):
        self.url = url
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def apply_discount(self, request: ApplyDiscountRequest) -> ApplyDiscountResult:
        try:
            response = self.session.post(
                self.url,
                json=request.model_dump(mode="json"),
                timeout=self.timeout_s,
            )
        except requests.Timeout as e:
            raise UpstreamError(f"Recharge API timed out after {self.timeout_s}s") from e
        except requests.RequestException as e:
            raise UpstreamError(f"Recharge API unreachable: {e}") from e

        if not response.ok:
            detail = response.text[:200]
            logger.warning("Recharge API returned %s for %s: %s", response.status_code, request.customer_id, detail)
            raise UpstreamError(f"Recharge API error: {response.status_code} {detail}".strip())

        try:
            return ApplyDiscountResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamError(f"Recharge API returned an invalid body: {e}") from e
