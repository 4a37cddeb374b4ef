# raffle/flows/__init__.py
from raffle.flows.billing import BillingClient, HttpBillingClient, LocalBillingClient
from raffle.flows.errors import RunNotFoundError, SimulatedUpstreamError, UpstreamError
from raffle.flows.orchestrator import FlowOrchestrator
from raffle.flows.policy import apply_discount
from raffle.flows.retry import BACKOFF_SCHEDULE_MS, RetryController
from raffle.flows.subscriptions import MockSubscriptionProvider, SubscriptionProvider

__all__ = [
    "FlowOrchestrator",
    "RetryController",
    "BACKOFF_SCHEDULE_MS",
    "apply_discount",
    "BillingClient",
    "LocalBillingClient",
    "HttpBillingClient",
    "SubscriptionProvider",
    "MockSubscriptionProvider",
    "RunNotFoundError",
    "UpstreamError",
    "SimulatedUpstreamError",
]
