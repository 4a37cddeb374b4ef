# tests/raffle/flows/test_billing.py
from unittest.mock import MagicMock

import pytest
import requests

from raffle.flows.billing import HttpBillingClient, LocalBillingClient
from raffle.flows.errors import SimulatedUpstreamError, UpstreamError
from raffle.models import ApplyDiscountRequest, Settings, Subscription, SubscriptionStatus


@pytest.fixture
def request_payload():
    return ApplyDiscountRequest(
        customer_id="cust_123",
        email="winner@example.com",
        subscriptions=[Subscription(subscription_id="sub_1", status=SubscriptionStatus.ACTIVE)],
        settings=Settings(),
    )


def _response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.text = text
    response.json.return_value = body
    return response


class TestLocalBillingClient:
    def test_applies_policy(self, request_payload):
        result = LocalBillingClient().apply_discount(request_payload)

        assert result.applied_count == 1
        assert result.updated_subscriptions[0].discount_percent == 10

    def test_force_fail(self, request_payload):
        request_payload.force_fail = True
        with pytest.raises(SimulatedUpstreamError):
            LocalBillingClient().apply_discount(request_payload)

    def test_request_id_from_clock(self, request_payload, clock):
        client = LocalBillingClient(clock)

        first = client.apply_discount(request_payload)
        second = client.apply_discount(request_payload)

        assert first.request_id == "00000000-0000-4000-8000-000000000001"
        assert second.request_id == "00000000-0000-4000-8000-000000000002"


class TestHttpBillingClient:
    """Test HttpBillingClient.apply_discount() against a mocked session."""

    def test_success(self, request_payload):
        session = MagicMock()
        session.post.return_value = _response(
            body={
                "ok": True,
                "request_id": "req-9",
                "applied_count": 1,
                "skipped_count": 0,
                "message": "Applied 10% discount to 1 subscriptions",
                "updated_subscriptions": [{"subscription_id": "sub_1", "status": "active", "has_discount": True}],
            }
        )
        client = HttpBillingClient("http://recharge.test/apply", timeout_s=3, session=session)

        result = client.apply_discount(request_payload)

        assert result.request_id == "req-9"
        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "http://recharge.test/apply"
        assert kwargs["timeout"] == 3
        assert kwargs["json"]["customer_id"] == "cust_123"

    def test_non_2xx_is_upstream_error(self, request_payload):
        session = MagicMock()
        session.post.return_value = _response(status_code=502, text="Bad Gateway")
        client = HttpBillingClient("http://recharge.test/apply", session=session)

        with pytest.raises(UpstreamError, match="502"):
            client.apply_discount(request_payload)

    def test_timeout_is_upstream_error(self, request_payload):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")
        client = HttpBillingClient("http://recharge.test/apply", timeout_s=2, session=session)

        with pytest.raises(UpstreamError, match="timed out"):
            client.apply_discount(request_payload)

    def test_connection_error_is_upstream_error(self, request_payload):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        client = HttpBillingClient("http://recharge.test/apply", session=session)

        with pytest.raises(UpstreamError, match="unreachable"):
            client.apply_discount(request_payload)

    def test_invalid_body_is_upstream_error(self, request_payload):
        session = MagicMock()
        session.post.return_value = _response(body={"unexpected": True})
        client = HttpBillingClient("http://recharge.test/apply", session=session)

        with pytest.raises(UpstreamError, match="invalid body"):
            client.apply_discount(request_payload)
