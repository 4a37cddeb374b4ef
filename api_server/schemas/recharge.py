# api_server/schemas/recharge.py
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from raffle.models import Settings, Subscription, validate_email_address


class ApplyDiscountPayload(BaseModel):
    """Request body of the mock Recharge apply-discount endpoint."""

    customer_id: str = Field(..., min_length=1, description="Recharge customer ID")
    email: str = Field(..., description="Customer email")
    subscriptions: list[Subscription] = Field(..., description="Subscriptions to evaluate")
    settings: Optional[Settings] = Field(None, description="Discount policy; stored settings when omitted")
    force_fail: bool = Field(False, description="Answer with a simulated 502")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_address(v)
