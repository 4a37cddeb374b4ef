# api_server/schemas/runs.py
from pydantic import BaseModel, Field

from raffle.models import FlowRun


class RunRetryRequest(BaseModel):
    """Request to manually retry a run."""

    force_fail: bool = Field(False, description="Force every Recharge call of the retry to fail")


class RunListResponse(BaseModel):
    """List of runs with pagination."""

    runs: list[FlowRun]
    total: int
    limit: int
    offset: int
