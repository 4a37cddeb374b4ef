# api_server/schemas/stages.py
from datetime import datetime

from pydantic import BaseModel, Field

from raffle.models import RunStatus, Stage


class StageSimulationRequest(BaseModel):
    """Request to simulate a batch of raffle winners for one stage."""

    stage: Stage = Field(..., description="Raffle stage (1, 2 or 3)")
    count: int = Field(..., ge=1, le=50, description="Number of winners in the batch")


class StagedRun(BaseModel):
    """One run of a simulated batch."""

    run_id: str
    customer_id: str
    email: str
    scheduled_at: datetime  # Label only, the run executes immediately
    status: RunStatus


class StageSimulationResponse(BaseModel):
    stage: Stage
    count: int
    throttle_ms: int
    started_at: datetime
    runs: list[StagedRun]
