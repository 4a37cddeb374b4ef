# api_server/routers/stages.py
from fastapi import APIRouter, Depends

from api_server.deps import get_orchestrator
from api_server.schemas.stages import StageSimulationRequest, StageSimulationResponse
from api_server.services.stages import simulate_stage
from raffle.flows import FlowOrchestrator

router = APIRouter()


@router.post("/stages/simulate", response_model=StageSimulationResponse)
def simulate_stage_endpoint(
    request: StageSimulationRequest,
    orchestrator: FlowOrchestrator = Depends(get_orchestrator),
):
    """Run a batch of synthetic raffle winners for one stage."""
    return simulate_stage(orchestrator, request.stage, request.count)
