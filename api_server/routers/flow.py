# api_server/routers/flow.py
from fastapi import APIRouter, Depends

from api_server.deps import get_orchestrator
from api_server.services.executor import execute_flow
from raffle.flows import FlowOrchestrator
from raffle.models import FlowInput, FlowRun

router = APIRouter()


@router.post("/flow/rafflewinner", response_model=FlowRun)
def trigger_raffle_winner_flow(request: FlowInput, orchestrator: FlowOrchestrator = Depends(get_orchestrator)):
    """Run the flow for a customer that was just tagged as a raffle winner."""
    return execute_flow(orchestrator, request)
