# api_server/routers/runs.py
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from api_server.deps import get_orchestrator, get_store
from api_server.schemas.runs import RunListResponse, RunRetryRequest
from api_server.services.executor import list_runs, retry_flow
from raffle.flows import FlowOrchestrator, RunNotFoundError
from raffle.models import FlowRun, RunStatus
from raffle.store import Store

router = APIRouter()


@router.get("/runs", response_model=RunListResponse)
def list_runs_endpoint(
    customer_id: str | None = Query(None, description="Filter by customer ID"),
    status: RunStatus | None = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of runs to return"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    store: Store = Depends(get_store),
):
    """List runs, most recent first."""
    runs, total = list_runs(store, customer_id=customer_id, status=status, limit=limit, offset=offset)

    return RunListResponse(runs=runs, total=total, limit=limit, offset=offset)


@router.get("/runs/{run_id}", response_model=FlowRun)
def get_run_endpoint(run_id: str, store: Store = Depends(get_store)):
    """Get a run with all of its steps and attempts."""
    run = store.get_run(run_id)
    if not run:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")

    return run


@router.post("/runs/{run_id}/retry", response_model=FlowRun)
def retry_run_endpoint(
    run_id: str,
    request: Optional[RunRetryRequest] = Body(None),
    orchestrator: FlowOrchestrator = Depends(get_orchestrator),
    store: Store = Depends(get_store),
):
    """Manually retry a run from the idempotency check."""
    force_fail = request.force_fail if request else False
    try:
        return retry_flow(orchestrator, store, run_id, force_fail=force_fail)
    except RunNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
