# api_server/routers/logs.py
from fastapi import APIRouter, Depends, Query

from api_server.deps import get_store
from api_server.schemas.logs import LogListResponse
from raffle.store import Store

router = APIRouter()


@router.get("/logs", response_model=LogListResponse)
def list_logs_endpoint(
    run_id: str | None = Query(None, description="Filter by run ID"),
    correlation_id: str | None = Query(None, description="Filter by correlation ID"),
    store: Store = Depends(get_store),
):
    """Audit trail, most recent first."""
    logs = store.list_logs()

    if run_id:
        logs = [entry for entry in logs if entry.run_id == run_id]
    if correlation_id:
        logs = [entry for entry in logs if entry.correlation_id == correlation_id]

    return LogListResponse(logs=logs, total=len(logs))
