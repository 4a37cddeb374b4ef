# api_server/routers/settings.py
import logging

from fastapi import APIRouter, Depends

from api_server.deps import get_orchestrator, get_store
from raffle.flows import FlowOrchestrator
from raffle.models import DEFAULT_SETTINGS, AuditLogType, Settings
from raffle.store import Store

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/settings", response_model=Settings)
def get_settings_endpoint(store: Store = Depends(get_store)):
    """Current discount policy (defaults if the merchant never saved one)."""
    return store.get_settings() or DEFAULT_SETTINGS


@router.post("/settings", response_model=Settings)
def update_settings_endpoint(
    request: Settings,
    store: Store = Depends(get_store),
    orchestrator: FlowOrchestrator = Depends(get_orchestrator),
):
    """Replace the discount policy."""
    store.save_settings(request)
    orchestrator.audit.record(
        AuditLogType.SETTINGS_UPDATED,
        "Settings updated by merchant.",
        payload=request.model_dump(mode="json"),
    )
    logger.info("Settings updated: %s", request.model_dump(mode="json"))
    return request
