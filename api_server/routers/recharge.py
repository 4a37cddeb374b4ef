# api_server/routers/recharge.py
from fastapi import APIRouter, Depends, HTTPException, status

from api_server.deps import get_store
from api_server.schemas.recharge import ApplyDiscountPayload
from raffle.flows import SimulatedUpstreamError, apply_discount
from raffle.models import DEFAULT_SETTINGS, ApplyDiscountResult
from raffle.store import Store

router = APIRouter()


@router.post("/recharge/apply-discount", response_model=ApplyDiscountResult)
def apply_discount_endpoint(request: ApplyDiscountPayload, store: Store = Depends(get_store)):
    """Mock Recharge endpoint: evaluate the discount policy for a set of subscriptions."""
    settings = request.settings or store.get_settings() or DEFAULT_SETTINGS
    try:
        return apply_discount(
            customer_id=request.customer_id,
            email=request.email,
            subscriptions=request.subscriptions,
            settings=settings,
            force_fail=request.force_fail,
        )
    except SimulatedUpstreamError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
