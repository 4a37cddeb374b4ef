# api_server/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api_server.routers import flow, health, logs, recharge, runs, settings, stages

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    from raffle.conf import DATABASE_URL, RECHARGE_API_URL, RECHARGE_TIMEOUT_S
    from raffle.flows import FlowOrchestrator, HttpBillingClient, LocalBillingClient
    from raffle.store import create_store

    store = create_store(DATABASE_URL)

    if RECHARGE_API_URL:
        billing = HttpBillingClient(RECHARGE_API_URL, timeout_s=RECHARGE_TIMEOUT_S)
        logger.info("Recharge discounts go through %s", RECHARGE_API_URL)
    else:
        billing = LocalBillingClient()

    app.state.store = store
    app.state.orchestrator = FlowOrchestrator(store, billing=billing)

    logger.info("API server started")

    yield

    # Shutdown
    store.close()
    logger.info("Store closed")


app = FastAPI(
    title="Raffle Winner Automation API",
    description="Applies raffle winner discounts to Recharge subscriptions with retries and an audit trail",
    version="0.1.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(flow.router, prefix="/api/v1", tags=["flow"])
app.include_router(runs.router, prefix="/api/v1", tags=["runs"])
app.include_router(settings.router, prefix="/api/v1", tags=["settings"])
app.include_router(logs.router, prefix="/api/v1", tags=["logs"])
app.include_router(stages.router, prefix="/api/v1", tags=["stages"])
app.include_router(recharge.router, prefix="/api/v1", tags=["recharge"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
