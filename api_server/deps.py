# api_server/deps.py
from fastapi import Request

from raffle.flows import FlowOrchestrator
from raffle.store import Store


def get_store(request: Request) -> Store:
    """Store constructed at startup (see lifespan)."""
    return request.app.state.store


def get_orchestrator(request: Request) -> FlowOrchestrator:
    """Orchestrator constructed at startup (see lifespan)."""
    return request.app.state.orchestrator
