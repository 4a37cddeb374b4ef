# api_server/routers/health.py
from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health_check():
    """Liveness probe."""
    return {"status": "ok"}
