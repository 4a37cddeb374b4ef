# api_server/schemas/logs.py
from pydantic import BaseModel

from raffle.models import AuditLog


class LogListResponse(BaseModel):
    """Audit log entries, most recent first."""

    logs: list[AuditLog]
    total: int
