# api_server/services/stages.py
import logging
from datetime import timedelta

from api_server.schemas.stages import StagedRun, StageSimulationResponse
from api_server.services.executor import execute_flow
from raffle.clock import Clock
from raffle.conf import STAGE_THROTTLE_MS
from raffle.flows import FlowOrchestrator
from raffle.models import AuditLogType, FlowInput, Stage

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def build_stage_customer(stage: int, index: int, epoch_ms: int) -> tuple[str, str]:
    """Synthetic (customer_id, email) for the index-th winner of a stage batch."""
    suffix = f"{_to_base36(epoch_ms)}-{index + 1}"
    return f"stage{stage}-winner-{suffix}", f"winner{index + 1}.stage{stage}@example.com"


def simulate_stage(
    orchestrator: FlowOrchestrator,
    stage: Stage,
    count: int,
    clock: Clock | None = None,
) -> StageSimulationResponse:
    """
    Run a batch of synthetic raffle winners for one stage.

    Runs execute one after another right away. ``scheduled_at`` is only the
    time each run would have been released at under the stage throttle.
    """
    clock = clock or Clock()
    started_at = clock.now()
    epoch_ms = int(started_at.timestamp() * 1000)

    runs = []
    for index in range(count):
        customer_id, email = build_stage_customer(stage, index, epoch_ms)
        scheduled_at = started_at + timedelta(milliseconds=index * STAGE_THROTTLE_MS)
        run = execute_flow(orchestrator, FlowInput(customer_id=customer_id, email=email, stage=stage))
        runs.append(
            StagedRun(
                run_id=run.run_id,
                customer_id=customer_id,
                email=email,
                scheduled_at=scheduled_at,
                status=run.status,
            )
        )

    orchestrator.audit.record(
        AuditLogType.STAGE_SIMULATED,
        f"Stage {stage} batch simulated.",
        payload={"stage": stage, "count": count, "throttle_ms": STAGE_THROTTLE_MS},
    )
    logger.info("Simulated stage %d batch of %d runs", stage, count)

    return StageSimulationResponse(
        stage=stage,
        count=count,
        throttle_ms=STAGE_THROTTLE_MS,
        started_at=started_at,
        runs=runs,
    )
