# api_server/services/executor.py
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from raffle.flows import FlowOrchestrator, RunNotFoundError
from raffle.models import FlowInput, FlowRun, RunStatus
from raffle.store import Store

logger = logging.getLogger(__name__)


# Per-customer locks so two runs for the same customer never race the idempotency check.
# An entry lives only while someone holds or waits for it.
_customer_locks: Dict[str, threading.Lock] = {}
_lock_users: Dict[str, int] = {}
_locks_lock = threading.Lock()


@contextmanager
def _customer_lock(customer_id: str) -> Iterator[None]:
    """Hold the customer's lock; drop the entry when the last user leaves."""
    with _locks_lock:
        lock = _customer_locks.setdefault(customer_id, threading.Lock())
        _lock_users[customer_id] = _lock_users.get(customer_id, 0) + 1

    try:
        with lock:
            yield
    finally:
        with _locks_lock:
            _lock_users[customer_id] -= 1
            if _lock_users[customer_id] == 0:
                del _lock_users[customer_id]
                del _customer_locks[customer_id]


def execute_flow(orchestrator: FlowOrchestrator, flow_input: FlowInput) -> FlowRun:
    """
    Run the raffle winner flow for one customer.

    Blocks while another run for the same customer is in flight.
    """
    with _customer_lock(flow_input.customer_id):
        run = orchestrator.start(flow_input)
    logger.info("Run %s for customer %s finished: %s", run.run_id, run.customer_id, run.status.value)
    return run


def retry_flow(orchestrator: FlowOrchestrator, store: Store, run_id: str, force_fail: bool = False) -> FlowRun:
    """
    Manually retry an existing run.

    Raises:
        RunNotFoundError: if the run does not exist
    """
    existing = store.get_run(run_id)
    if existing is None:
        raise RunNotFoundError(run_id)

    with _customer_lock(existing.customer_id):
        run = orchestrator.retry(run_id, force_fail=force_fail)
    logger.info("Retry of run %s finished: %s", run.run_id, run.status.value)
    return run


def list_runs(
    store: Store,
    customer_id: str | None = None,
    status: RunStatus | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[FlowRun], int]:
    """
    List runs (most recent first) with filtering.

    Returns:
        (runs, total_count)
    """
    runs = store.list_runs()

    if customer_id:
        runs = [run for run in runs if run.customer_id == customer_id]
    if status:
        runs = [run for run in runs if run.status == status]

    total = len(runs)
    return runs[offset : offset + limit], total
