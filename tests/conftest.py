"""Global test configuration and fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from raffle.clock import Clock
from raffle.flows import FlowOrchestrator
from raffle.models import FlowRun
from raffle.store import MemoryStore


class FakeClock(Clock):
    """Deterministic clock: every now() moves time forward by ``step``, sleeps are recorded."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(milliseconds=5)):
        self.current = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)
        self.step = step
        self.sleeps: list[float] = []
        self._ids = 0

    def now(self) -> datetime:
        value = self.current
        self.current += self.step
        return value

    def new_id(self) -> str:
        self._ids += 1
        return f"00000000-0000-4000-8000-{self._ids:012d}"

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def orchestrator(store, clock) -> FlowOrchestrator:
    return FlowOrchestrator(store, clock=clock, max_delay_ms=400)


@pytest.fixture
def make_run(clock):
    """Factory for a bare pending run."""

    def _make_run(customer_id: str = "cust_123", email: str = "winner@example.com") -> FlowRun:
        return FlowRun(
            run_id=clock.new_id(),
            correlation_id=clock.new_id(),
            customer_id=customer_id,
            email=email,
            created_at=clock.now(),
        )

    return _make_run
