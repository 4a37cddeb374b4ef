# raffle/clock.py
import time
import uuid
from datetime import datetime, timezone


class Clock:
    """Time and id source for flow runs. Swap it out in tests for determinism."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def new_id(self) -> str:
        return str(uuid.uuid4())

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
