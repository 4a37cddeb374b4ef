# raffle/flows/errors.py


class FlowError(Exception):
    """Base class for raffle flow errors."""


class RunNotFoundError(FlowError):
    """Raised when a retry targets a run id the store does not know."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


class UpstreamError(FlowError):
    """A call to the Recharge billing API failed. Retried by the retry controller."""


class SimulatedUpstreamError(UpstreamError):
    """Deterministic failure injected with ``force_fail``."""

    def __init__(self, message: str = "Recharge API error: 502 Bad Gateway (simulated)"):
        super().__init__(message)
