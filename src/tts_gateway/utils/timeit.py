"""
Stage timing for log lines and metrics.

Example:
    with timeit("synth") as t:
        result = gateway.synthesize(text)
    verbose(log, "stage", event=t.name, seconds=t.rounded)
    metrics.record_synthesis("azure", t.seconds)
"""
from __future__ import annotations

from time import perf_counter

# Precision used when a duration goes into a log line
LOG_DIGITS = 4


class timeit:
    """
    Context manager measuring wall-clock time with perf_counter().

    The duration is recorded on exit, including when the block raises,
    so failure logs can still report how long the provider took.
    """

    def __init__(self, name: str):
        self.name = name
        self._started: float | None = None
        self._stopped: float | None = None

    def __enter__(self) -> "timeit":
        self._started = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._stopped = perf_counter()

    @property
    def seconds(self) -> float:
        """Elapsed seconds; while the block runs, the time so far."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else perf_counter()
        return end - self._started

    @property
    def rounded(self) -> float:
        return round(self.seconds, LOG_DIGITS)
