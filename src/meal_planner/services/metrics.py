"""Rolling-window metrics for generation request outcomes."""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from meal_planner.domain.metrics import (
    GenerationOutcome,
    HealthStatus,
    MetricsSnapshot,
    OutcomeEvent,
)

_DOWN_FAILURE_RATE = 0.5
_DEGRADED_FAILURE_RATE = 0.05


@dataclass
class GenerationMetrics:
    """In-process recorder of request outcomes over a rolling window.

    Budget rejections are counted but left out of the failure rate, which only
    measures requests that reached the cache or the generator.
    """

    window_seconds: float = 900.0
    max_events: int = 1000
    clock: Callable[[], float] = time.monotonic
    _events: deque[OutcomeEvent] = field(init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.window_seconds <= 0 or self.max_events <= 0:
            raise ValueError("Metrics window and capacity must be positive")
        self._events = deque(maxlen=self.max_events)

    def record(self, outcome: GenerationOutcome, duration_seconds: float) -> None:
        """Record how one request ended and how long it took."""
        event = OutcomeEvent(
            recorded_at=self.clock(),
            outcome=outcome,
            duration_ms=max(duration_seconds, 0.0) * 1000,
        )
        with self._lock:
            self._events.append(event)
            self._prune(event.recorded_at)

    def snapshot(self) -> MetricsSnapshot:
        """Summarize the outcomes recorded within the window."""
        with self._lock:
            self._prune(self.clock())
            events = list(self._events)

        counts = {outcome.value: 0 for outcome in GenerationOutcome}
        for event in events:
            counts[event.outcome.value] += 1
        total = len(events)
        avg_latency = (
            round(sum(event.duration_ms for event in events) / total, 1)
            if total
            else 0.0
        )
        served = total - counts[GenerationOutcome.BUDGET_REJECTED.value]
        failure_rate = (
            counts[GenerationOutcome.FAILED.value] / served if served else 0.0
        )
        return MetricsSnapshot(
            status=_status_for(failure_rate),
            window_seconds=self.window_seconds,
            total_requests=total,
            counts=counts,
            avg_latency_ms=avg_latency,
            failure_rate=round(failure_rate, 2),
        )

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._events and self._events[0].recorded_at < cutoff:
            self._events.popleft()


def _status_for(failure_rate: float) -> HealthStatus:
    if failure_rate > _DOWN_FAILURE_RATE:
        return HealthStatus.DOWN
    if failure_rate > _DEGRADED_FAILURE_RATE:
        return HealthStatus.DEGRADED
    return HealthStatus.OK
