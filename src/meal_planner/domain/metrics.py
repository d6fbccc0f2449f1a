"""Domain models for generation outcome metrics."""

from dataclasses import dataclass
from enum import StrEnum


class GenerationOutcome(StrEnum):
    """How a generation request was resolved."""

    CACHE_HIT = "cache_hit"
    GENERATED = "generated"
    JOINED = "joined"
    BUDGET_REJECTED = "budget_rejected"
    FAILED = "failed"


class HealthStatus(StrEnum):
    """Health of the generation pipeline over the metrics window."""

    OK = "ok"
    DEGRADED = "degraded"
    DOWN = "down"


@dataclass(frozen=True)
class OutcomeEvent:
    """One recorded request outcome."""

    recorded_at: float
    outcome: GenerationOutcome
    duration_ms: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Outcome counts and latency over the recent window."""

    status: HealthStatus
    window_seconds: float
    total_requests: int
    counts: dict[str, int]
    avg_latency_ms: float
    failure_rate: float
