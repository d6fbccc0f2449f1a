"""Domain models for generation budget admission."""

from dataclasses import dataclass
from enum import StrEnum


class BudgetScope(StrEnum):
    """Scope whose ceiling rejected a call."""

    USER = "user"
    GLOBAL = "global"


@dataclass
class BudgetBucket:
    """Rolling-window call counter for one scope."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class Admission:
    """Outcome of a budget admission check."""

    allowed: bool
    scope: BudgetScope | None = None
    retry_after_seconds: float = 0.0


@dataclass(frozen=True)
class BudgetSnapshot:
    """Point-in-time view of the global bucket."""

    global_count: int
    global_limit: int
    user_limit: int
    window_ms: int
    seconds_until_reset: float
    tracked_users: int
