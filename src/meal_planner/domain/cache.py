"""Domain models for generation cache entries."""

from dataclasses import dataclass
from datetime import datetime

from meal_planner.domain.constraints import MealType
from meal_planner.domain.nutrition import MacroProfile

SOURCE_AI = "ai"
SOURCE_SEEDED = "seeded"


@dataclass(frozen=True)
class Signature:
    """Stable identity of a generation request."""

    digest: str
    canonical: str

    @property
    def short(self) -> str:
        """Return a truncated digest for logs and display."""
        return self.digest[:16]


@dataclass(frozen=True)
class CacheEntry:
    """Previously generated meal stored under a signature."""

    signature: str
    canonical: str
    meal_type: MealType
    source: str
    payload: dict[str, object]
    macros: MacroProfile
    hit_count: int
    created_at: datetime
    last_accessed_at: datetime
