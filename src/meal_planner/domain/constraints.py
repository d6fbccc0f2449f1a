"""Dietary constraint domain models."""

from dataclasses import dataclass, field
from enum import StrEnum

_PLURAL_MEAL_TYPES = {
    "breakfasts": "breakfast",
    "lunches": "lunch",
    "dinners": "dinner",
    "snacks": "snack",
}


class MealType(StrEnum):
    """Meal slot a generation request targets."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @classmethod
    def parse(cls, raw: str) -> "MealType":
        """Parse a meal type, accepting case, whitespace and plural variants."""
        cleaned = raw.strip().lower()
        cleaned = _PLURAL_MEAL_TYPES.get(cleaned, cleaned)
        try:
            return cls(cleaned)
        except ValueError:
            raise ValueError(f"Unknown meal type: {raw!r}") from None


def _require_non_negative(name: str, value: float | None) -> None:
    if value is not None and value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class CarbDirective:
    """Carb caps and floors applied on top of macro targets."""

    starchy_cap_g: float | None = None
    added_sugar_cap_g: float | None = None
    fibrous_floor_g: float | None = None

    def __post_init__(self) -> None:
        _require_non_negative("starchy_cap_g", self.starchy_cap_g)
        _require_non_negative("added_sugar_cap_g", self.added_sugar_cap_g)
        _require_non_negative("fibrous_floor_g", self.fibrous_floor_g)


@dataclass(frozen=True)
class MacroTargets:
    """Daily macro targets with an optional carb breakdown."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    starchy_carbs_g: float | None = None
    fibrous_carbs_g: float | None = None
    added_sugar_g: float | None = None

    def __post_init__(self) -> None:
        _require_non_negative("calories", self.calories)
        _require_non_negative("protein_g", self.protein_g)
        _require_non_negative("carbs_g", self.carbs_g)
        _require_non_negative("fat_g", self.fat_g)
        _require_non_negative("starchy_carbs_g", self.starchy_carbs_g)
        _require_non_negative("fibrous_carbs_g", self.fibrous_carbs_g)
        _require_non_negative("added_sugar_g", self.added_sugar_g)


@dataclass(frozen=True)
class UserProfile:
    """Stored dietary profile for a user."""

    user_id: str
    macros: MacroTargets
    allergies: list[str] = field(default_factory=list)
    avoid_foods: list[str] = field(default_factory=list)
    preferred_foods: list[str] = field(default_factory=list)
    diet_type: str | None = None
    health_conditions: list[str] = field(default_factory=list)
    carb_directive: CarbDirective | None = None


@dataclass(frozen=True)
class ConstraintSet:
    """Normalized constraints used as generation input and cache-key material."""

    macros: MacroTargets
    allergies: frozenset[str] = frozenset()
    avoid_tags: frozenset[str] = frozenset()
    preferred_tags: frozenset[str] = frozenset()
    diet_type: str = "balanced"
    health_flags: frozenset[str] = frozenset()
    carb_directive: CarbDirective | None = None


DEFAULT_CONSTRAINTS = ConstraintSet(
    macros=MacroTargets(calories=2000, protein_g=120, carbs_g=200, fat_g=67),
)
