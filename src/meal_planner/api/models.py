"""Request and response models for the generation API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from meal_planner.domain.constraints import MealType


class GenerateMealRequest(BaseModel):
    """Body of a meal generation request."""

    user_id: str = Field(min_length=1)
    meal_type: MealType
    params: dict[str, object] = Field(default_factory=dict)

    @field_validator("meal_type", mode="before")
    @classmethod
    def _parse_meal_type(cls, value: object) -> object:
        if isinstance(value, str):
            return MealType.parse(value)
        return value


class MacroResponse(BaseModel):
    """Macro snapshot of a cached meal."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


class GenerateMealResponse(BaseModel):
    """Generated or cached meal served to the caller."""

    signature: str
    meal_type: MealType
    source: str
    cache_hit: bool
    hit_count: int
    payload: dict[str, object]
    macros: MacroResponse


class CacheEntrySummary(BaseModel):
    """Cache entry without its payload, for debugging."""

    signature: str
    canonical: str
    meal_type: MealType
    source: str
    hit_count: int
    created_at: datetime
    last_accessed_at: datetime
