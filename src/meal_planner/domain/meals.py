"""Models for generated meal payloads."""

from pydantic import BaseModel, Field

from meal_planner.domain.nutrition import MacroProfile


class MealIngredient(BaseModel):
    """Single ingredient line of a generated meal."""

    name: str
    quantity: str
    unit: str


class MealNutrition(BaseModel):
    """Macros reported for a generated meal."""

    calories: float = Field(ge=0.0)
    protein_g: float = Field(ge=0.0)
    carbs_g: float = Field(ge=0.0)
    fat_g: float = Field(ge=0.0)


class GeneratedMeal(BaseModel):
    """Structured output of the meal generator."""

    name: str
    description: str
    ingredients: list[MealIngredient] = Field(min_length=1)
    instructions: list[str]
    nutrition: MealNutrition

    def macro_profile(self) -> MacroProfile:
        """Return the macro snapshot stored alongside cached payloads."""
        return MacroProfile(
            calories=self.nutrition.calories,
            protein_g=self.nutrition.protein_g,
            carbs_g=self.nutrition.carbs_g,
            fat_g=self.nutrition.fat_g,
        )
