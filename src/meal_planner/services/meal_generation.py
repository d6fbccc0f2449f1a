"""Meal generation service using LLMs."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from meal_planner.domain.constraints import ConstraintSet, MealType
from meal_planner.domain.meals import GeneratedMeal

MEAL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "quantity": {"type": "string"},
                    "unit": {"type": "string"},
                },
                "required": ["name", "quantity", "unit"],
                "additionalProperties": False,
            },
        },
        "instructions": {"type": "array", "items": {"type": "string"}},
        "nutrition": {
            "type": "object",
            "properties": {
                "calories": {"type": "number", "minimum": 0},
                "protein_g": {"type": "number", "minimum": 0},
                "carbs_g": {"type": "number", "minimum": 0},
                "fat_g": {"type": "number", "minimum": 0},
            },
            "required": ["calories", "protein_g", "carbs_g", "fat_g"],
            "additionalProperties": False,
        },
    },
    "required": ["name", "description", "ingredients", "instructions", "nutrition"],
    "additionalProperties": False,
}

_MEAL_SHARE = {
    MealType.BREAKFAST: 0.25,
    MealType.LUNCH: 0.30,
    MealType.DINNER: 0.35,
    MealType.SNACK: 0.10,
}


class MealGenerationClient(Protocol):
    """Interface for structured LLM completions."""

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured meal data."""


@dataclass
class MealGenerationService:
    """Builds meal prompts from constraints and validates generated meals."""

    client: MealGenerationClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def generate(
        self,
        constraints: ConstraintSet,
        meal_type: MealType,
        request_params: Mapping[str, object],
    ) -> GeneratedMeal:
        """Generate one meal for the constraints via the configured client."""
        raw = await self.client.complete(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            schema=MEAL_SCHEMA,
            prompt=build_meal_prompt(constraints, meal_type, request_params),
        )
        return GeneratedMeal.model_validate(raw)


def build_meal_prompt(
    constraints: ConstraintSet,
    meal_type: MealType,
    request_params: Mapping[str, object],
) -> str:
    """Render the generation prompt for one meal slot."""
    share = _MEAL_SHARE[meal_type]
    macros = constraints.macros
    lines = [
        f"Create one {constraints.diet_type} {meal_type.value} recipe "
        "using US standard measurements.",
        "Per-serving targets:",
        f"- Calories: about {round(macros.calories * share)} kcal",
        f"- Protein: at least {round(macros.protein_g * share)} g",
        f"- Carbs: about {round(macros.carbs_g * share)} g",
        f"- Fat: about {round(macros.fat_g * share)} g",
    ]
    if macros.starchy_carbs_g is not None:
        lines.append(
            f"- Starchy carbs: at most {round(macros.starchy_carbs_g * share)} g"
        )
    if macros.added_sugar_g is not None:
        lines.append(f"- Added sugar: at most {round(macros.added_sugar_g * share)} g")
    if macros.fibrous_carbs_g is not None:
        lines.append(
            f"- Fibrous carbs: at least {round(macros.fibrous_carbs_g * share)} g"
        )
    directive = constraints.carb_directive
    if directive is not None and directive.added_sugar_cap_g is not None:
        lines.append(f"- Added sugar never above {directive.added_sugar_cap_g:g} g")
    if constraints.allergies:
        lines.append(
            "Strictly exclude these allergens: "
            + ", ".join(sorted(constraints.allergies))
        )
    if constraints.avoid_tags:
        lines.append("Avoid: " + ", ".join(sorted(constraints.avoid_tags)))
    if constraints.preferred_tags:
        lines.append("Prefer: " + ", ".join(sorted(constraints.preferred_tags)))
    if constraints.health_flags:
        lines.append(
            "Health considerations: " + ", ".join(sorted(constraints.health_flags))
        )
    if request_params:
        details = json.dumps(dict(request_params), sort_keys=True, default=str)
        lines.append(f"Request details: {details}")
    return "\n".join(lines)
