"""Nutrition domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient snapshot for a generated meal."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
