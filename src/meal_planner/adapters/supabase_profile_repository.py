"""Supabase-backed dietary profile repository."""

from dataclasses import dataclass

from supabase import Client

from meal_planner.domain.constraints import CarbDirective, MacroTargets, UserProfile
from meal_planner.services.constraints import ProfileRepository

_DEFAULT_CALORIES = 2000.0
_DEFAULT_PROTEIN_G = 120.0
_DEFAULT_CARBS_G = 200.0
_DEFAULT_FAT_G = 67.0


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for reading dietary profiles."""

    client: Client

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the stored profile for a user, if present."""
        response = (
            self.client.table("user_profiles")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])


def _parse_profile(row: dict[str, object]) -> UserProfile:
    """Build a profile from a Supabase row."""
    macros = MacroTargets(
        calories=_float(row.get("daily_calorie_target"), _DEFAULT_CALORIES),
        protein_g=_float(row.get("protein_target_g"), _DEFAULT_PROTEIN_G),
        carbs_g=_float(row.get("carbs_target_g"), _DEFAULT_CARBS_G),
        fat_g=_float(row.get("fat_target_g"), _DEFAULT_FAT_G),
        starchy_carbs_g=_optional_float(row.get("starchy_carbs_g")),
        fibrous_carbs_g=_optional_float(row.get("fibrous_carbs_g")),
        added_sugar_g=_optional_float(row.get("added_sugar_g")),
    )
    directive = row.get("carb_directive")
    return UserProfile(
        user_id=str(row["user_id"]),
        macros=macros,
        allergies=_string_list(row.get("allergies")),
        avoid_foods=[
            *_string_list(row.get("disliked_foods")),
            *_string_list(row.get("avoided_foods")),
        ],
        preferred_foods=_string_list(row.get("preferred_foods")),
        diet_type=_optional_str(row.get("diet_type")),
        health_conditions=_string_list(row.get("health_conditions")),
        carb_directive=(
            CarbDirective(
                starchy_cap_g=_optional_float(directive.get("starchy_cap_g")),
                added_sugar_cap_g=_optional_float(directive.get("added_sugar_cap_g")),
                fibrous_floor_g=_optional_float(directive.get("fibrous_floor_g")),
            )
            if isinstance(directive, dict)
            else None
        ),
    )


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _float(value: object, default: float) -> float:
    return default if value is None else float(value)


def _optional_float(value: object) -> float | None:
    return None if value is None else float(value)
