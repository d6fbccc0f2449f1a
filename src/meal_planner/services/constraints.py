"""Derive generation constraints from stored user profiles."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from meal_planner.domain.constraints import (
    DEFAULT_CONSTRAINTS,
    CarbDirective,
    ConstraintSet,
    MacroTargets,
    UserProfile,
)
from meal_planner.services.errors import ProfileNotFound

_DIABETES_CONDITIONS = {
    "diabetes_type_1",
    "diabetes_type_2",
    "type_1_diabetes",
    "type_2_diabetes",
}
_DIABETIC_ADDED_SUGAR_CAP_G = 5.0

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for stored dietary profiles."""

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the profile for a user, if present."""


@dataclass
class ConstraintService:
    """Builds normalized constraint sets for generation requests."""

    repository: ProfileRepository

    def derive(self, user_id: str) -> ConstraintSet:
        """Return the constraint set for a user or raise ProfileNotFound."""
        profile = self.repository.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        return constraints_from_profile(profile)

    def derive_or_default(self, user_id: str) -> ConstraintSet:
        """Return the user's constraints, falling back to defaults."""
        try:
            return self.derive(user_id)
        except ProfileNotFound:
            _logger.info("No profile for user=%s, using default constraints", user_id)
            return DEFAULT_CONSTRAINTS


def constraints_from_profile(profile: UserProfile) -> ConstraintSet:
    """Normalize a stored profile into a constraint set."""
    health_flags = _tag_set(profile.health_conditions)
    directive = profile.carb_directive
    if directive is None and health_flags & _DIABETES_CONDITIONS:
        directive = CarbDirective(added_sugar_cap_g=_DIABETIC_ADDED_SUGAR_CAP_G)
    macros = profile.macros
    if directive is not None:
        macros = apply_carb_directive(macros, directive)
    return ConstraintSet(
        macros=macros,
        allergies=_tag_set(profile.allergies),
        avoid_tags=_tag_set(profile.avoid_foods),
        preferred_tags=_tag_set(profile.preferred_foods),
        diet_type=(profile.diet_type or "balanced").strip().lower() or "balanced",
        health_flags=health_flags,
        carb_directive=directive,
    )


def apply_carb_directive(
    macros: MacroTargets, directive: CarbDirective
) -> MacroTargets:
    """Clamp the carb breakdown: caps first, the fibrous floor last."""
    starchy = macros.starchy_carbs_g
    if starchy is not None and directive.starchy_cap_g is not None:
        starchy = min(starchy, directive.starchy_cap_g)

    added_sugar = macros.added_sugar_g
    if added_sugar is not None and directive.added_sugar_cap_g is not None:
        added_sugar = min(added_sugar, directive.added_sugar_cap_g)

    fibrous = macros.fibrous_carbs_g
    if directive.fibrous_floor_g is not None:
        fibrous = max(fibrous or 0.0, directive.fibrous_floor_g)

    return replace(
        macros,
        starchy_carbs_g=starchy,
        added_sugar_g=added_sugar,
        fibrous_carbs_g=fibrous,
    )


def _tag_set(values: list[str]) -> frozenset[str]:
    """Lower-case and trim tags, dropping blanks."""
    return frozenset(
        cleaned for value in values if (cleaned := value.strip().lower())
    )
