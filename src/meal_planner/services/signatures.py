"""Deterministic request signatures for the generation cache."""

import hashlib
import json
import math
from collections.abc import Mapping
from dataclasses import dataclass

from meal_planner.domain.cache import Signature
from meal_planner.domain.constraints import (
    CarbDirective,
    ConstraintSet,
    MacroTargets,
    MealType,
)
from meal_planner.services.errors import InvalidRequestParams

_SHA256_HEX_LENGTH = 64
_MIN_DIGEST_LENGTH = 16


@dataclass(frozen=True)
class SignatureBuilder:
    """Hashes constraints and request parameters into a cache key."""

    digest_length: int = _SHA256_HEX_LENGTH

    def __post_init__(self) -> None:
        if not _MIN_DIGEST_LENGTH <= self.digest_length <= _SHA256_HEX_LENGTH:
            raise ValueError(
                f"digest_length must be between {_MIN_DIGEST_LENGTH} "
                f"and {_SHA256_HEX_LENGTH}, got {self.digest_length}"
            )

    def build(
        self,
        constraints: ConstraintSet,
        meal_type: MealType,
        extra_params: Mapping[str, object] | None = None,
    ) -> Signature:
        """Return the signature for a generation request."""
        payload = {
            "constraints": _normalize_constraints(constraints),
            "meal_type": meal_type.value,
            "params": _normalize_value(dict(extra_params or {})),
        }
        canonical = json.dumps(
            payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True
        )
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return Signature(digest=digest[: self.digest_length], canonical=canonical)


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves away from zero for positives."""
    if not math.isfinite(value):
        raise ValueError(f"Cannot round non-finite value {value!r}")
    return math.floor(value + 0.5)


def _normalize_constraints(constraints: ConstraintSet) -> dict[str, object]:
    return {
        "allergies": _sorted_tags(constraints.allergies),
        "avoid": _sorted_tags(constraints.avoid_tags),
        "prefer": _sorted_tags(constraints.preferred_tags),
        "diet_type": _normalize_text(constraints.diet_type),
        "health": _sorted_tags(constraints.health_flags),
        "macros": _normalize_macros(constraints.macros),
        "carb_directive": _normalize_directive(constraints.carb_directive),
    }


def _normalize_macros(macros: MacroTargets) -> dict[str, int | None]:
    return {
        "calories": round_half_up(macros.calories),
        "protein_g": round_half_up(macros.protein_g),
        "carbs_g": round_half_up(macros.carbs_g),
        "fat_g": round_half_up(macros.fat_g),
        "starchy_carbs_g": _round_optional(macros.starchy_carbs_g),
        "fibrous_carbs_g": _round_optional(macros.fibrous_carbs_g),
        "added_sugar_g": _round_optional(macros.added_sugar_g),
    }


def _normalize_directive(
    directive: CarbDirective | None,
) -> dict[str, int | None] | None:
    if directive is None:
        return None
    return {
        "starchy_cap_g": _round_optional(directive.starchy_cap_g),
        "added_sugar_cap_g": _round_optional(directive.added_sugar_cap_g),
        "fibrous_floor_g": _round_optional(directive.fibrous_floor_g),
    }


def _normalize_value(value: object) -> object:
    """Normalize opaque request parameters recursively."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidRequestParams(
                f"Request parameters must be finite numbers, got {value!r}"
            )
        return round_half_up(value)
    if isinstance(value, str):
        return _normalize_text(value)
    if isinstance(value, Mapping):
        return {
            _normalize_text(str(key)): _normalize_value(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple | set | frozenset):
        items = [_normalize_value(item) for item in value]
        # Lists are treated as sets; mixed or nested items sort by their JSON form.
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))
    raise InvalidRequestParams(
        f"Unsupported request parameter type: {type(value).__name__}"
    )


def _normalize_text(value: str) -> str:
    return " ".join(value.split()).lower()


def _sorted_tags(tags: frozenset[str]) -> list[str]:
    return sorted({cleaned for tag in tags if (cleaned := _normalize_text(tag))})


def _round_optional(value: float | None) -> int | None:
    return None if value is None else round_half_up(value)
