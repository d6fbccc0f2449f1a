"""Supabase implementation of the generation cache store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from postgrest.exceptions import APIError
from supabase import Client

from meal_planner.domain.cache import SOURCE_AI, CacheEntry, Signature
from meal_planner.domain.constraints import MealType
from meal_planner.domain.nutrition import MacroProfile
from meal_planner.services.errors import DuplicateSignature
from meal_planner.services.generation_cache import GenerationCacheStore, utcnow

_TABLE = "generated_meal_cache"
_UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseGenerationCacheRepository(GenerationCacheStore):
    """Supabase-backed cache, unique on (signature, meal_type).

    Hit counts are bumped with a compare-and-swap on ``hit_count`` so
    concurrent workers never lose increments silently.
    """

    client: Client
    clock: Callable[[], datetime] = field(default=utcnow)
    hit_update_attempts: int = 3

    def lookup(self, signature: Signature, meal_type: MealType) -> CacheEntry | None:
        """Return the entry with its hit recorded, or None on a miss."""
        row: dict[str, object] | None = None
        for _ in range(self.hit_update_attempts):
            row = self._select(signature.digest, meal_type)
            if row is None:
                return None
            current = int(row.get("hit_count", 0))
            response = (
                self.client.table(_TABLE)
                .update(
                    {
                        "hit_count": current + 1,
                        "last_accessed_at": self.clock().isoformat(),
                    }
                )
                .eq("signature", signature.digest)
                .eq("meal_type", meal_type.value)
                .eq("hit_count", current)
                .execute()
            )
            if response.data:
                return _parse_entry(response.data[0])
        _logger.warning(
            "Cache hit not recorded after %s attempts: signature=%s",
            self.hit_update_attempts,
            signature.short,
        )
        return _parse_entry(row) if row is not None else None

    def insert(  # noqa: PLR0913
        self,
        signature: Signature,
        meal_type: MealType,
        payload: dict[str, object],
        macros: MacroProfile,
        source: str = SOURCE_AI,
    ) -> CacheEntry:
        """Insert a new entry or raise DuplicateSignature."""
        now = self.clock().isoformat()
        try:
            response = (
                self.client.table(_TABLE)
                .insert(
                    {
                        "signature": signature.digest,
                        "canonical": signature.canonical,
                        "meal_type": meal_type.value,
                        "source": source,
                        "payload": payload,
                        "calories": macros.calories,
                        "protein_g": macros.protein_g,
                        "carbs_g": macros.carbs_g,
                        "fat_g": macros.fat_g,
                        "hit_count": 0,
                        "created_at": now,
                        "last_accessed_at": now,
                    }
                )
                .execute()
            )
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateSignature(signature.digest, meal_type.value) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create generation cache entry")
        return _parse_entry(response.data[0])

    def list_entries(
        self, meal_type: MealType | None = None, limit: int = 20
    ) -> list[CacheEntry]:
        """Return entries ordered by last access, newest first."""
        query = self.client.table(_TABLE).select("*")
        if meal_type is not None:
            query = query.eq("meal_type", meal_type.value)
        response = query.order("last_accessed_at", desc=True).limit(limit).execute()
        return [_parse_entry(row) for row in response.data or []]

    def _select(self, digest: str, meal_type: MealType) -> dict[str, object] | None:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("signature", digest)
            .eq("meal_type", meal_type.value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _parse_entry(row: dict[str, object]) -> CacheEntry:
    """Parse a cache row into a domain model."""
    payload = row.get("payload")
    return CacheEntry(
        signature=str(row["signature"]),
        canonical=str(row.get("canonical", "")),
        meal_type=MealType(row["meal_type"]),
        source=str(row.get("source", SOURCE_AI)),
        payload=payload if isinstance(payload, dict) else {},
        macros=MacroProfile(
            calories=float(row.get("calories", 0.0)),
            protein_g=float(row.get("protein_g", 0.0)),
            carbs_g=float(row.get("carbs_g", 0.0)),
            fat_g=float(row.get("fat_g", 0.0)),
        ),
        hit_count=int(row.get("hit_count", 0)),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        last_accessed_at=datetime.fromisoformat(str(row["last_accessed_at"])),
    )
