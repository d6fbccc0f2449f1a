"""Generation cache abstractions."""

import copy
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol

from meal_planner.domain.cache import SOURCE_AI, CacheEntry, Signature
from meal_planner.domain.constraints import MealType
from meal_planner.domain.nutrition import MacroProfile
from meal_planner.services.errors import DuplicateSignature


def utcnow() -> datetime:
    """Return the current UTC time."""
    return datetime.now(tz=UTC)


class GenerationCacheStore(Protocol):
    """Keyed store of generated meals, unique per signature and meal type."""

    def lookup(self, signature: Signature, meal_type: MealType) -> CacheEntry | None:
        """Return the entry, recording the hit, or None on a miss."""

    def insert(  # noqa: PLR0913
        self,
        signature: Signature,
        meal_type: MealType,
        payload: dict[str, object],
        macros: MacroProfile,
        source: str = SOURCE_AI,
    ) -> CacheEntry:
        """Create an entry or raise DuplicateSignature if one exists."""

    def list_entries(
        self, meal_type: MealType | None = None, limit: int = 20
    ) -> list[CacheEntry]:
        """Return entries, most recently accessed first."""


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    entry: CacheEntry | None = None


@dataclass
class InMemoryGenerationCache(GenerationCacheStore):
    """Process-local cache with per-key locking."""

    clock: Callable[[], datetime] = utcnow
    _slots: dict[tuple[str, MealType], _Slot] = field(
        default_factory=dict, init=False, repr=False
    )
    _registry_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def lookup(self, signature: Signature, meal_type: MealType) -> CacheEntry | None:
        """Return the entry with its hit count and access time refreshed."""
        with self._registry_lock:
            slot = self._slots.get((signature.digest, meal_type))
        if slot is None:
            return None
        with slot.lock:
            if slot.entry is None:
                return None
            slot.entry = replace(
                slot.entry,
                hit_count=slot.entry.hit_count + 1,
                last_accessed_at=self.clock(),
            )
            return _detached(slot.entry)

    def insert(  # noqa: PLR0913
        self,
        signature: Signature,
        meal_type: MealType,
        payload: dict[str, object],
        macros: MacroProfile,
        source: str = SOURCE_AI,
    ) -> CacheEntry:
        """Store a new entry unless one already exists for the key."""
        slot = self._slot(signature.digest, meal_type)
        with slot.lock:
            if slot.entry is not None:
                raise DuplicateSignature(signature.digest, meal_type.value)
            now = self.clock()
            slot.entry = CacheEntry(
                signature=signature.digest,
                canonical=signature.canonical,
                meal_type=meal_type,
                source=source,
                payload=copy.deepcopy(payload),
                macros=macros,
                hit_count=0,
                created_at=now,
                last_accessed_at=now,
            )
            return _detached(slot.entry)

    def list_entries(
        self, meal_type: MealType | None = None, limit: int = 20
    ) -> list[CacheEntry]:
        """Return stored entries, most recently accessed first."""
        with self._registry_lock:
            slots = list(self._slots.values())
        entries = [
            _detached(slot.entry)
            for slot in slots
            if slot.entry is not None
            and (meal_type is None or slot.entry.meal_type == meal_type)
        ]
        entries.sort(key=lambda entry: entry.last_accessed_at, reverse=True)
        return entries[:limit]

    def _slot(self, digest: str, meal_type: MealType) -> _Slot:
        with self._registry_lock:
            return self._slots.setdefault((digest, meal_type), _Slot())


def _detached(entry: CacheEntry) -> CacheEntry:
    """Copy of the entry whose payload callers may mutate freely."""
    return replace(entry, payload=copy.deepcopy(entry.payload))
