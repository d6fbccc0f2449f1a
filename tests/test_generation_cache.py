"""Tests for the in-memory generation cache."""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from meal_planner.domain.cache import SOURCE_SEEDED, Signature
from meal_planner.domain.constraints import MealType
from meal_planner.domain.nutrition import MacroProfile
from meal_planner.services.errors import DuplicateSignature
from meal_planner.services.generation_cache import InMemoryGenerationCache
from tests.conftest import MEAL_PAYLOAD

_MACROS = MacroProfile(calories=520, protein_g=45, carbs_g=40, fat_g=16)


class SteppingClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _signature(digest: str = "a" * 64) -> Signature:
    return Signature(digest=digest, canonical='{"meal_type":"dinner"}')


def test_lookup_miss_returns_none() -> None:
    cache = InMemoryGenerationCache()

    assert cache.lookup(_signature(), MealType.DINNER) is None
    assert cache.list_entries() == []


def test_insert_creates_fresh_entry() -> None:
    clock = SteppingClock()
    cache = InMemoryGenerationCache(clock=clock)

    entry = cache.insert(_signature(), MealType.DINNER, MEAL_PAYLOAD, _MACROS)

    assert entry.hit_count == 0
    assert entry.created_at == entry.last_accessed_at
    assert entry.source == "ai"
    assert entry.canonical == '{"meal_type":"dinner"}'


def test_lookup_records_hits_without_touching_payload() -> None:
    clock = SteppingClock()
    cache = InMemoryGenerationCache(clock=clock)
    created = cache.insert(_signature(), MealType.DINNER, MEAL_PAYLOAD, _MACROS)

    first = cache.lookup(_signature(), MealType.DINNER)
    second = cache.lookup(_signature(), MealType.DINNER)

    assert first is not None and second is not None
    assert first.hit_count == 1
    assert second.hit_count == 2
    assert second.last_accessed_at > first.last_accessed_at > created.created_at
    assert second.created_at == created.created_at
    assert second.payload == created.payload == MEAL_PAYLOAD
    assert second.macros == created.macros


def test_inserted_payload_is_isolated_from_caller() -> None:
    cache = InMemoryGenerationCache()
    payload = {"name": "Oats", "tags": ["quick"]}
    cache.insert(_signature(), MealType.BREAKFAST, payload, _MACROS)

    payload["name"] = "Changed"
    payload["tags"].append("edited")  # type: ignore[attr-defined]
    entry = cache.lookup(_signature(), MealType.BREAKFAST)

    assert entry is not None
    assert entry.payload == {"name": "Oats", "tags": ["quick"]}


def test_served_payload_is_isolated_from_cache() -> None:
    cache = InMemoryGenerationCache()
    inserted = cache.insert(_signature(), MealType.BREAKFAST, {"name": "Oats"}, _MACROS)
    inserted.payload["name"] = "Edited on insert"

    served = cache.lookup(_signature(), MealType.BREAKFAST)
    assert served is not None
    served.payload["name"] = "Edited on hit"
    cache.list_entries()[0].payload["name"] = "Edited in listing"

    again = cache.lookup(_signature(), MealType.BREAKFAST)
    assert again is not None
    assert again.payload == {"name": "Oats"}
    assert again.hit_count == 2


def test_duplicate_insert_raises() -> None:
    cache = InMemoryGenerationCache()
    cache.insert(_signature(), MealType.DINNER, MEAL_PAYLOAD, _MACROS)

    with pytest.raises(DuplicateSignature):
        cache.insert(_signature(), MealType.DINNER, {"name": "other"}, _MACROS)

    entry = cache.lookup(_signature(), MealType.DINNER)
    assert entry is not None
    assert entry.payload == MEAL_PAYLOAD


def test_same_signature_different_meal_type_is_separate() -> None:
    cache = InMemoryGenerationCache()
    cache.insert(_signature(), MealType.DINNER, MEAL_PAYLOAD, _MACROS)

    entry = cache.insert(
        _signature(), MealType.LUNCH, MEAL_PAYLOAD, _MACROS, source=SOURCE_SEEDED
    )

    assert entry.source == "seeded"
    assert len(cache.list_entries()) == 2
    assert [e.meal_type for e in cache.list_entries(MealType.LUNCH)] == [
        MealType.LUNCH
    ]


def test_list_entries_orders_by_last_access() -> None:
    cache = InMemoryGenerationCache(clock=SteppingClock())
    cache.insert(_signature("a" * 64), MealType.DINNER, MEAL_PAYLOAD, _MACROS)
    cache.insert(_signature("b" * 64), MealType.DINNER, MEAL_PAYLOAD, _MACROS)
    cache.lookup(_signature("a" * 64), MealType.DINNER)

    entries = cache.list_entries(limit=1)

    assert [entry.signature for entry in entries] == ["a" * 64]


def test_concurrent_inserts_keep_one_entry() -> None:
    cache = InMemoryGenerationCache()
    barrier = threading.Barrier(10)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            cache.insert(_signature(), MealType.DINNER, MEAL_PAYLOAD, _MACROS)
            outcome = "inserted"
        except DuplicateSignature:
            outcome = "duplicate"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("inserted") == 1
    assert outcomes.count("duplicate") == 9
    assert len(cache.list_entries()) == 1
