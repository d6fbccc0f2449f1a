"""Shared test fixtures."""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from meal_planner.config import Settings
from meal_planner.containers import AppContainer
from meal_planner.domain.constraints import (
    ConstraintSet,
    MacroTargets,
    MealType,
    UserProfile,
)
from meal_planner.domain.meals import GeneratedMeal
from meal_planner.services.budget import BudgetGuard
from meal_planner.services.constraints import ConstraintService, ProfileRepository
from meal_planner.services.generation import GenerationOrchestrator, MealGenerator
from meal_planner.services.generation_cache import InMemoryGenerationCache
from meal_planner.services.meal_generation import MealGenerationClient
from meal_planner.services.signatures import SignatureBuilder

MEAL_PAYLOAD: dict[str, object] = {
    "name": "Turkey Quinoa Bowl",
    "description": "Lean turkey over quinoa with roasted vegetables.",
    "ingredients": [
        {"name": "ground turkey", "quantity": "6", "unit": "oz"},
        {"name": "quinoa", "quantity": "1/2", "unit": "cup"},
        {"name": "broccoli", "quantity": "1", "unit": "cup"},
    ],
    "instructions": ["Cook quinoa.", "Brown turkey.", "Serve over greens."],
    "nutrition": {"calories": 520, "protein_g": 45, "carbs_g": 40, "fat_g": 16},
}


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[str, UserProfile] = field(default_factory=dict)

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profiles.get(user_id)

    def add(self, profile: UserProfile) -> None:
        self.profiles[profile.user_id] = profile


@dataclass
class FakeMealGenerator(MealGenerator):
    """Counting meal generator with optional delay and failure."""

    payload: dict[str, object] = field(default_factory=lambda: dict(MEAL_PAYLOAD))
    delay_seconds: float = 0.0
    error: Exception | None = None
    calls: int = 0

    async def generate(
        self,
        constraints: ConstraintSet,
        meal_type: MealType,
        request_params: Mapping[str, object],
    ) -> GeneratedMeal:
        self.calls += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return GeneratedMeal.model_validate(self.payload)


@dataclass
class FakeMealGenerationClient(MealGenerationClient):
    """Fake LLM client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=lambda: dict(MEAL_PAYLOAD))
    prompts: list[str] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        return self.payload


def make_profile(user_id: str = "user-1", **overrides: object) -> UserProfile:
    """Build a profile with sensible macro targets."""
    values: dict[str, object] = {
        "user_id": user_id,
        "macros": MacroTargets(calories=1800, protein_g=140, carbs_g=150, fat_g=60),
        "allergies": ["Peanut"],
        "avoid_foods": ["cilantro"],
        "preferred_foods": ["salmon"],
    }
    values.update(overrides)
    return UserProfile(**values)  # type: ignore[arg-type]


def build_orchestrator(  # noqa: PLR0913
    *,
    profiles: InMemoryProfileRepository | None = None,
    generator: FakeMealGenerator | None = None,
    cache_store: InMemoryGenerationCache | None = None,
    budget_guard: BudgetGuard | None = None,
    timeout_seconds: float = 5.0,
) -> GenerationOrchestrator:
    """Wire an orchestrator from in-memory collaborators."""
    return GenerationOrchestrator(
        constraint_service=ConstraintService(profiles or InMemoryProfileRepository()),
        signature_builder=SignatureBuilder(),
        cache_store=cache_store or InMemoryGenerationCache(),
        budget_guard=budget_guard or BudgetGuard(),
        generator=generator or FakeMealGenerator(),
        generation_timeout_seconds=timeout_seconds,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    repository = InMemoryProfileRepository()
    repository.add(make_profile())
    return repository


@pytest.fixture
def meal_generator() -> FakeMealGenerator:
    return FakeMealGenerator()


@pytest.fixture
def container(
    settings: Settings,
    profile_repository: InMemoryProfileRepository,
    meal_generator: FakeMealGenerator,
) -> AppContainer:
    cache_store = InMemoryGenerationCache()
    budget_guard = BudgetGuard(
        window_ms=settings.budget_window_ms,
        user_limit=2,
        global_limit=settings.budget_global_limit,
    )
    orchestrator = build_orchestrator(
        profiles=profile_repository,
        generator=meal_generator,
        cache_store=cache_store,
        budget_guard=budget_guard,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        constraint_service=orchestrator.constraint_service,
        cache_store=cache_store,
        budget_guard=budget_guard,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
