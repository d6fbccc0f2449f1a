"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_planner.adapters.openai_meal_client import OpenAIMealClient
from meal_planner.adapters.supabase_generation_cache_repository import (
    SupabaseGenerationCacheRepository,
)
from meal_planner.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from meal_planner.config import Settings
from meal_planner.services.budget import BudgetGuard
from meal_planner.services.constraints import ConstraintService
from meal_planner.services.generation import GenerationOrchestrator
from meal_planner.services.generation_cache import (
    GenerationCacheStore,
    InMemoryGenerationCache,
)
from meal_planner.services.meal_generation import MealGenerationService
from meal_planner.services.metrics import GenerationMetrics
from meal_planner.services.signatures import SignatureBuilder


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    constraint_service: ConstraintService
    cache_store: GenerationCacheStore
    budget_guard: BudgetGuard
    orchestrator: GenerationOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    constraint_service = ConstraintService(SupabaseProfileRepository(supabase_client))
    cache_store: GenerationCacheStore
    if resolved_settings.cache_backend == "memory":
        cache_store = InMemoryGenerationCache()
    else:
        cache_store = SupabaseGenerationCacheRepository(supabase_client)
    budget_guard = BudgetGuard(
        window_ms=resolved_settings.budget_window_ms,
        user_limit=resolved_settings.budget_user_limit,
        global_limit=resolved_settings.budget_global_limit,
    )
    openai_client = OpenAIMealClient.create(resolved_settings.openai_api_key)
    meal_generation_service = MealGenerationService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    orchestrator = GenerationOrchestrator(
        constraint_service=constraint_service,
        signature_builder=SignatureBuilder(
            digest_length=resolved_settings.signature_digest_length
        ),
        cache_store=cache_store,
        budget_guard=budget_guard,
        generator=meal_generation_service,
        generation_timeout_seconds=resolved_settings.generation_timeout_seconds,
        metrics=GenerationMetrics(
            window_seconds=resolved_settings.metrics_window_seconds
        ),
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        constraint_service=constraint_service,
        cache_store=cache_store,
        budget_guard=budget_guard,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
