"""Cached, budget-guarded meal generation."""

import asyncio
import copy
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Protocol

from meal_planner.domain.budget import BudgetScope
from meal_planner.domain.cache import CacheEntry, Signature
from meal_planner.domain.constraints import ConstraintSet, MealType
from meal_planner.domain.meals import GeneratedMeal
from meal_planner.domain.metrics import GenerationOutcome
from meal_planner.services.budget import BudgetGuard
from meal_planner.services.constraints import ConstraintService
from meal_planner.services.errors import (
    BudgetExceeded,
    DuplicateSignature,
    GenerationFailed,
)
from meal_planner.services.generation_cache import GenerationCacheStore
from meal_planner.services.metrics import GenerationMetrics
from meal_planner.services.signatures import SignatureBuilder

_logger = logging.getLogger(__name__)


class MealGenerator(Protocol):
    """Expensive, non-deterministic meal generation capability.

    Implementations may take seconds and may raise any exception; both are
    handled by the orchestrator.
    """

    async def generate(
        self,
        constraints: ConstraintSet,
        meal_type: MealType,
        request_params: Mapping[str, object],
    ) -> GeneratedMeal:
        """Return one generated meal for the constraints."""


@dataclass(frozen=True)
class GenerationResult:
    """Cache entry served for a request."""

    entry: CacheEntry
    cache_hit: bool


@dataclass
class GenerationOrchestrator:
    """Serves meals from the cache and generates at most once per signature."""

    constraint_service: ConstraintService
    signature_builder: SignatureBuilder
    cache_store: GenerationCacheStore
    budget_guard: BudgetGuard
    generator: MealGenerator
    generation_timeout_seconds: float = 60.0
    metrics: GenerationMetrics = field(default_factory=GenerationMetrics)
    _inflight: dict[tuple[str, MealType], "asyncio.Task[CacheEntry]"] = field(
        default_factory=dict, init=False, repr=False
    )

    async def generate(
        self,
        user_id: str,
        meal_type: MealType,
        request_params: Mapping[str, object] | None = None,
    ) -> GenerationResult:
        """Return a cached meal or generate, cache and return a new one."""
        started = time.perf_counter()
        params = dict(request_params or {})
        constraints = self.constraint_service.derive_or_default(user_id)
        signature = self.signature_builder.build(constraints, meal_type, params)

        cached = self.cache_store.lookup(signature, meal_type)
        if cached is not None:
            _logger.info(
                "Generation cache hit: signature=%s meal_type=%s hits=%s",
                signature.short,
                meal_type.value,
                cached.hit_count,
            )
            self._record(GenerationOutcome.CACHE_HIT, started)
            return GenerationResult(entry=cached, cache_hit=True)

        key = (signature.digest, meal_type)
        task = self._inflight.get(key)
        if task is None:
            admission = self.budget_guard.admit(user_id)
            if not admission.allowed:
                self._record(GenerationOutcome.BUDGET_REJECTED, started)
                raise BudgetExceeded(
                    admission.scope or BudgetScope.GLOBAL,
                    admission.retry_after_seconds,
                )
            _logger.info(
                "Generation cache miss: signature=%s meal_type=%s user=%s",
                signature.short,
                meal_type.value,
                user_id,
            )
            task = asyncio.create_task(
                self._compute(signature, constraints, meal_type, params)
            )
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._finish(key, done))
            outcome = GenerationOutcome.GENERATED
        else:
            _logger.info(
                "Joining in-flight generation: signature=%s meal_type=%s",
                signature.short,
                meal_type.value,
            )
            outcome = GenerationOutcome.JOINED

        try:
            # Shielded so a cancelled caller leaves the shared computation running.
            entry = await asyncio.shield(task)
        except Exception:
            self._record(GenerationOutcome.FAILED, started)
            raise
        self._record(outcome, started)
        # Joiners share one task result; each caller gets its own payload.
        return GenerationResult(
            entry=replace(entry, payload=copy.deepcopy(entry.payload)),
            cache_hit=False,
        )

    def _record(self, outcome: GenerationOutcome, started: float) -> None:
        self.metrics.record(outcome, time.perf_counter() - started)

    async def _compute(
        self,
        signature: Signature,
        constraints: ConstraintSet,
        meal_type: MealType,
        params: dict[str, object],
    ) -> CacheEntry:
        try:
            meal = await asyncio.wait_for(
                self.generator.generate(constraints, meal_type, params),
                timeout=self.generation_timeout_seconds,
            )
        except Exception as exc:
            _logger.warning(
                "Meal generation failed: signature=%s meal_type=%s: %r",
                signature.short,
                meal_type.value,
                exc,
                exc_info=True,
            )
            raise GenerationFailed(
                f"Meal generation failed for {meal_type.value}"
            ) from exc

        try:
            return self.cache_store.insert(
                signature, meal_type, meal.model_dump(), meal.macro_profile()
            )
        except DuplicateSignature as exc:
            _logger.info(
                "Discarding duplicate generation: signature=%s meal_type=%s",
                signature.short,
                meal_type.value,
            )
            existing = self.cache_store.lookup(signature, meal_type)
            if existing is None:
                raise RuntimeError(
                    "Cache entry missing after duplicate insert"
                ) from exc
            return existing

    def _finish(
        self, key: tuple[str, MealType], task: "asyncio.Task[CacheEntry]"
    ) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Marks the exception retrieved when every caller has gone away.
            task.exception()
