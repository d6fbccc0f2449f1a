"""FastAPI application factory."""

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from meal_planner.api.admin import router as admin_router
from meal_planner.api.models import (
    GenerateMealRequest,
    GenerateMealResponse,
    MacroResponse,
)
from meal_planner.app_logging import configure_logging
from meal_planner.containers import AppContainer
from meal_planner.services.errors import (
    BudgetExceeded,
    GenerationFailed,
    InvalidRequestParams,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(BudgetExceeded)
    async def budget_exceeded_handler(
        _request: Request, exc: BudgetExceeded
    ) -> JSONResponse:
        retry_after = max(1, math.ceil(exc.retry_after_seconds))
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": "Meal generation is busy, try again shortly.",
                "scope": exc.scope.value,
                "retry_after_seconds": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    @app.exception_handler(GenerationFailed)
    async def generation_failed_handler(
        _request: Request, exc: GenerationFailed
    ) -> JSONResponse:
        logger.info("Returning generation failure to caller: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Meal generation failed, please try again."},
        )

    @app.exception_handler(InvalidRequestParams)
    async def invalid_params_handler(
        _request: Request, exc: InvalidRequestParams
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/meals/generate")
    async def generate_meal(
        body: GenerateMealRequest, request: Request
    ) -> GenerateMealResponse:
        """Serve a cached meal or generate a new one."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.orchestrator.generate(
            body.user_id, body.meal_type, body.params
        )
        entry = result.entry
        return GenerateMealResponse(
            signature=entry.signature,
            meal_type=entry.meal_type,
            source=entry.source,
            cache_hit=result.cache_hit,
            hit_count=entry.hit_count,
            payload=entry.payload,
            macros=MacroResponse(
                calories=entry.macros.calories,
                protein_g=entry.macros.protein_g,
                carbs_g=entry.macros.carbs_g,
                fat_g=entry.macros.fat_g,
            ),
        )

    return app
