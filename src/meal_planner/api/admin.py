"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from meal_planner.api.models import CacheEntrySummary
from meal_planner.domain.constraints import MealType

if TYPE_CHECKING:
    from meal_planner.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/budget", dependencies=[Depends(require_admin)])
async def budget_snapshot(request: Request) -> dict[str, object]:
    """Return the global generation budget state."""
    container: AppContainer = request.app.state.container
    return asdict(container.budget_guard.snapshot())


@router.get("/metrics", dependencies=[Depends(require_admin)])
async def generation_metrics(request: Request) -> dict[str, object]:
    """Return generation outcome counts and health over the recent window."""
    container: AppContainer = request.app.state.container
    return asdict(container.orchestrator.metrics.snapshot())


@router.get("/cache", dependencies=[Depends(require_admin)])
async def list_cache_entries(
    request: Request,
    meal_type: str | None = None,
    limit: int = Query(default=20, ge=1, le=200),
) -> dict[str, object]:
    """Return recently accessed cache entries without payloads."""
    container: AppContainer = request.app.state.container
    try:
        parsed_type = MealType.parse(meal_type) if meal_type else None
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    entries = container.cache_store.list_entries(parsed_type, limit)
    return {
        "entries": [
            CacheEntrySummary(
                signature=entry.signature,
                canonical=entry.canonical,
                meal_type=entry.meal_type,
                source=entry.source,
                hit_count=entry.hit_count,
                created_at=entry.created_at,
                last_accessed_at=entry.last_accessed_at,
            ).model_dump(mode="json")
            for entry in entries
        ]
    }
