"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from nutrition_search.domain.errors import CacheUnavailableError, UsageRecordingError
from nutrition_search.services.admin import UnknownProviderError

if TYPE_CHECKING:
    from nutrition_search.containers import AppContainer

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


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/providers", dependencies=[Depends(require_admin)])
async def list_providers(request: Request) -> dict[str, object]:
    """Return provider configuration and usage."""
    container: AppContainer = request.app.state.container
    try:
        providers = container.admin_service.list_providers()
    except UsageRecordingError as exc:
        raise _unavailable(exc) from exc
    return {"providers": providers}


@router.post("/providers/{name}/test", dependencies=[Depends(require_admin)])
async def test_provider(name: str, request: Request) -> dict[str, object]:
    """Run a connectivity check against one provider."""
    container: AppContainer = request.app.state.container
    try:
        return await container.admin_service.test_provider(name)
    except UnknownProviderError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown provider {name}"
        ) from exc


@router.get("/usage", dependencies=[Depends(require_admin)])
async def usage_stats(
    request: Request, window_days: int = Query(default=30, ge=1, le=366)
) -> dict[str, object]:
    """Return per-provider request counters."""
    container: AppContainer = request.app.state.container
    try:
        stats = container.admin_service.usage_stats(window_days)
    except UsageRecordingError as exc:
        raise _unavailable(exc) from exc
    return {
        "usage": [
            {**asdict(item), "last_request": item.last_request.isoformat()}
            for item in stats
        ]
    }


@router.get("/cache", dependencies=[Depends(require_admin)])
async def cache_stats(request: Request) -> dict[str, object]:
    """Return cache totals per provider."""
    container: AppContainer = request.app.state.container
    try:
        stats = container.admin_service.cache_stats()
    except CacheUnavailableError as exc:
        raise _unavailable(exc) from exc
    return {
        "total_entries": stats.total_entries,
        "active_entries": stats.active_entries,
        "expired_entries": stats.expired_entries,
        "by_api": stats.by_api,
        "oldest_entry": stats.oldest_entry.isoformat() if stats.oldest_entry else None,
        "newest_entry": stats.newest_entry.isoformat() if stats.newest_entry else None,
    }


@router.delete("/cache", dependencies=[Depends(require_admin)])
async def clear_cache(request: Request) -> dict[str, object]:
    """Purge every cached food."""
    container: AppContainer = request.app.state.container
    try:
        container.admin_service.clear_cache()
    except CacheUnavailableError as exc:
        raise _unavailable(exc) from exc
    return {"success": True, "message": "API cache cleared"}


def _unavailable(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
    )
