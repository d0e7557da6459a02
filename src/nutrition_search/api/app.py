"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, status

from nutrition_search.api.admin import router as admin_router
from nutrition_search.app_logging import configure_logging
from nutrition_search.config import parse_provider_names
from nutrition_search.containers import AppContainer
from nutrition_search.domain.errors import ProviderError, SearchInputError
from nutrition_search.domain.foods import SearchOptions, SearchResult

MAX_PAGE_SIZE = 100


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    async def search_foods(  # noqa: PLR0913
        request: Request,
        q: str,
        limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
        offset: int = Query(default=0, ge=0),
        apis: str | None = None,
        include_barcode: bool = False,
    ) -> dict[str, object]:
        """Search foods across the configured nutrition providers."""
        state_container: AppContainer = request.app.state.container
        preferred = parse_provider_names(apis)
        options = SearchOptions(
            limit=limit,
            offset=offset,
            preferred_apis=preferred or None,
            include_barcode=include_barcode,
        )
        try:
            result = await state_container.search_service.search(q, options)
        except SearchInputError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        return _serialize_result(result)

    @app.get("/foods/barcode/{code}")
    async def lookup_barcode(code: str, request: Request) -> dict[str, object]:
        """Look up a packaged product by barcode."""
        state_container: AppContainer = request.app.state.container
        try:
            food = await state_container.search_service.lookup_barcode(code)
        except SearchInputError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except ProviderError as exc:
            logger.warning("Barcode lookup failed for %s: %s", code, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
            ) from exc
        if food is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
            )
        return {"food": food.to_record()}

    return app


def _serialize_result(result: SearchResult) -> dict[str, object]:
    payload: dict[str, object] = {
        "foods": [food.to_record() for food in result.foods],
        "source": result.source,
        "total_results": result.total_results,
        "has_more": result.has_more,
    }
    if result.configuration_error is not None:
        payload["configuration_error"] = result.configuration_error
    return payload
