"""Supabase repository for cached provider foods."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client

from nutrition_search.domain.cache import CacheRow
from nutrition_search.domain.errors import CacheUnavailableError
from nutrition_search.domain.foods import NormalizedFood
from nutrition_search.services.cache import FoodCacheRepository

TABLE = "api_food_cache"
# PostgREST refuses unfiltered deletes; no row carries the nil uuid.
_NIL_UUID = "00000000-0000-0000-0000-000000000000"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseFoodCacheRepository(FoodCacheRepository):
    """Supabase implementation of the food cache."""

    client: Client

    def list_foods(
        self, search_query: str, now: datetime, limit: int, offset: int
    ) -> list[NormalizedFood]:
        """Return unexpired foods cached for a query."""
        try:
            response = (
                self.client.table(TABLE)
                .select("food_data")
                .eq("search_query", search_query)
                .gt("expires_at", now.isoformat())
                .order("cached_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise CacheUnavailableError(f"cache read failed: {exc}") from exc
        foods = []
        for row in response.data or []:
            try:
                foods.append(NormalizedFood.model_validate(row.get("food_data")))
            except ValidationError:
                _logger.warning("Dropping unreadable cache row for %r", search_query)
        return foods

    def upsert_foods(
        self,
        search_query: str,
        api_source: str,
        foods: list[NormalizedFood],
        cached_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Upsert one row per food; later duplicates in a batch win."""
        rows = {
            food.external_id: {
                "api_source": api_source,
                "external_id": food.external_id,
                "search_query": search_query,
                "food_data": food.to_record(),
                "cached_at": cached_at.isoformat(),
                "expires_at": expires_at.isoformat(),
            }
            for food in foods
        }
        if not rows:
            return
        try:
            self.client.table(TABLE).upsert(
                list(rows.values()), on_conflict="api_source,external_id"
            ).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise CacheUnavailableError(f"cache write failed: {exc}") from exc

    def delete_all(self) -> None:
        """Delete every cached row."""
        try:
            self.client.table(TABLE).delete().neq("id", _NIL_UUID).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise CacheUnavailableError(f"cache purge failed: {exc}") from exc

    def list_rows(self) -> list[CacheRow]:
        """Return source and timestamps of every cached row."""
        try:
            response = (
                self.client.table(TABLE)
                .select("api_source, cached_at, expires_at")
                .order("cached_at", desc=True)
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise CacheUnavailableError(f"cache stats failed: {exc}") from exc
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> CacheRow:
    return CacheRow(
        api_source=str(row.get("api_source") or ""),
        cached_at=_parse_timestamp(row.get("cached_at")),
        expires_at=_parse_timestamp(row.get("expires_at"))
        or datetime.min.replace(tzinfo=UTC),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
