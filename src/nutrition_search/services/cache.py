"""Food cache service keyed by query and deduplicated by provider identity."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from nutrition_search.domain.cache import CacheRow, CacheStats
from nutrition_search.domain.errors import CacheUnavailableError
from nutrition_search.domain.foods import NormalizedFood, SearchResult
from nutrition_search.domain.providers import CACHE_SOURCE

DEFAULT_TTL = timedelta(hours=24)

_logger = logging.getLogger(__name__)


class FoodCacheRepository(Protocol):
    """Persistence interface for cached foods."""

    def list_foods(
        self, search_query: str, now: datetime, limit: int, offset: int
    ) -> list[NormalizedFood]:
        """Return foods cached for a query whose expiry is after `now`."""

    def upsert_foods(
        self,
        search_query: str,
        api_source: str,
        foods: list[NormalizedFood],
        cached_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Insert or replace rows keyed by (api_source, external_id)."""

    def delete_all(self) -> None:
        """Remove every cached row."""

    def list_rows(self) -> list[CacheRow]:
        """Return bookkeeping data for every cached row."""


def cache_key(query: str) -> str:
    """Normalize a query into its cache lookup key."""
    return query.strip().lower()


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class FoodCacheService:
    """Cache reads and writes that degrade to a miss on store failures."""

    repository: FoodCacheRepository
    default_ttl: timedelta = DEFAULT_TTL
    clock: Callable[[], datetime] = field(default=_utc_now)

    def get(self, query: str, limit: int, offset: int = 0) -> SearchResult | None:
        """Return cached foods for a query, or None on a miss."""
        try:
            foods = self.repository.list_foods(
                cache_key(query), self.clock(), limit, offset
            )
        except CacheUnavailableError as exc:
            _logger.warning("Cache read failed, treating as miss: %s", exc)
            return None
        if not foods:
            return None
        return SearchResult(
            foods=foods,
            source=CACHE_SOURCE,
            total_results=len(foods),
            has_more=False,
        )

    def put(
        self, query: str, result: SearchResult, ttl: timedelta | None = None
    ) -> None:
        """Store every food of a provider result under the query key."""
        if not result.foods:
            return
        now = self.clock()
        expires_at = now + (self.default_ttl if ttl is None else ttl)
        try:
            self.repository.upsert_foods(
                cache_key(query), result.source, result.foods, now, expires_at
            )
        except CacheUnavailableError as exc:
            _logger.warning("Cache write skipped for %s: %s", result.source, exc)

    def clear(self) -> None:
        """Purge the whole cache."""
        self.repository.delete_all()
        _logger.info("Food cache cleared")

    def stats(self) -> CacheStats:
        """Summarize cache contents."""
        rows = self.repository.list_rows()
        now = self.clock()
        by_api: dict[str, int] = {}
        for row in rows:
            by_api[row.api_source] = by_api.get(row.api_source, 0) + 1
        cached_times = [row.cached_at for row in rows if row.cached_at is not None]
        active = sum(1 for row in rows if row.expires_at > now)
        return CacheStats(
            total_entries=len(rows),
            active_entries=active,
            expired_entries=len(rows) - active,
            by_api=by_api,
            oldest_entry=min(cached_times) if cached_times else None,
            newest_entry=max(cached_times) if cached_times else None,
        )
