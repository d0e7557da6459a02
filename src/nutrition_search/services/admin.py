"""Admin service for provider, usage and cache reporting."""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass

from nutrition_search.domain.cache import CacheStats
from nutrition_search.domain.errors import ProviderError
from nutrition_search.domain.foods import SearchOptions
from nutrition_search.domain.usage import APIUsageStats
from nutrition_search.services.cache import FoodCacheService
from nutrition_search.services.providers import ProviderRegistry
from nutrition_search.services.usage import DEFAULT_WINDOW_DAYS, UsageService

CONNECTION_TEST_QUERY = "apple"

_logger = logging.getLogger(__name__)


class UnknownProviderError(LookupError):
    """Raised when an admin action names a provider that is not registered."""


@dataclass
class AdminService:
    """Service for admin dashboards."""

    registry: ProviderRegistry
    usage: UsageService
    cache: FoodCacheService
    provider_timeout_seconds: float = 8.0

    def list_providers(self) -> list[dict[str, object]]:
        """Return each provider's effective config with this month's usage."""
        configs = self.registry.configs()
        stats = {item.api: item for item in self.usage.stats(configs=configs)}
        providers = []
        for config in configs:
            usage = stats.get(config.name)
            providers.append(
                {
                    **asdict(config),
                    "requests_today": usage.requests_today if usage else 0,
                    "requests_this_month": usage.requests_this_month if usage else 0,
                    "last_request": usage.last_request.isoformat() if usage else None,
                    "rate_limit_remaining": usage.rate_limit_remaining
                    if usage
                    else None,
                }
            )
        return providers

    async def test_provider(self, name: str) -> dict[str, object]:
        """Run a one-item search against a provider and time it."""
        try:
            adapter = self.registry.adapter(name)
        except KeyError as exc:
            raise UnknownProviderError(name) from exc
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self.provider_timeout_seconds):
                result = await adapter.search(
                    CONNECTION_TEST_QUERY, SearchOptions(limit=1)
                )
        except TimeoutError:
            success, message, count = False, "timed out", 0
        except ProviderError as exc:
            success, message, count = False, exc.message, 0
        else:
            success, message, count = True, "connection successful", len(result.foods)
        elapsed_ms = round((time.perf_counter() - started) * 1000)
        _logger.info("Connection test for %s: %s (%sms)", name, message, elapsed_ms)
        return {
            "provider": name,
            "success": success,
            "message": message,
            "results": count,
            "response_time_ms": elapsed_ms,
        }

    def usage_stats(
        self, window_days: int = DEFAULT_WINDOW_DAYS
    ) -> list[APIUsageStats]:
        """Return usage counters per provider."""
        return self.usage.stats(window_days, configs=self.registry.configs())

    def cache_stats(self) -> CacheStats:
        """Return cache totals."""
        return self.cache.stats()

    def clear_cache(self) -> None:
        """Purge cached foods."""
        self.cache.clear()
