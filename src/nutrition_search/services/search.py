"""Food search across nutrition providers with caching and fallback."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from nutrition_search.domain.errors import (
    ProviderConfigurationError,
    ProviderError,
    ProviderNetworkError,
    SearchInputError,
)
from nutrition_search.domain.foods import NormalizedFood, SearchOptions, SearchResult
from nutrition_search.domain.providers import NO_SOURCE
from nutrition_search.services.cache import FoodCacheService
from nutrition_search.services.providers import ProviderRegistry
from nutrition_search.services.usage import UsageService

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 8.0
MIN_BARCODE_DIGITS = 8
MAX_BARCODE_DIGITS = 14

_logger = logging.getLogger(__name__)


class BarcodeLookup(Protocol):
    """Provider able to resolve a single product by barcode."""

    name: str

    async def lookup_barcode(self, code: str) -> NormalizedFood | None:
        """Return the product for a barcode, or None when unknown."""


@dataclass
class SearchService:
    """Resolves a food query from cache or the first provider with results.

    Providers are tried one at a time; a provider is only called when every
    provider ranked before it came back empty or failed. Caller cancellation
    propagates into the in-flight provider call and stops the loop.
    """

    registry: ProviderRegistry
    cache: FoodCacheService
    usage: UsageService
    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS
    cache_ttl: timedelta | None = None
    barcode_lookup: BarcodeLookup | None = None

    async def search(
        self, query: str, options: SearchOptions | None = None
    ) -> SearchResult:
        """Search foods, returning an empty result when every provider fails."""
        options = options or SearchOptions()
        _validate(query, options)

        cached = self.cache.get(query, options.limit, options.offset)
        if cached is not None:
            _logger.debug("Cache hit for %r (%s foods)", query, len(cached.foods))
            return cached

        snapshot = self.registry.snapshot()
        order = snapshot.execution_order(options.preferred_apis)
        config_errors: list[ProviderConfigurationError] = []
        for provider in order:
            try:
                result = await self._invoke(provider, query, options)
            except ProviderConfigurationError as exc:
                _logger.info("Skipping %s: %s", provider, exc.message)
                config_errors.append(exc)
                continue
            except ProviderError as exc:
                _logger.warning("Provider %s failed: %s", provider, exc)
                self.usage.record_error(provider, query, exc)
                continue

            if not result.foods:
                _logger.debug("Provider %s had no match for %r", provider, query)
                continue

            self.cache.put(query, result, ttl=self.cache_ttl)
            self.usage.record_success(provider, query, len(result.foods))
            return result

        _logger.info("No provider returned foods for %r (tried %s)", query, order)
        if order and len(config_errors) == len(order):
            return SearchResult(
                source=NO_SOURCE,
                configuration_error="No nutrition provider has credentials configured",
            )
        return SearchResult(source=NO_SOURCE)

    async def lookup_barcode(self, code: str) -> NormalizedFood | None:
        """Resolve a product barcode; provider failures propagate after logging."""
        code = code.strip()
        if not code.isdigit() or not (
            MIN_BARCODE_DIGITS <= len(code) <= MAX_BARCODE_DIGITS
        ):
            raise SearchInputError("Barcode must be 8 to 14 digits")
        lookup = self.barcode_lookup
        if lookup is None or not self.registry.is_enabled(lookup.name):
            return None
        try:
            async with asyncio.timeout(self.provider_timeout_seconds):
                food = await lookup.lookup_barcode(code)
        except TimeoutError as exc:
            error = ProviderNetworkError(
                lookup.name, f"timed out after {self.provider_timeout_seconds:g}s"
            )
            self.usage.record_error(lookup.name, code, error)
            raise error from exc
        except ProviderError as exc:
            self.usage.record_error(lookup.name, code, exc)
            raise
        self.usage.record_success(lookup.name, code, 0 if food is None else 1)
        return food

    async def _invoke(
        self, provider: str, query: str, options: SearchOptions
    ) -> SearchResult:
        adapter = self.registry.adapter(provider)
        try:
            async with asyncio.timeout(self.provider_timeout_seconds):
                return await adapter.search(query, options)
        except TimeoutError as exc:
            raise ProviderNetworkError(
                provider,
                f"timed out after {self.provider_timeout_seconds:g}s",
            ) from exc


def _validate(query: str, options: SearchOptions) -> None:
    if not query or not query.strip():
        raise SearchInputError("Search query must not be empty")
    if options.limit <= 0:
        raise SearchInputError("limit must be greater than zero")
    if options.offset < 0:
        raise SearchInputError("offset must not be negative")
