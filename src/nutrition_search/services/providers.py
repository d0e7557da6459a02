"""Provider adapter interface and the registry that orders providers."""

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from nutrition_search.domain.errors import ConfigurationStoreError
from nutrition_search.domain.foods import SearchOptions, SearchResult
from nutrition_search.domain.providers import (
    DEFAULT_PROVIDER_ORDER,
    ProviderConfig,
    ProviderOverride,
)

_logger = logging.getLogger(__name__)


class ProviderAdapter(Protocol):
    """One external nutrition database."""

    name: str

    @property
    def has_credentials(self) -> bool:
        """Whether every credential the provider needs is present."""

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Run one search call and return normalized foods."""


class ProviderConfigRepository(Protocol):
    """Source of admin-managed provider overrides."""

    def list_overrides(self) -> list[ProviderOverride]:
        """Return stored overrides keyed by provider name."""


@dataclass(frozen=True)
class ProviderSnapshot:
    """Immutable view of provider configuration for one request."""

    configs: tuple[ProviderConfig, ...]

    def enabled_providers(self) -> list[str]:
        """Return enabled provider names in default reliability order."""
        return [config.name for config in self.configs if config.enabled]

    def is_enabled(self, name: str) -> bool:
        """Return True when the provider may be invoked."""
        return any(config.name == name and config.enabled for config in self.configs)

    def get(self, name: str) -> ProviderConfig | None:
        """Return the config for a provider, if registered."""
        for config in self.configs:
            if config.name == name:
                return config
        return None

    def execution_order(self, preferred: Iterable[str] | None = None) -> list[str]:
        """Preferred enabled providers first, then the remaining enabled ones."""
        enabled = self.enabled_providers()
        order: list[str] = []
        for name in preferred or ():
            if name in enabled and name not in order:
                order.append(name)
        order.extend(name for name in enabled if name not in order)
        return order


@dataclass
class ProviderRegistry:
    """Merges static provider setup with admin overrides."""

    adapters: Mapping[str, ProviderAdapter]
    config_repository: ProviderConfigRepository | None = None
    disabled: frozenset[str] = frozenset()
    refresh_seconds: float = 300.0
    _overrides: dict[str, ProviderOverride] = field(default_factory=dict)
    _loaded_at: float | None = None

    def adapter(self, name: str) -> ProviderAdapter:
        """Return the adapter registered for a provider."""
        return self.adapters[name]

    def snapshot(self) -> ProviderSnapshot:
        """Return the configuration to use for one request."""
        overrides = self._current_overrides()
        configs = []
        for name in _ordered_names(self.adapters):
            adapter = self.adapters[name]
            override = overrides.get(name)
            enabled = name not in self.disabled
            if override is not None:
                enabled = enabled and override.enabled
            configs.append(
                ProviderConfig(
                    name=name,
                    enabled=enabled,
                    has_credentials=adapter.has_credentials,
                    rate_limit_per_hour=override.rate_limit_per_hour
                    if override
                    else None,
                    rate_limit_per_day=override.rate_limit_per_day
                    if override
                    else None,
                    rate_limit_per_month=override.rate_limit_per_month
                    if override
                    else None,
                )
            )
        return ProviderSnapshot(configs=tuple(configs))

    def configs(self) -> list[ProviderConfig]:
        """Return the effective config of every registered provider."""
        return list(self.snapshot().configs)

    def enabled_providers(self) -> list[str]:
        """Return enabled providers in default reliability order."""
        return self.snapshot().enabled_providers()

    def is_enabled(self, name: str) -> bool:
        """Return True when the provider is currently enabled."""
        return self.snapshot().is_enabled(name)

    def invalidate(self) -> None:
        """Force the next snapshot to reload overrides."""
        self._loaded_at = None

    def _current_overrides(self) -> dict[str, ProviderOverride]:
        if self.config_repository is None:
            return self._overrides
        now = time.monotonic()
        if self._loaded_at is not None and now - self._loaded_at < self.refresh_seconds:
            return self._overrides
        try:
            overrides = self.config_repository.list_overrides()
        except ConfigurationStoreError:
            _logger.warning(
                "Failed to load provider overrides, keeping last known", exc_info=True
            )
            return self._overrides
        self._overrides = {override.name: override for override in overrides}
        self._loaded_at = now
        return self._overrides


def _ordered_names(adapters: Mapping[str, ProviderAdapter]) -> list[str]:
    """Default order first; unknown providers keep registration order."""
    known = [name for name in DEFAULT_PROVIDER_ORDER if name in adapters]
    extra = [name for name in adapters if name not in DEFAULT_PROVIDER_ORDER]
    return known + extra
