"""Supabase repository for admin-managed provider settings."""

from dataclasses import dataclass

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from nutrition_search.domain.errors import ConfigurationStoreError
from nutrition_search.domain.providers import ProviderOverride
from nutrition_search.services.providers import ProviderConfigRepository

TABLE = "api_configurations"


@dataclass
class SupabaseProviderConfigRepository(ProviderConfigRepository):
    client: Client

    def list_overrides(self) -> list[ProviderOverride]:
        """Return the enabled flag and rate limits stored per provider."""
        try:
            response = (
                self.client.table(TABLE)
                .select(
                    "api_name, is_enabled, rate_limit_per_hour, "
                    "rate_limit_per_day, rate_limit_per_month"
                )
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise ConfigurationStoreError(f"config query failed: {exc}") from exc
        overrides = []
        for row in response.data or []:
            name = row.get("api_name")
            if not isinstance(name, str) or not name:
                continue
            overrides.append(
                ProviderOverride(
                    name=name,
                    enabled=bool(row.get("is_enabled", True)),
                    rate_limit_per_hour=_optional_int(row.get("rate_limit_per_hour")),
                    rate_limit_per_day=_optional_int(row.get("rate_limit_per_day")),
                    rate_limit_per_month=_optional_int(
                        row.get("rate_limit_per_month")
                    ),
                )
            )
        return overrides


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
