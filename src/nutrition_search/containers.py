"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from nutrition_search.adapters.calorie_ninjas_provider import CalorieNinjasProvider
from nutrition_search.adapters.edamam_provider import EdamamProvider
from nutrition_search.adapters.fatsecret_provider import FatSecretProvider
from nutrition_search.adapters.open_food_facts_provider import OpenFoodFactsProvider
from nutrition_search.adapters.supabase_food_cache_repository import (
    SupabaseFoodCacheRepository,
)
from nutrition_search.adapters.supabase_provider_config_repository import (
    SupabaseProviderConfigRepository,
)
from nutrition_search.adapters.supabase_usage_repository import (
    SupabaseUsageRepository,
)
from nutrition_search.adapters.usda_provider import UsdaProvider
from nutrition_search.config import Settings, parse_provider_names
from nutrition_search.services.admin import AdminService
from nutrition_search.services.cache import FoodCacheService
from nutrition_search.services.providers import ProviderRegistry
from nutrition_search.services.search import SearchService
from nutrition_search.services.usage import UsageService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    registry: ProviderRegistry
    cache_service: FoodCacheService
    usage_service: UsageService
    search_service: SearchService
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timeout = resolved_settings.provider_timeout_seconds
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )

    usda = UsdaProvider.create(
        api_key=resolved_settings.usda_api_key,
        base_url=resolved_settings.usda_base_url,
        timeout=timeout,
    )
    edamam = EdamamProvider.create(
        app_id=resolved_settings.edamam_app_id,
        app_key=resolved_settings.edamam_app_key,
        base_url=resolved_settings.edamam_base_url,
        timeout=timeout,
    )
    fatsecret = FatSecretProvider.create(
        client_id=resolved_settings.fatsecret_client_id,
        client_secret=resolved_settings.fatsecret_client_secret,
        base_url=resolved_settings.fatsecret_base_url,
        token_url=resolved_settings.fatsecret_token_url,
        timeout=timeout,
    )
    calorie_ninjas = CalorieNinjasProvider.create(
        api_key=resolved_settings.calorie_ninjas_api_key,
        base_url=resolved_settings.calorie_ninjas_base_url,
        timeout=timeout,
    )
    open_food_facts = OpenFoodFactsProvider.create(
        base_url=resolved_settings.open_food_facts_base_url, timeout=timeout
    )
    providers = [usda, edamam, fatsecret, calorie_ninjas, open_food_facts]

    registry = ProviderRegistry(
        adapters={provider.name: provider for provider in providers},
        config_repository=SupabaseProviderConfigRepository(supabase_client),
        disabled=frozenset(
            parse_provider_names(resolved_settings.disabled_providers)
        ),
        refresh_seconds=resolved_settings.provider_config_refresh_seconds,
    )
    cache_ttl = timedelta(seconds=resolved_settings.cache_ttl_seconds)
    cache_service = FoodCacheService(
        SupabaseFoodCacheRepository(supabase_client), default_ttl=cache_ttl
    )
    usage_service = UsageService(SupabaseUsageRepository(supabase_client))
    search_service = SearchService(
        registry=registry,
        cache=cache_service,
        usage=usage_service,
        provider_timeout_seconds=timeout,
        barcode_lookup=open_food_facts,
    )
    admin_service = AdminService(
        registry=registry,
        usage=usage_service,
        cache=cache_service,
        provider_timeout_seconds=timeout,
    )

    async def close_resources() -> None:
        for provider in providers:
            await provider.close()

    return AppContainer(
        settings=resolved_settings,
        registry=registry,
        cache_service=cache_service,
        usage_service=usage_service,
        search_service=search_service,
        admin_service=admin_service,
        close_resources=close_resources,
    )
