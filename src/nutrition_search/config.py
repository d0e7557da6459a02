"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    usda_api_key: str | None = None
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    edamam_app_id: str | None = None
    edamam_app_key: str | None = None
    edamam_base_url: str = "https://api.edamam.com/api/food-database/v2"
    fatsecret_client_id: str | None = None
    fatsecret_client_secret: str | None = None
    fatsecret_base_url: str = "https://platform.fatsecret.com/rest/server.api"
    fatsecret_token_url: str = "https://oauth.fatsecret.com/connect/token"
    calorie_ninjas_api_key: str | None = None
    calorie_ninjas_base_url: str = "https://api.calorieninjas.com/v1"
    open_food_facts_base_url: str = "https://world.openfoodfacts.org"
    provider_timeout_seconds: float = 8.0
    cache_ttl_seconds: int = 86400
    provider_config_refresh_seconds: int = 300
    disabled_providers: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_names(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated provider list from env or a query string."""
    if raw is None:
        return ()
    names: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value not in names:
            names.append(value)
    return tuple(names)
