"""Provider identities and configuration."""

from dataclasses import dataclass

USDA = "USDA"
EDAMAM = "Edamam"
FATSECRET = "FatSecret"
CALORIE_NINJAS = "CalorieNinjas"
OPEN_FOOD_FACTS = "OpenFoodFacts"

# Most authoritative first; the keyless provider last.
DEFAULT_PROVIDER_ORDER: tuple[str, ...] = (
    USDA,
    EDAMAM,
    FATSECRET,
    CALORIE_NINJAS,
    OPEN_FOOD_FACTS,
)

CACHE_SOURCE = "cache"
NO_SOURCE = "none"


@dataclass(frozen=True)
class ProviderConfig:
    """Effective configuration of one provider for a single request."""

    name: str
    enabled: bool
    has_credentials: bool
    rate_limit_per_hour: int | None = None
    rate_limit_per_day: int | None = None
    rate_limit_per_month: int | None = None


@dataclass(frozen=True)
class ProviderOverride:
    """Admin-managed settings stored outside the process."""

    name: str
    enabled: bool
    rate_limit_per_hour: int | None = None
    rate_limit_per_day: int | None = None
    rate_limit_per_month: int | None = None
