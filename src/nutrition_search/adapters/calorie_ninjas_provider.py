"""CalorieNinjas provider; values come per serving and are rescaled to 100 g."""

from dataclasses import dataclass
from functools import partial

import httpx

from nutrition_search.adapters.http_json import request_json
from nutrition_search.adapters.normalization import (
    clean_text,
    expect_list,
    normalize_items,
    per_100g,
    slugify,
    to_float,
)
from nutrition_search.domain.errors import (
    ProviderConfigurationError,
    ProviderDataError,
)
from nutrition_search.domain.foods import (
    BASE_SERVING_GRAMS,
    NormalizedFood,
    NutrientsPer100g,
    SearchOptions,
    SearchResult,
    ServingSize,
)
from nutrition_search.domain.providers import CALORIE_NINJAS

_MANDATORY_FIELDS = {
    "calories_kcal": "calories",
    "protein_g": "protein_g",
    "carbs_g": "carbohydrates_total_g",
    "fat_g": "fat_total_g",
}
_OPTIONAL_FIELDS = {
    "fiber_g": "fiber_g",
    "sugar_g": "sugar_g",
    "sodium_mg": "sodium_mg",
    "saturated_fat_g": "fat_saturated_g",
    "cholesterol_mg": "cholesterol_mg",
}


@dataclass
class CalorieNinjasProvider:
    api_key: str | None
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0
    name: str = CALORIE_NINJAS

    @classmethod
    def create(
        cls, api_key: str | None, base_url: str, timeout: float = 8.0
    ) -> "CalorieNinjasProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Query the nutrition endpoint; it has no paging."""
        if not self.api_key:
            raise ProviderConfigurationError(self.name, "API key not configured")
        payload = await request_json(
            self.http_client,
            self.name,
            "GET",
            f"{self.base_url}/nutrition",
            timeout=self.timeout,
            params={"query": query},
            headers={"X-Api-Key": self.api_key},
        )
        items = expect_list(self.name, payload.get("items"))
        normalizer = partial(normalize_calorie_ninjas_item, query=query)
        end = options.offset + options.limit
        foods = normalize_items(self.name, items[options.offset : end], normalizer)
        return SearchResult(
            foods=foods,
            source=self.name,
            total_results=len(items),
            has_more=len(items) > end,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def normalize_calorie_ninjas_item(
    item: dict[str, object], query: str = ""
) -> NormalizedFood:
    """Rescale a per-serving item to 100 g.

    CalorieNinjas has no item ids, so the id is derived from the item name.
    A missing serving weight is treated as 100 g.
    """
    name = clean_text(item.get("name")) or clean_text(query)
    slug = slugify(name or "")
    if not slug:
        raise ProviderDataError(CALORIE_NINJAS, "item without a name")

    serving = to_float(item.get("serving_size_g"))
    grams = serving if serving and serving > 0 else BASE_SERVING_GRAMS
    nutrients = {
        field_name: per_100g(item.get(key), grams) or 0.0
        for field_name, key in _MANDATORY_FIELDS.items()
    }
    nutrients.update(
        {
            field_name: per_100g(item.get(key), grams)
            for field_name, key in _OPTIONAL_FIELDS.items()
        }
    )

    servings = []
    if grams != BASE_SERVING_GRAMS:
        servings.append(ServingSize(name=f"Serving ({grams:g}g)", grams=grams))
    return NormalizedFood(
        id=f"cn_{slug}",
        name=name or slug,
        serving_sizes=servings,
        nutrients_per_100g=NutrientsPer100g(**nutrients),
        source=CALORIE_NINJAS,
        external_id=slug,
        verified=False,
    )
