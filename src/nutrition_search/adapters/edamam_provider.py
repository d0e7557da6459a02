"""Edamam Food Database provider."""

from dataclasses import dataclass

import httpx

from nutrition_search.adapters.http_json import request_json
from nutrition_search.adapters.normalization import (
    clean_text,
    expect_list,
    mandatory,
    normalize_items,
    optional,
    to_float,
)
from nutrition_search.domain.errors import (
    ProviderConfigurationError,
    ProviderDataError,
)
from nutrition_search.domain.foods import (
    NormalizedFood,
    NutrientsPer100g,
    SearchOptions,
    SearchResult,
    ServingSize,
)
from nutrition_search.domain.providers import EDAMAM

_NUTRIENT_CODES = {
    "fiber_g": "FIBTG",
    "sugar_g": "SUGAR",
    "sodium_mg": "NA",
    "saturated_fat_g": "FASAT",
    "cholesterol_mg": "CHOLE",
    "calcium_mg": "CA",
    "iron_mg": "FE",
    "vitamin_c_mg": "VITC",
}


@dataclass
class EdamamProvider:
    """Edamam parser endpoint; nutrients are reported per 100 g."""

    app_id: str | None
    app_key: str | None
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0
    name: str = EDAMAM

    @classmethod
    def create(
        cls,
        app_id: str | None,
        app_key: str | None,
        base_url: str,
        timeout: float = 8.0,
    ) -> "EdamamProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            app_id=app_id,
            app_key=app_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    @property
    def has_credentials(self) -> bool:
        """Edamam requires both an app id and an app key."""
        return bool(self.app_id and self.app_key)

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Search the parser endpoint and slice the first page of hints."""
        if not self.app_id or not self.app_key:
            raise ProviderConfigurationError(self.name, "app id/key not configured")
        payload = await request_json(
            self.http_client,
            self.name,
            "GET",
            f"{self.base_url}/parser",
            timeout=self.timeout,
            params={
                "app_id": self.app_id,
                "app_key": self.app_key,
                "ingr": query,
                "nutrition-type": "cooking",
            },
        )
        hints = expect_list(self.name, payload.get("hints"))
        end = options.offset + options.limit
        page = hints[options.offset : end]
        foods = normalize_items(self.name, page, normalize_edamam_hint)
        return SearchResult(
            foods=foods,
            source=self.name,
            total_results=len(hints),
            has_more=len(hints) > end,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def normalize_edamam_hint(hint: dict[str, object]) -> NormalizedFood:
    """Map a parser hint (food plus measures) onto the shared schema."""
    food = hint.get("food")
    if not isinstance(food, dict):
        raise ProviderDataError(EDAMAM, "hint without food")
    food_id = clean_text(food.get("foodId"))
    if food_id is None:
        raise ProviderDataError(EDAMAM, "food without foodId")

    raw = food.get("nutrients")
    raw_nutrients = raw if isinstance(raw, dict) else {}
    nutrients = NutrientsPer100g(
        calories_kcal=mandatory(raw_nutrients.get("ENERC_KCAL")),
        protein_g=mandatory(raw_nutrients.get("PROCNT")),
        carbs_g=mandatory(raw_nutrients.get("CHOCDF")),
        fat_g=mandatory(raw_nutrients.get("FAT")),
        **{
            field_name: optional(raw_nutrients.get(code))
            for field_name, code in _NUTRIENT_CODES.items()
        },
    )

    return NormalizedFood(
        id=f"edamam_{food_id}",
        name=clean_text(food.get("label")) or "Unknown Food",
        brand=clean_text(food.get("brand")),
        category=clean_text(food.get("category")),
        serving_sizes=_measures(hint.get("measures")),
        nutrients_per_100g=nutrients,
        source=EDAMAM,
        external_id=food_id,
        verified=False,
        image_url=clean_text(food.get("image")),
    )


def _measures(measures: object) -> list[ServingSize]:
    servings: list[ServingSize] = []
    if not isinstance(measures, list):
        return servings
    for measure in measures:
        if not isinstance(measure, dict):
            continue
        label = clean_text(measure.get("label"))
        weight = to_float(measure.get("weight"))
        if label and weight and weight > 0 and label.lower() != "gram":
            servings.append(ServingSize(name=label, grams=weight))
    return servings
