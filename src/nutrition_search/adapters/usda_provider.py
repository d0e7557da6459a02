"""USDA FoodData Central provider."""

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
from nutrition_search.domain.providers import USDA

_DATA_TYPES = ["Foundation", "SR Legacy", "Survey (FNDDS)"]
_BRANDED = "Branded"

# FDC nutrient ids; later ids in a tuple are fallbacks.
_NUTRIENT_IDS: dict[str, tuple[int, ...]] = {
    "calories_kcal": (1008, 2047, 2048),
    "protein_g": (1003,),
    "carbs_g": (1005,),
    "fat_g": (1004,),
    "fiber_g": (1079,),
    "sugar_g": (2000, 1063),
    "sodium_mg": (1093,),
    "saturated_fat_g": (1258,),
    "cholesterol_mg": (1253,),
    "calcium_mg": (1087,),
    "iron_mg": (1089,),
    "vitamin_c_mg": (1162,),
}
_MANDATORY = {"calories_kcal", "protein_g", "carbs_g", "fat_g"}
_GRAM_UNITS = {"g", "grm", "gram", "grams"}


@dataclass
class UsdaProvider:
    """FDC search backed by httpx."""

    api_key: str | None
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0
    name: str = USDA

    @classmethod
    def create(
        cls, api_key: str | None, base_url: str, timeout: float = 8.0
    ) -> "UsdaProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    @property
    def has_credentials(self) -> bool:
        """USDA requires an API key."""
        return bool(self.api_key)

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Search FDC foods, widening to branded foods for barcode lookups."""
        if not self.api_key:
            raise ProviderConfigurationError(self.name, "API key not configured")
        data_types = list(_DATA_TYPES)
        if options.include_barcode:
            data_types.append(_BRANDED)
        payload = await request_json(
            self.http_client,
            self.name,
            "POST",
            f"{self.base_url}/foods/search",
            timeout=self.timeout,
            params={"api_key": self.api_key},
            json_body={
                "query": query,
                "pageSize": options.limit,
                "pageNumber": options.offset // options.limit + 1,
                "dataType": data_types,
            },
        )
        foods = normalize_items(
            self.name, expect_list(self.name, payload.get("foods")), normalize_usda_food
        )
        total_pages = to_float(payload.get("totalPages"))
        current_page = to_float(payload.get("currentPage"))
        total_hits = to_float(payload.get("totalHits"))
        return SearchResult(
            foods=foods,
            source=self.name,
            total_results=int(total_hits) if total_hits is not None else None,
            has_more=total_pages > current_page
            if total_pages is not None and current_page is not None
            else None,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def normalize_usda_food(food: dict[str, object]) -> NormalizedFood:
    """Map an FDC search hit onto the shared schema."""
    fdc_id = food.get("fdcId")
    if fdc_id is None or fdc_id == "":
        raise ProviderDataError(USDA, "food without fdcId")
    external_id = str(fdc_id)

    values = _nutrient_values(food.get("foodNutrients"))
    nutrients: dict[str, float | None] = {}
    for field_name, ids in _NUTRIENT_IDS.items():
        raw = next((values[nid] for nid in ids if nid in values), None)
        nutrients[field_name] = (
            mandatory(raw) if field_name in _MANDATORY else optional(raw)
        )

    servings = []
    serving_size = to_float(food.get("servingSize"))
    unit = clean_text(food.get("servingSizeUnit"))
    is_grams = unit is None or unit.lower() in _GRAM_UNITS
    if serving_size and serving_size > 0 and is_grams:
        label = clean_text(food.get("householdServingFullText"))
        servings.append(
            ServingSize(
                name=f"Serving ({label or f'{serving_size:g}g'})", grams=serving_size
            )
        )

    return NormalizedFood(
        id=f"usda_{external_id}",
        name=clean_text(food.get("description")) or "Unknown Food",
        brand=clean_text(food.get("brandOwner")) or clean_text(food.get("brandName")),
        category=clean_text(food.get("foodCategory")),
        barcode=clean_text(food.get("gtinUpc")),
        serving_sizes=servings,
        nutrients_per_100g=NutrientsPer100g(**nutrients),
        source=USDA,
        external_id=external_id,
        verified=True,
    )


def _nutrient_values(food_nutrients: object) -> dict[int, object]:
    """Index FDC nutrients by id, accepting search and detail payload shapes."""
    values: dict[int, object] = {}
    if not isinstance(food_nutrients, list):
        return values
    for nutrient in food_nutrients:
        if not isinstance(nutrient, dict):
            continue
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient.get("nutrientId")
        if nutrient_id is None and isinstance(nutrient_info, dict):
            nutrient_id = nutrient_info.get("id")
        amount = nutrient.get("value", nutrient.get("amount"))
        if isinstance(nutrient_id, int) and amount is not None:
            values.setdefault(nutrient_id, amount)
    return values
