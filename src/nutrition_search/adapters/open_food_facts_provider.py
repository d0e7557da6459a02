"""Open Food Facts provider (no credentials) and barcode lookup."""

import logging
from dataclasses import dataclass

import httpx

from nutrition_search.adapters.http_json import request_json
from nutrition_search.adapters.normalization import (
    clean_text,
    expect_list,
    mandatory,
    non_negative,
    normalize_items,
    optional,
    parse_grams,
    to_float,
)
from nutrition_search.domain.errors import ProviderDataError, ProviderNetworkError
from nutrition_search.domain.foods import (
    NormalizedFood,
    NutrientsPer100g,
    SearchOptions,
    SearchResult,
    ServingSize,
)
from nutrition_search.domain.providers import OPEN_FOOD_FACTS

HTTP_NOT_FOUND = 404
KJ_PER_KCAL = 4.184
SALT_TO_SODIUM = 2.5
_SEARCH_FIELDS = ",".join(
    [
        "code",
        "product_name",
        "product_name_en",
        "generic_name",
        "brands",
        "categories_tags",
        "serving_size",
        "nutriments",
        "image_url",
    ]
)

_logger = logging.getLogger(__name__)


@dataclass
class OpenFoodFactsProvider:
    """Search and barcode lookup against the public OFF database."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0
    name: str = OPEN_FOOD_FACTS

    @classmethod
    def create(cls, base_url: str, timeout: float = 8.0) -> "OpenFoodFactsProvider":
        """Create a provider with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient(), timeout=timeout)

    @property
    def has_credentials(self) -> bool:
        """OFF is a public API."""
        return True

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        payload = await request_json(
            self.http_client,
            self.name,
            "GET",
            f"{self.base_url}/cgi/search.pl",
            timeout=self.timeout,
            params={
                "search_terms": query,
                "search_simple": "1",
                "action": "process",
                "json": "1",
                "fields": _SEARCH_FIELDS,
                "page_size": str(options.limit),
                "page": str(options.offset // options.limit + 1),
            },
        )
        products = expect_list(self.name, payload.get("products"))
        foods = normalize_items(self.name, products, normalize_off_product)
        count = to_float(payload.get("count"))
        page = to_float(payload.get("page"))
        page_count = to_float(payload.get("page_count"))
        if page_count is None and count is not None and page is not None:
            has_more = page * options.limit < count
        elif page is not None and page_count is not None:
            has_more = page < page_count
        else:
            has_more = None
        return SearchResult(
            foods=foods,
            source=self.name,
            total_results=int(count) if count is not None else None,
            has_more=has_more,
        )

    async def lookup_barcode(self, code: str) -> NormalizedFood | None:
        """Fetch a single product by barcode; unknown codes return None."""
        try:
            payload = await request_json(
                self.http_client,
                self.name,
                "GET",
                f"{self.base_url}/api/v2/product/{code}.json",
                timeout=self.timeout,
            )
        except ProviderNetworkError as exc:
            if exc.status_code == HTTP_NOT_FOUND:
                return None
            raise
        if payload.get("status") != 1:
            _logger.debug("Barcode %s not found on Open Food Facts", code)
            return None
        product = payload.get("product")
        if not isinstance(product, dict):
            raise ProviderDataError(self.name, "product payload missing")
        return normalize_off_product({"code": code, **product})

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def normalize_off_product(product: dict[str, object]) -> NormalizedFood:
    """Map an OFF product onto the shared schema.

    Energy falls back from kcal to kJ, sodium from grams of sodium to grams
    of salt; OFF reports both in grams, the schema keeps sodium in mg.
    """
    code = clean_text(product.get("code"))
    if code is None:
        raise ProviderDataError(OPEN_FOOD_FACTS, "product without code")
    raw = product.get("nutriments")
    nutriments = raw if isinstance(raw, dict) else {}

    kcal = to_float(nutriments.get("energy-kcal_100g"))
    if kcal is None:
        kilojoules = to_float(nutriments.get("energy_100g"))
        if kilojoules is not None:
            kcal = kilojoules / KJ_PER_KCAL

    sodium_g = to_float(nutriments.get("sodium_100g"))
    if sodium_g is None:
        salt_g = to_float(nutriments.get("salt_100g"))
        if salt_g is not None:
            sodium_g = salt_g / SALT_TO_SODIUM
    cholesterol_g = to_float(nutriments.get("cholesterol_100g"))
    calcium_g = to_float(nutriments.get("calcium_100g"))
    iron_g = to_float(nutriments.get("iron_100g"))
    vitamin_c_g = to_float(nutriments.get("vitamin-c_100g"))

    nutrients = NutrientsPer100g(
        calories_kcal=mandatory(kcal),
        protein_g=mandatory(nutriments.get("proteins_100g")),
        carbs_g=mandatory(nutriments.get("carbohydrates_100g")),
        fat_g=mandatory(nutriments.get("fat_100g")),
        fiber_g=optional(nutriments.get("fiber_100g")),
        sugar_g=optional(nutriments.get("sugars_100g")),
        sodium_mg=_milligrams(sodium_g),
        saturated_fat_g=optional(nutriments.get("saturated-fat_100g")),
        cholesterol_mg=_milligrams(cholesterol_g),
        calcium_mg=_milligrams(calcium_g),
        iron_mg=_milligrams(iron_g),
        vitamin_c_mg=_milligrams(vitamin_c_g),
    )

    servings = []
    serving_text = clean_text(product.get("serving_size"))
    grams = parse_grams(serving_text)
    if serving_text and grams:
        servings.append(ServingSize(name=f"Serving ({serving_text})", grams=grams))

    return NormalizedFood(
        id=f"off_{code}",
        name=clean_text(product.get("product_name"))
        or clean_text(product.get("product_name_en"))
        or clean_text(product.get("generic_name"))
        or "Unknown Product",
        brand=_first_brand(product.get("brands")),
        category=_first_category(product.get("categories_tags")),
        barcode=code,
        serving_sizes=servings,
        nutrients_per_100g=nutrients,
        source=OPEN_FOOD_FACTS,
        external_id=code,
        verified=False,
        image_url=clean_text(product.get("image_url")),
    )


def _milligrams(grams: float | None) -> float | None:
    if grams is None:
        return None
    return non_negative(grams * 1000)


def _first_brand(brands: object) -> str | None:
    if not isinstance(brands, str):
        return None
    return clean_text(brands.split(",")[0])


def _first_category(tags: object) -> str | None:
    if not isinstance(tags, list) or not tags:
        return None
    tag = clean_text(tags[0])
    if tag is None:
        return None
    # Tags carry a language prefix, e.g. "en:breakfast-cereals".
    return tag.split(":", 1)[-1]
