"""FatSecret Platform provider.

FatSecret's search endpoint only returns nutrients embedded in a free-text
description such as ``"Per 50g - Calories: 200kcal | Fat: 5.00g | Carbs:
30.00g | Protein: 8.00g"``. The parsing is best effort and lives in
:func:`parse_fatsecret_description`.
"""

import logging
import re
import time
from dataclasses import dataclass, field

import httpx

from nutrition_search.adapters.http_json import request_json
from nutrition_search.adapters.normalization import (
    clean_text,
    non_negative,
    normalize_items,
    to_float,
)
from nutrition_search.domain.errors import (
    ProviderConfigurationError,
    ProviderDataError,
    ProviderNetworkError,
)
from nutrition_search.domain.foods import (
    BASE_SERVING_GRAMS,
    NormalizedFood,
    NutrientsPer100g,
    SearchOptions,
    SearchResult,
    ServingSize,
)
from nutrition_search.domain.providers import FATSECRET

HTTP_UNAUTHORIZED = 401
TOKEN_EXPIRY_MARGIN_SECONDS = 60.0

_logger = logging.getLogger(__name__)

_BASIS = re.compile(r"^\s*Per\s+(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>g|ml)\b", re.I)
_FIELDS = {
    "calories_kcal": re.compile(r"Calories:\s*(\d+(?:\.\d+)?)", re.I),
    "fat_g": re.compile(r"Fat:\s*(\d+(?:\.\d+)?)\s*g", re.I),
    "carbs_g": re.compile(r"Carbs:\s*(\d+(?:\.\d+)?)\s*g", re.I),
    "protein_g": re.compile(r"Protein:\s*(\d+(?:\.\d+)?)\s*g", re.I),
}


@dataclass
class _Token:
    value: str
    expires_at: float


@dataclass
class FatSecretProvider:
    """FatSecret foods.search with a cached OAuth2 client-credentials token."""

    client_id: str | None
    client_secret: str | None
    base_url: str
    token_url: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0
    name: str = FATSECRET
    _token: _Token | None = field(default=None, repr=False)

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        client_id: str | None,
        client_secret: str | None,
        base_url: str,
        token_url: str,
        timeout: float = 8.0,
    ) -> "FatSecretProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            base_url=base_url,
            token_url=token_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    @property
    def has_credentials(self) -> bool:
        """FatSecret requires a client id and secret."""
        return bool(self.client_id and self.client_secret)

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Run foods.search; a 401 drops the cached token for the next call."""
        if not self.client_id or not self.client_secret:
            raise ProviderConfigurationError(
                self.name, "client id/secret not configured"
            )
        token = await self._access_token()
        try:
            payload = await request_json(
                self.http_client,
                self.name,
                "GET",
                self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {token}"},
                params={
                    "method": "foods.search",
                    "search_expression": query,
                    "page_number": str(options.offset // options.limit),
                    "max_results": str(options.limit),
                    "format": "json",
                },
            )
        except ProviderNetworkError as exc:
            if exc.status_code == HTTP_UNAUTHORIZED:
                self._token = None
            raise

        error = payload.get("error")
        if isinstance(error, dict):
            raise ProviderNetworkError(
                self.name, f"API error: {error.get('message', 'unknown')}"
            )
        foods_block = payload.get("foods")
        if foods_block is None:
            return SearchResult(foods=[], source=self.name, total_results=0)
        if not isinstance(foods_block, dict):
            raise ProviderDataError(self.name, "unexpected foods payload")
        items = foods_block.get("food") or []
        # A single hit comes back as an object instead of a list.
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list):
            raise ProviderDataError(self.name, "unexpected food list")

        foods = normalize_items(self.name, items, normalize_fatsecret_food)
        total = to_float(foods_block.get("total_results"))
        page = to_float(foods_block.get("page_number")) or 0
        per_page = to_float(foods_block.get("max_results")) or options.limit
        return SearchResult(
            foods=foods,
            source=self.name,
            total_results=int(total) if total is not None else None,
            has_more=(page + 1) * per_page < total if total is not None else None,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _access_token(self) -> str:
        """Return a cached token, fetching a new one once it expires."""
        now = time.monotonic()
        if self._token is not None and self._token.expires_at > now:
            return self._token.value
        payload = await request_json(
            self.http_client,
            self.name,
            "POST",
            self.token_url,
            timeout=self.timeout,
            auth=(self.client_id or "", self.client_secret or ""),
            data={"grant_type": "client_credentials", "scope": "basic"},
        )
        access_token = clean_text(payload.get("access_token"))
        if access_token is None:
            raise ProviderDataError(self.name, "token response without access_token")
        expires_in = to_float(payload.get("expires_in")) or 0.0
        self._token = _Token(
            value=access_token,
            expires_at=now + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0.0),
        )
        _logger.debug("Fetched FatSecret token valid for %ss", expires_in)
        return access_token


def parse_fatsecret_description(description: str | None) -> dict[str, float]:
    """Extract per-100g macros from a FatSecret food description.

    Missing values default to 0. Gram and millilitre bases are rescaled to
    100 g; other bases ("Per 1 cup") are returned as reported.
    """
    text = description or ""
    values = {
        name: float(match.group(1)) if (match := pattern.search(text)) else 0.0
        for name, pattern in _FIELDS.items()
    }
    basis = _BASIS.search(text)
    if basis is not None:
        grams = float(basis.group("amount"))
        if grams > 0:
            values = {
                name: value / grams * BASE_SERVING_GRAMS
                for name, value in values.items()
            }
    return {name: non_negative(value) or 0.0 for name, value in values.items()}


def serving_grams(description: str | None) -> float | None:
    """Return the serving weight when the description basis is metric."""
    basis = _BASIS.search(description or "")
    if basis is None:
        return None
    grams = float(basis.group("amount"))
    return grams if grams > 0 else None


def normalize_fatsecret_food(food: dict[str, object]) -> NormalizedFood:
    """Map a foods.search hit onto the shared schema."""
    food_id = clean_text(food.get("food_id"))
    if food_id is None:
        raise ProviderDataError(FATSECRET, "food without food_id")
    description = clean_text(food.get("food_description"))
    servings = []
    grams = serving_grams(description)
    if description is not None and grams is None:
        raise ProviderDataError(
            FATSECRET, f"food {food_id} has no metric serving basis"
        )
    if grams is not None and grams != BASE_SERVING_GRAMS:
        servings.append(ServingSize(name=f"Serving ({grams:g}g)", grams=grams))
    return NormalizedFood(
        id=f"fs_{food_id}",
        name=clean_text(food.get("food_name")) or "Unknown Food",
        brand=clean_text(food.get("brand_name")),
        serving_sizes=servings,
        nutrients_per_100g=NutrientsPer100g(**parse_fatsecret_description(description)),
        source=FATSECRET,
        external_id=food_id,
        verified=False,
    )
