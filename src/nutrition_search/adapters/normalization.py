"""Helpers shared by provider normalizers."""

import logging
import math
import re
from collections.abc import Callable, Iterable

from nutrition_search.domain.errors import ProviderDataError
from nutrition_search.domain.foods import BASE_SERVING_GRAMS, NormalizedFood

_logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")
_GRAMS = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:g|gr|grams?|ml)\b", re.IGNORECASE)


def to_float(value: object) -> float | None:
    """Coerce numbers and numeric strings, returning None for anything else."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        match = _NUMBER.search(value)
        if match is None:
            return None
        number = float(match.group(0).replace(",", "."))
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def non_negative(value: float | None) -> float | None:
    """Clamp a nutrient value at zero."""
    if value is None:
        return None
    return max(value, 0.0)


def mandatory(value: object) -> float:
    """Mandatory nutrients default to zero."""
    return non_negative(to_float(value)) or 0.0


def optional(value: object) -> float | None:
    return non_negative(to_float(value))


def per_100g(value: object, serving_grams: float | None) -> float | None:
    """Rescale a per-serving value to the 100 g basis."""
    number = to_float(value)
    if number is None:
        return None
    if not serving_grams or serving_grams <= 0:
        return non_negative(number)
    return non_negative(number / serving_grams * BASE_SERVING_GRAMS)


def parse_grams(text: object) -> float | None:
    """Extract a gram (or millilitre) amount from text like '30 g (2 biscuits)'."""
    if not isinstance(text, str):
        return None
    match = _GRAMS.search(text)
    if match is None:
        return None
    grams = float(match.group(1).replace(",", "."))
    return grams if grams > 0 else None


def clean_text(value: object) -> str | None:
    """Return stripped text, or None for blanks and non-strings."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def normalize_items(
    provider: str,
    items: Iterable[object],
    normalizer: Callable[[dict[str, object]], NormalizedFood],
) -> list[NormalizedFood]:
    """Normalize raw items, skipping the ones that cannot be identified."""
    foods: list[NormalizedFood] = []
    for item in items:
        if not isinstance(item, dict):
            _logger.warning("%s returned a non-object item, skipping", provider)
            continue
        try:
            foods.append(normalizer(item))
        except ProviderDataError as exc:
            _logger.warning("Skipping %s item: %s", provider, exc.message)
    return foods


def expect_list(provider: str, value: object) -> list[object]:
    """Return a list payload field, treating a missing field as empty."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProviderDataError(provider, "expected a list of items")
    return value
