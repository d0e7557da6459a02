"""Canonical food models returned by every provider."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator

BASE_SERVING_NAME = "100g"
BASE_SERVING_GRAMS = 100.0


class ServingSize(BaseModel):
    """Named serving with its weight in grams."""

    name: str
    grams: float = Field(gt=0)


class NutrientsPer100g(BaseModel):
    """Nutrient values normalized to a 100 gram basis."""

    calories_kcal: float = Field(default=0.0, ge=0)
    protein_g: float = Field(default=0.0, ge=0)
    carbs_g: float = Field(default=0.0, ge=0)
    fat_g: float = Field(default=0.0, ge=0)
    fiber_g: float | None = Field(default=None, ge=0)
    sugar_g: float | None = Field(default=None, ge=0)
    sodium_mg: float | None = Field(default=None, ge=0)
    saturated_fat_g: float | None = Field(default=None, ge=0)
    cholesterol_mg: float | None = Field(default=None, ge=0)
    calcium_mg: float | None = Field(default=None, ge=0)
    iron_mg: float | None = Field(default=None, ge=0)
    vitamin_c_mg: float | None = Field(default=None, ge=0)


class NormalizedFood(BaseModel):
    """Food record in the shared schema, independent of its source."""

    id: str
    name: str
    brand: str | None = None
    category: str | None = None
    barcode: str | None = None
    serving_sizes: list[ServingSize] = Field(
        default_factory=list, validate_default=True
    )
    nutrients_per_100g: NutrientsPer100g
    source: str
    external_id: str
    verified: bool = False
    image_url: str | None = None

    @field_validator("serving_sizes")
    @classmethod
    def _base_serving_first(cls, value: list[ServingSize]) -> list[ServingSize]:
        rest = [
            serving
            for serving in value
            if not (
                serving.name == BASE_SERVING_NAME
                and serving.grams == BASE_SERVING_GRAMS
            )
        ]
        return [ServingSize(name=BASE_SERVING_NAME, grams=BASE_SERVING_GRAMS), *rest]

    def to_record(self) -> dict[str, object]:
        """Serialize for storage, omitting absent fields."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class SearchOptions:
    """Paging and routing options for a search."""

    limit: int = 20
    offset: int = 0
    preferred_apis: tuple[str, ...] | None = None
    include_barcode: bool = False


@dataclass(frozen=True)
class SearchResult:
    """Foods found for a query and where they came from."""

    foods: list[NormalizedFood] = field(default_factory=list)
    source: str = "none"
    total_results: int | None = None
    has_more: bool | None = None
    configuration_error: str | None = None
