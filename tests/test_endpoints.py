"""Tests for the public HTTP routes."""

from fastapi.testclient import TestClient

from nutrition_search.api.app import create_app
from nutrition_search.domain.errors import ProviderNetworkError
from nutrition_search.domain.foods import NormalizedFood, NutrientsPer100g


def _food(source: str, external_id: str) -> NormalizedFood:
    return NormalizedFood(
        id=f"{source.lower()}_{external_id}",
        name="Apple",
        nutrients_per_100g=NutrientsPer100g(calories_kcal=52),
        source=source,
        external_id=external_id,
    )


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_returns_normalized_foods(container, providers) -> None:
    providers["Edamam"].foods = [_food("Edamam", "a")]
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "apple", "limit": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "Edamam"
    assert data["foods"][0]["id"] == "edamam_a"
    assert data["foods"][0]["serving_sizes"][0] == {"name": "100g", "grams": 100.0}
    assert "brand" not in data["foods"][0]
    assert providers["USDA"].calls[0][1].limit == 5


def test_search_passes_preferred_apis(container, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]
    providers["CalorieNinjas"].foods = [_food("CalorieNinjas", "apple")]
    client = TestClient(create_app(container))

    response = client.get(
        "/foods/search", params={"q": "apple", "apis": "CalorieNinjas, USDA"}
    )

    assert response.json()["source"] == "CalorieNinjas"
    assert providers["USDA"].calls == []


def test_search_accepts_single_character_queries(container, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "a"})

    assert response.status_code == 200
    assert providers["USDA"].calls[0][0] == "a"


def test_search_requires_query(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/foods/search")

    assert response.status_code == 422


def test_search_rejects_blank_query(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "   "})

    assert response.status_code == 400


def test_search_reports_configuration_error(container, providers) -> None:
    for provider in providers.values():
        provider.configured = False
    client = TestClient(create_app(container))

    data = client.get("/foods/search", params={"q": "apple"}).json()

    assert data["source"] == "none"
    assert data["foods"] == []
    assert "configuration_error" in data


def test_barcode_routes(container, providers) -> None:
    providers["OpenFoodFacts"].barcode_foods = {
        "3017620422003": _food("OpenFoodFacts", "3017620422003")
    }
    client = TestClient(create_app(container))

    found = client.get("/foods/barcode/3017620422003")
    missing = client.get("/foods/barcode/12345678")
    invalid = client.get("/foods/barcode/abc")

    assert found.status_code == 200
    assert found.json()["food"]["external_id"] == "3017620422003"
    assert missing.status_code == 404
    assert invalid.status_code == 400


def test_barcode_provider_failure_is_bad_gateway(container, providers) -> None:
    providers["OpenFoodFacts"].error = ProviderNetworkError(
        "OpenFoodFacts", "request timed out"
    )
    client = TestClient(create_app(container))

    response = client.get("/foods/barcode/3017620422003")

    assert response.status_code == 502
