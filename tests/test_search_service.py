"""Tests for the search orchestration."""

import asyncio

import pytest

from nutrition_search.domain.errors import (
    ProviderDataError,
    ProviderNetworkError,
    SearchInputError,
)
from nutrition_search.domain.foods import (
    NormalizedFood,
    NutrientsPer100g,
    SearchOptions,
)
from nutrition_search.domain.providers import ProviderOverride


def _food(source: str, external_id: str, name: str = "Apple") -> NormalizedFood:
    return NormalizedFood(
        id=f"{source.lower()}_{external_id}",
        name=name,
        nutrients_per_100g=NutrientsPer100g(calories_kcal=52, carbs_g=14),
        source=source,
        external_id=external_id,
    )


def test_first_provider_with_foods_wins(search_service, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]
    providers["Edamam"].foods = [_food("Edamam", "a")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "USDA"
    assert [food.external_id for food in result.foods] == ["1"]
    assert providers["Edamam"].calls == []


def test_cache_hit_skips_providers(search_service, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]

    first = asyncio.run(search_service.search("Apple"))
    second = asyncio.run(search_service.search("  apple "))

    assert first.source == "USDA"
    assert second.source == "cache"
    assert [food.id for food in second.foods] == ["usda_1"]
    assert len(providers["USDA"].calls) == 1


def test_fallback_follows_default_order(
    search_service, providers, usage_repository, cache_repository
) -> None:
    providers["USDA"].error = ProviderNetworkError("USDA", "API error: 500", 500)
    providers["FatSecret"].foods = [_food("FatSecret", "9", "Apple, raw")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "FatSecret"
    assert len(providers["USDA"].calls) == 1
    assert len(providers["Edamam"].calls) == 1
    assert providers["CalorieNinjas"].calls == []
    recorded = [
        (record.provider, record.success) for record in usage_repository.records
    ]
    assert recorded == [("USDA", False), ("FatSecret", True)]
    assert list(cache_repository.rows) == [("FatSecret", "9")]


def test_empty_result_is_soft_failure(
    search_service, providers, usage_repository, cache_repository
) -> None:
    providers["OpenFoodFacts"].foods = [_food("OpenFoodFacts", "301")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "OpenFoodFacts"
    # Providers that answered with nothing leave no usage or cache trace.
    assert [record.provider for record in usage_repository.records] == [
        "OpenFoodFacts"
    ]
    assert cache_repository.upsert_calls == 1


def test_all_providers_failing_returns_empty_result(
    search_service, providers, usage_repository, cache_repository
) -> None:
    for name, provider in providers.items():
        provider.error = ProviderDataError(name, "unexpected shape")

    result = asyncio.run(search_service.search("apple"))

    assert result.foods == []
    assert result.source == "none"
    assert result.configuration_error is None
    assert len(usage_repository.records) == len(providers)
    assert all(not record.success for record in usage_repository.records)
    assert cache_repository.rows == {}


def test_nothing_found_is_not_cached(search_service, providers) -> None:
    first = asyncio.run(search_service.search("zzzz"))
    second = asyncio.run(search_service.search("zzzz"))

    assert first.source == "none"
    assert second.source == "none"
    assert len(providers["USDA"].calls) == 2


def test_preferred_providers_go_first(search_service, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]
    providers["OpenFoodFacts"].foods = [_food("OpenFoodFacts", "301")]
    options = SearchOptions(
        preferred_apis=("OpenFoodFacts", "Unknown", "OpenFoodFacts", "USDA")
    )

    result = asyncio.run(search_service.search("apple", options))

    assert result.source == "OpenFoodFacts"
    assert providers["USDA"].calls == []


def test_disabled_provider_is_never_called(
    search_service, providers, config_repository
) -> None:
    config_repository.overrides = [ProviderOverride(name="USDA", enabled=False)]
    providers["USDA"].foods = [_food("USDA", "1")]
    providers["Edamam"].foods = [_food("Edamam", "a")]

    result = asyncio.run(
        search_service.search("apple", SearchOptions(preferred_apis=("USDA",)))
    )

    assert result.source == "Edamam"
    assert providers["USDA"].calls == []


def test_missing_credentials_are_skipped_without_usage(
    search_service, providers, usage_repository
) -> None:
    providers["USDA"].configured = False
    providers["Edamam"].foods = [_food("Edamam", "a")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "Edamam"
    assert [record.provider for record in usage_repository.records] == ["Edamam"]


def test_configuration_error_when_no_provider_is_configured(
    search_service, providers, usage_repository
) -> None:
    for provider in providers.values():
        provider.configured = False

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "none"
    assert result.configuration_error is not None
    assert usage_repository.records == []


def test_configuration_error_not_reported_when_a_provider_ran(
    search_service, providers
) -> None:
    for provider in providers.values():
        provider.configured = False
    providers["OpenFoodFacts"].configured = True

    result = asyncio.run(search_service.search("apple"))

    assert result.configuration_error is None


def test_cache_entries_expire_after_ttl(search_service, providers, clock) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]

    asyncio.run(search_service.search("apple"))
    clock.advance(hours=23)
    assert asyncio.run(search_service.search("apple")).source == "cache"

    clock.advance(hours=2)
    result = asyncio.run(search_service.search("apple"))

    assert result.source == "USDA"
    assert len(providers["USDA"].calls) == 2


def test_slow_provider_times_out_and_falls_back(
    search_service, providers, usage_repository
) -> None:
    search_service.provider_timeout_seconds = 0.05
    providers["USDA"].delay = 5
    providers["USDA"].foods = [_food("USDA", "1")]
    providers["Edamam"].foods = [_food("Edamam", "a")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "Edamam"
    usda_record = usage_repository.records[0]
    assert usda_record.provider == "USDA"
    assert "timed out" in (usda_record.error_message or "")


def test_caller_cancellation_stops_the_loop(search_service, providers) -> None:
    providers["USDA"].delay = 5
    providers["Edamam"].foods = [_food("Edamam", "a")]

    async def scenario() -> None:
        task = asyncio.create_task(search_service.search("apple"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert providers["Edamam"].calls == []


def test_caller_deadline_propagates(
    search_service, providers, usage_repository
) -> None:
    providers["USDA"].delay = 5
    providers["Edamam"].foods = [_food("Edamam", "a")]

    async def scenario() -> None:
        async with asyncio.timeout(0.05):
            await search_service.search("apple")

    with pytest.raises(TimeoutError):
        asyncio.run(scenario())

    assert providers["Edamam"].calls == []
    assert usage_repository.records == []


def test_programming_errors_propagate(search_service, providers) -> None:
    providers["USDA"].error = RuntimeError("bug")

    with pytest.raises(RuntimeError):
        asyncio.run(search_service.search("apple"))


@pytest.mark.parametrize(
    ("query", "options"),
    [
        ("", SearchOptions()),
        ("   ", SearchOptions()),
        ("apple", SearchOptions(limit=0)),
        ("apple", SearchOptions(offset=-1)),
    ],
)
def test_invalid_input_is_rejected(search_service, providers, query, options) -> None:
    with pytest.raises(SearchInputError):
        asyncio.run(search_service.search(query, options))

    assert providers["USDA"].calls == []


def test_store_failures_do_not_fail_the_search(
    search_service, providers, cache_repository, usage_repository
) -> None:
    cache_repository.fail = True
    usage_repository.fail = True
    providers["USDA"].foods = [_food("USDA", "1")]

    result = asyncio.run(search_service.search("apple"))

    assert result.source == "USDA"
    assert result.foods[0].external_id == "1"


def test_numeric_query_is_a_plain_search(search_service, providers) -> None:
    providers["USDA"].foods = [_food("USDA", "1")]

    result = asyncio.run(search_service.search("3017620422003"))

    assert result.source == "USDA"
    assert providers["USDA"].calls[0][0] == "3017620422003"


def test_barcode_lookup_returns_product(
    search_service, providers, usage_repository
) -> None:
    product = _food("OpenFoodFacts", "3017620422003", "Nutella")
    providers["OpenFoodFacts"].barcode_foods = {"3017620422003": product}

    food = asyncio.run(search_service.lookup_barcode("3017620422003"))
    missing = asyncio.run(search_service.lookup_barcode("0000000000000"))

    assert food == product
    assert missing is None
    assert [record.result_count for record in usage_repository.records] == [1, 0]


def test_barcode_lookup_validates_code(search_service) -> None:
    with pytest.raises(SearchInputError):
        asyncio.run(search_service.lookup_barcode("12ab"))


def test_barcode_lookup_failure_is_recorded(
    search_service, providers, usage_repository
) -> None:
    providers["OpenFoodFacts"].error = ProviderNetworkError(
        "OpenFoodFacts", "API error: 503", 503
    )

    with pytest.raises(ProviderNetworkError):
        asyncio.run(search_service.lookup_barcode("3017620422003"))

    assert usage_repository.records[0].error_message == "OpenFoodFacts: API error: 503"
