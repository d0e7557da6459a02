"""Shared HTTP helper that maps httpx failures onto provider errors."""

import json

import httpx

from nutrition_search.domain.errors import ProviderDataError, ProviderNetworkError


async def request_json(  # noqa: PLR0913
    http_client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    *,
    timeout: float,
    params: dict[str, str] | None = None,
    json_body: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
    data: dict[str, str] | None = None,
    auth: tuple[str, str] | None = None,
) -> dict[str, object]:
    """Perform one request and return its decoded JSON object."""
    try:
        response = await http_client.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=headers,
            data=data,
            auth=auth,
            timeout=timeout,
        )
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ProviderNetworkError(provider, "request timed out") from exc
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        raise ProviderNetworkError(
            provider, f"API error: {status_code}", status_code=status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise ProviderNetworkError(provider, f"request failed: {exc}") from exc

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProviderDataError(provider, "response is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderDataError(provider, "expected a JSON object")
    return payload
