import math
from abc import ABC
from http import HTTPStatus
from typing import Any

import httpx

from weather_gateway.errors import (
    ProviderUnavailableError,
    UpstreamHTTPError,
    UpstreamMalformedError,
    UpstreamTimeoutError,
)


class BaseProviderClient(ABC):
    """Shared HTTP plumbing for upstream provider clients.

    Concrete clients (Caiyun, AMap, Meituan, Photon, Nominatim) build URLs and map provider
    payloads into normalized models; this base turns transport failures,
    HTTP error statuses and undecodable bodies into the provider error
    hierarchy, so the fallback chain can classify every failure the same way.
    """

    provider_name: str = "provider"
    default_headers: dict[str, str] = {"Accept": "application/json"}

    def __init__(self, base_url: str, timeout_seconds: float = 3.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET ``url`` and return the decoded JSON object body."""
        data = await self._get(url, params)
        if not isinstance(data, dict):
            raise UpstreamMalformedError(f"{self.provider_name} returned a non-object JSON body")
        return data

    async def _get_json_list(self, url: str, params: dict[str, Any] | None = None) -> list[Any]:
        """GET ``url`` for endpoints that answer with a top-level JSON array."""
        data = await self._get(url, params)
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamMalformedError(f"{self.provider_name} returned an error: {data['error']}")
        if not isinstance(data, list):
            raise UpstreamMalformedError(f"{self.provider_name} returned a non-array JSON body")
        return data

    async def _get(self, url: str, params: dict[str, Any] | None) -> Any:
        """Perform a GET request and decode the JSON body.

        A fresh AsyncClient is opened per call inside ``async with``, so a
        cancelled call (e.g. on a fallback timeout) releases its connection.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, headers=self.default_headers) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"{self.provider_name} request timed out: {repr(exc)}") from exc
        except httpx.RequestError as exc:
            raise ProviderUnavailableError(f"Request to {self.provider_name} failed: {repr(exc)}") from exc

        self._handle_http_errors(response)
        return self._parse_json(response)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Map non-2xx statuses to UpstreamHTTPError."""
        status_code = response.status_code

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            # 429 Quota exceeded / rate limit hit.
            raise UpstreamHTTPError(status_code, f"{self.provider_name} rate limit or quota exceeded (HTTP 429).")

        if status_code >= HTTPStatus.BAD_REQUEST:
            raise UpstreamHTTPError(status_code, f"{self.provider_name} returned HTTP {status_code}: {response.text}")

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamMalformedError(f"Failed to decode {self.provider_name} response as JSON: {exc}") from exc

    def _coordinate(self, value: Any, name: str) -> float:
        """Parse a provider coordinate (number or numeric string) into a finite float."""
        if isinstance(value, bool):
            raise UpstreamMalformedError(f"{self.provider_name} sent a non-numeric {name}: {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise UpstreamMalformedError(f"{self.provider_name} sent a non-numeric {name}: {value!r}") from exc
        if not math.isfinite(number):
            raise UpstreamMalformedError(f"{self.provider_name} sent a non-finite {name}: {value!r}")
        return number
