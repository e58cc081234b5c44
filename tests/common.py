import asyncio
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import httpx


class MockResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text

    def json(self) -> Any:
        return self._payload


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient.

    Every GET is recorded in ``calls`` as ``(url, params)`` so tests can check
    what was sent upstream; the constructor kwargs (headers, timeout) are kept
    in ``init_kwargs``.
    """

    def __init__(self, response: MockResponse, calls: list[tuple[str, dict[str, Any] | None]] | None = None, **kwargs: Any) -> None:
        self._response = response
        self.calls = calls if calls is not None else []
        self.init_kwargs = kwargs

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        self.calls.append((url, params))
        return self._response


class FailingAsyncClient:
    """Async client that raises a RequestError on enter to simulate network failure.

    The target URL is provided at construction time, so tests for different providers
    can reuse this implementation with different base URLs.
    """

    def __init__(self, url: str, *args: Any, **kwargs: Any) -> None:
        self._url = url

    async def __aenter__(self) -> "FailingAsyncClient":
        request = httpx.Request("GET", self._url)
        raise httpx.ConnectError("Network failure", request=request)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        return MockResponse(status_code=HTTPStatus.OK, payload={})


class TimingOutAsyncClient:
    """Async client whose GET raises httpx.ReadTimeout."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    async def __aenter__(self) -> "TimingOutAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        raise httpx.ReadTimeout("timed out", request=httpx.Request("GET", url))


def make_fake_async_client(
    response: MockResponse,
    calls: list[tuple[str, dict[str, Any] | None]] | None = None,
) -> Callable[..., MockAsyncClient]:
    """Factory for a fake httpx.AsyncClient returning a fixed response.

    Pass a ``calls`` list to collect the requests made through every client
    the code under test opens.
    """

    def _fake_client(*args: Any, **kwargs: Any) -> MockAsyncClient:
        return MockAsyncClient(response, calls, **kwargs)

    return _fake_client


def caiyun_payload() -> dict[str, Any]:
    """A trimmed but realistic Caiyun v2.6 weather response."""
    return {
        "status": "ok",
        "result": {
            "realtime": {
                "temperature": 26.5,
                "apparent_temperature": 29.4,
                "humidity": 0.87,
                "wind": {"speed": 7.8, "direction": 135.0},
                "pressure": 100720.5,
                "visibility": 5.26,
                "skycon": "MODERATE_RAIN",
                "air_quality": {"aqi": {"chn": 14}, "pm25": 9},
            },
            "hourly": {
                "temperature": [{"value": 26.5 - i * 0.5} for i in range(48)],
                "skycon": [{"value": "MODERATE_RAIN" if i < 3 else "CLOUDY"} for i in range(48)],
            },
            "daily": {
                "temperature": [
                    {"max": 29.4, "min": 23.6},
                    {"max": 30.5, "min": 24.0},
                    {"max": 31.0, "min": 24.2},
                    {"max": 31.0, "min": 24.2},
                ],
                "skycon": [{"value": "MODERATE_RAIN"}, {"value": "CLOUDY"}, {"value": "CLEAR_DAY"}],
                "life_index": {
                    "ultraviolet": [{"index": "1", "desc": "最弱"}, {"index": "3", "desc": "中等"}],
                    "comfort": [{"index": "4", "desc": "温暖"}],
                },
            },
            "forecast_keypoint": "未来两小时不会下雨，放心出门吧",
        },
    }


class FakeMeituanClient:
    """Stand-in for MeituanClient returning canned values (or raising canned errors)."""

    def __init__(
        self,
        address: str | Exception = "中国 浙江省 杭州市 西湖区",
        location: Any = None,
    ) -> None:
        self._address = address
        self._location = location
        self.geocode_calls: list[tuple[float, float]] = []
        self.ip_calls: list[str] = []

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        self.geocode_calls.append((lat, lng))
        if isinstance(self._address, Exception):
            raise self._address
        return self._address

    async def locate_ip(self, ip: str) -> Any:
        self.ip_calls.append(ip)
        if isinstance(self._location, Exception):
            raise self._location
        return self._location


class FakeAmapClient:
    """Stand-in for AmapClient; ``delay`` makes every call sleep before answering.

    PhotonClient and NominatimClient expose the same two methods, so it fills
    in for them as well.
    """

    def __init__(
        self,
        address: str | Exception = "浙江省杭州市西湖区北山街道",
        places: list[Any] | Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._address = address
        self._places = places if places is not None else []
        self._delay = delay
        self.geocode_calls: list[tuple[float, float]] = []
        self.search_calls: list[str] = []

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        self.geocode_calls.append((lat, lng))
        if isinstance(self._address, Exception):
            raise self._address
        return self._address

    async def search_places(self, query: str) -> list[Any]:
        self.search_calls.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if isinstance(self._places, Exception):
            raise self._places
        return self._places
