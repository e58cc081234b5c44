from typing import Any

from weather_gateway.clients.base import BaseProviderClient
from weather_gateway.errors import UpstreamMalformedError


class CaiyunWeatherClient(BaseProviderClient):
    """Client for the Caiyun (彩云天气) v2.6 weather API.

    One call returns the realtime, 24-hour and 3-day bundle; shaping the raw
    payload is left to ``weather_gateway.weather.shaper``.
    """

    provider_name = "caiyun"

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.caiyunapp.com/v2.6",
        timeout_seconds: float = 10.0,
    ) -> None:
        super().__init__(base_url, timeout_seconds)
        self._api_token = api_token

    async def fetch_forecast(self, lat: float, lng: float) -> dict[str, Any]:
        """Fetch the raw weather bundle; the provider wants longitude first."""
        url = f"{self._base_url}/{self._api_token}/{lng},{lat}/weather"
        params = {"alert": "true", "dailysteps": 3, "hourlysteps": 24, "lang": "zh_CN"}
        data = await self._get_json(url, params=params)

        if data.get("status") != "ok":
            reason = data.get("error") or "Unknown error from caiyun"
            raise UpstreamMalformedError(f"caiyun returned status={data.get('status')}: {reason}")
        return data
