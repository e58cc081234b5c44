from typing import Any

from weather_gateway.clients.base import BaseProviderClient
from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.models.common import PlaceCandidate

MAX_SEARCH_RESULTS = 5


class NominatimClient(BaseProviderClient):
    """Client for the public OpenStreetMap Nominatim service.

    The usage policy asks for an identifying User-Agent. Search answers with a
    JSON array, reverse geocoding with an object; both report failures as an
    ``error`` field in an HTTP 200 body.
    """

    provider_name = "nominatim"
    default_headers = {"Accept": "application/json", "User-Agent": "WeatherGateway/0.1"}

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        timeout_seconds: float = 5.0,
        country_codes: str = "cn",
    ) -> None:
        super().__init__(base_url, timeout_seconds)
        self._country_codes = country_codes

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        url = f"{self._base_url}/reverse"
        params = {"format": "json", "lat": lat, "lon": lng, "accept-language": "zh-CN"}
        data = await self._get_json(url, params=params)

        if data.get("error"):
            raise UpstreamMalformedError(f"nominatim returned an error: {data['error']}")
        address = data.get("display_name")
        if not isinstance(address, str) or not address.strip():
            raise UpstreamMalformedError("nominatim reverse payload has no display_name")
        return address.strip()

    async def search_places(self, query: str) -> list[PlaceCandidate]:
        url = f"{self._base_url}/search"
        params = {
            "format": "json",
            "q": query,
            "limit": MAX_SEARCH_RESULTS,
            "accept-language": "zh-CN",
            "countrycodes": self._country_codes,
        }
        items = await self._get_json_list(url, params=params)

        results = []
        for item in items[:MAX_SEARCH_RESULTS]:
            candidate = self._normalize_item(item)
            if candidate is not None:
                results.append(candidate)
        return results

    def _normalize_item(self, item: Any) -> PlaceCandidate | None:
        if not isinstance(item, dict):
            return None
        display_name = item.get("display_name")
        if not isinstance(display_name, str) or not display_name.strip():
            return None
        try:
            lat = self._coordinate(item.get("lat"), "lat")
            lng = self._coordinate(item.get("lon"), "lng")
        except UpstreamMalformedError:
            return None
        # "西湖, 西湖区, 杭州市, 浙江省, 中国" -> name "西湖"
        name = display_name.split(",")[0].strip()
        return PlaceCandidate(lat=lat, lng=lng, name=name, address=display_name.strip())
