from typing import Any

from weather_gateway.clients.base import BaseProviderClient
from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.models.common import PlaceCandidate

MAX_SEARCH_RESULTS = 5


class AmapClient(BaseProviderClient):
    """Client for the AMap (高德) web service API.

    AMap answers HTTP 200 even for failures and signals success with
    ``status == "1"``; anything else is reported via ``info``/``infocode``.
    Empty string fields are sometimes sent as empty lists.
    """

    provider_name = "amap"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://restapi.amap.com",
        timeout_seconds: float = 3.0,
    ) -> None:
        super().__init__(base_url, timeout_seconds)
        self._api_key = api_key

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        url = f"{self._base_url}/v3/geocode/regeo"
        params = {
            "key": self._api_key,
            "location": f"{lng},{lat}",
            "radius": 1000,
            "extensions": "base",
        }
        data = await self._get_json(url, params=params)
        self._handle_provider_status(data)

        regeocode = data.get("regeocode")
        address = regeocode.get("formatted_address") if isinstance(regeocode, dict) else None
        if not isinstance(address, str) or not address.strip():
            raise UpstreamMalformedError("amap regeo payload has no formatted_address")
        return address.strip()

    async def search_places(self, query: str) -> list[PlaceCandidate]:
        """Keyword place search, capped to the first MAX_SEARCH_RESULTS POIs."""
        url = f"{self._base_url}/v3/place/text"
        params = {
            "key": self._api_key,
            "keywords": query,
            "offset": MAX_SEARCH_RESULTS,
            "page": 1,
            "extensions": "base",
        }
        data = await self._get_json(url, params=params)
        self._handle_provider_status(data)

        pois = data.get("pois")
        if not isinstance(pois, list):
            raise UpstreamMalformedError("amap place payload has no pois list")

        results = []
        for poi in pois[:MAX_SEARCH_RESULTS]:
            candidate = self._normalize_poi(poi)
            if candidate is not None:
                results.append(candidate)
        return results

    @staticmethod
    def _handle_provider_status(data: dict[str, Any]) -> None:
        if str(data.get("status")) == "1":
            return
        info = data.get("info") or "Unknown error from amap"
        raise UpstreamMalformedError(f"amap returned status={data.get('status')} info={info} code={data.get('infocode')}")

    def _normalize_poi(self, poi: Any) -> PlaceCandidate | None:
        """Map one AMap POI to a PlaceCandidate; POIs without a usable location are skipped."""
        if not isinstance(poi, dict):
            return None
        name = poi.get("name")
        location = poi.get("location")
        if not isinstance(name, str) or not isinstance(location, str):
            return None
        try:
            lng_str, lat_str = location.split(",")
            lng, lat = self._coordinate(lng_str, "lng"), self._coordinate(lat_str, "lat")
        except (ValueError, UpstreamMalformedError):
            return None

        parts = [poi.get(field) for field in ("pname", "cityname", "adname", "address")]
        address = " ".join(part.strip() for part in parts if isinstance(part, str) and part.strip())
        return PlaceCandidate(lat=lat, lng=lng, name=name, address=address)
