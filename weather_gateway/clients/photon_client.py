from typing import Any

from weather_gateway.clients.base import BaseProviderClient
from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.models.common import PlaceCandidate

MAX_SEARCH_RESULTS = 5


class PhotonClient(BaseProviderClient):
    """Client for the Photon geocoder (komoot), an OpenStreetMap search that needs no key.

    Results are GeoJSON features; coordinates come as ``[lng, lat]``.
    """

    provider_name = "photon"
    default_headers = {"Accept": "application/json", "User-Agent": "WeatherGateway/0.1"}

    def __init__(self, base_url: str = "https://photon.komoot.io", timeout_seconds: float = 3.0) -> None:
        super().__init__(base_url, timeout_seconds)

    async def search_places(self, query: str) -> list[PlaceCandidate]:
        url = f"{self._base_url}/api/"
        data = await self._get_json(url, params={"q": query, "limit": MAX_SEARCH_RESULTS})

        features = data.get("features")
        if not isinstance(features, list):
            raise UpstreamMalformedError("photon payload has no features list")

        results = []
        for feature in features[:MAX_SEARCH_RESULTS]:
            candidate = self._normalize_feature(feature)
            if candidate is not None:
                results.append(candidate)
        return results

    def _normalize_feature(self, feature: Any) -> PlaceCandidate | None:
        """Features without a name or a usable point are skipped."""
        if not isinstance(feature, dict):
            return None
        geometry = feature.get("geometry")
        coordinates = geometry.get("coordinates") if isinstance(geometry, dict) else None
        properties = feature.get("properties")
        if not isinstance(coordinates, list) or len(coordinates) < 2 or not isinstance(properties, dict):
            return None

        name = properties.get("name") or properties.get("city") or properties.get("state")
        if not isinstance(name, str) or not name.strip():
            return None
        try:
            lng = self._coordinate(coordinates[0], "lng")
            lat = self._coordinate(coordinates[1], "lat")
        except UpstreamMalformedError:
            return None

        parts = [properties.get(field) for field in ("country", "state", "city", "name")]
        address = " ".join(part.strip() for part in parts if isinstance(part, str) and part.strip())
        return PlaceCandidate(lat=lat, lng=lng, name=name.strip(), address=address)
