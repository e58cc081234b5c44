from typing import Any

from weather_gateway.clients.base import BaseProviderClient
from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.models.common import IPLocation, UNKNOWN_ADDRESS


def join_address_parts(parts: list[Any]) -> str:
    """Join address components with spaces, skipping blanks and repeats of the previous part."""
    joined: list[str] = []
    for part in parts:
        if not isinstance(part, str):
            continue
        part = part.strip()
        if part and (not joined or joined[-1] != part):
            joined.append(part)
    return " ".join(joined)


class MeituanClient(BaseProviderClient):
    """Client for the Meituan mobile location endpoints.

    Used for IP location and as the primary reverse geocoder. The endpoints
    reject requests that do not look like they come from a browser, hence the
    user-agent/referer headers.
    """

    provider_name = "meituan"
    default_headers = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "Referer": "https://www.meituan.com/",
        "Origin": "https://www.meituan.com",
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        "Cache-Control": "no-cache",
    }

    def __init__(self, base_url: str = "https://apimobile.meituan.com", timeout_seconds: float = 3.0) -> None:
        super().__init__(base_url, timeout_seconds)

    async def locate_ip(self, ip: str) -> IPLocation:
        """Locate a public IP address."""
        url = f"{self._base_url}/locate/v2/ip/loc"
        data = await self._get_json(url, params={"rgeo": "true", "ip": ip})
        self._handle_provider_error(data)

        payload = data.get("data")
        if not isinstance(payload, dict) or not payload.get("lat") or not payload.get("lng"):
            raise UpstreamMalformedError(f"meituan IP location payload lacks coordinates: {data}")

        rgeo = payload.get("rgeo") or {}
        address = ""
        if isinstance(rgeo, dict):
            province = rgeo.get("province")
            address = join_address_parts(
                [
                    rgeo.get("country"),
                    province if province != rgeo.get("city") else None,
                    rgeo.get("city"),
                    rgeo.get("district"),
                    rgeo.get("street"),
                    rgeo.get("town"),
                ]
            )

        return IPLocation(
            lat=self._coordinate(payload["lat"], "lat"),
            lng=self._coordinate(payload["lng"], "lng"),
            address=address or UNKNOWN_ADDRESS,
        )

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        """Turn a coordinate pair into a display address."""
        url = f"{self._base_url}/group/v1/city/latlng/{lat},{lng}"
        data = await self._get_json(url, params={"tag": 0})
        self._handle_provider_error(data)

        payload = data.get("data")
        if not isinstance(payload, dict):
            raise UpstreamMalformedError(f"meituan geocode payload lacks data: {data}")

        province = payload.get("province")
        address = join_address_parts(
            [
                payload.get("country"),
                province if province != payload.get("city") else None,
                payload.get("city"),
                payload.get("district"),
                payload.get("areaName"),
                payload.get("detail"),
            ]
        )
        if not address:
            raise UpstreamMalformedError("meituan geocode payload has no address components")
        return address

    @staticmethod
    def _handle_provider_error(data: dict[str, Any]) -> None:
        """Meituan reports failures as an ``error`` object inside an HTTP 200 body."""
        error = data.get("error")
        if not error:
            return
        if isinstance(error, dict):
            message = error.get("message") or error.get("type") or "Unknown error from meituan"
        else:
            message = str(error)
        raise UpstreamMalformedError(f"meituan returned an error: {message}")
