import hashlib
import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator


class Capability(str, Enum):
    """Data-acquisition purposes served by provider chains."""

    geocode = "geocode"
    search = "search"
    ip_locate = "ip_locate"
    weather = "weather"


# Coordinates are keyed at ~11 m resolution, so jittery client positions share entries.
CACHE_KEY_COORDINATE_DIGITS = 4


class _ProviderRequestBase(BaseModel):
    """Common behaviour of the capability request variants."""

    model_config = {"frozen": True}

    capability: Capability

    def cache_key_params(self) -> dict[str, Any]:
        return self.model_dump(exclude={"capability"})

    def cache_key(self) -> str:
        """Stable hash of the capability plus its normalized parameters."""
        material = json.dumps(
            {"capability": self.capability.value, "params": self.cache_key_params()},
            sort_keys=True,
            ensure_ascii=False,
        )
        return hashlib.sha1(material.encode("utf-8")).hexdigest()


class _CoordinateRequest(_ProviderRequestBase):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    def cache_key_params(self) -> dict[str, Any]:
        return {
            "lat": round(self.lat, CACHE_KEY_COORDINATE_DIGITS),
            "lng": round(self.lng, CACHE_KEY_COORDINATE_DIGITS),
        }


class GeocodeRequest(_CoordinateRequest):
    """Reverse-geocode a coordinate pair into a display address."""

    capability: Literal[Capability.geocode] = Capability.geocode


class WeatherRequest(_CoordinateRequest):
    """Fetch the realtime/hourly/daily weather bundle for a coordinate pair."""

    capability: Literal[Capability.weather] = Capability.weather


class SearchRequest(_ProviderRequestBase):
    """Free-text place search."""

    capability: Literal[Capability.search] = Capability.search
    query: str = Field(min_length=1)

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class IPLocateRequest(_ProviderRequestBase):
    """Locate a (normalized, public) client address."""

    capability: Literal[Capability.ip_locate] = Capability.ip_locate
    address: str = Field(min_length=1)


ProviderRequest = Annotated[
    Union[GeocodeRequest, SearchRequest, IPLocateRequest, WeatherRequest],
    Field(discriminator="capability"),
]


class PlaceCandidate(BaseModel):
    """A named coordinate returned by place search."""

    lat: float
    lng: float
    name: str
    address: str = ""


class IPLocation(BaseModel):
    """Approximate location of a client address."""

    lat: float
    lng: float
    address: str

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> Any:
        """Providers sometimes send coordinates as strings; round to GPS precision."""
        try:
            # For general GPS and mapping, 5-6 decimal places (e.g., 34.052235)
            return round(float(value), 6)
        except (TypeError, ValueError):
            return value


UNKNOWN_ADDRESS = "未知位置"

DEFAULT_LOCATION = IPLocation(lat=39.9042, lng=116.4074, address="北京市")
